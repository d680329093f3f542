# Purpose: Morphology Lab - pipeline steps, editing and execution
"""
Morphology Lab – Pipeline
=========================
An ordered list of steps applied one after the other to a raster.  Each
step consumes the previous step's output:

  Threshold  → binarise in place
  Erosion    → erode  × iterations
  Dilation   → dilate × iterations
  Opening    → erode  then dilate   (one pass each)
  Closing    → dilate then erode    (one pass each)
  Boundary   → original − eroded    (unsigned clamp)

Order matters: morphological operators do not commute.

Usage:
  steps = [Threshold(128), Boundary(kernel_size=3)]
  result = run_pipeline(steps, raster)
"""

import numbers
import threading
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar

import numpy as np

from morph_engine import threshold, erode, dilate, subtract


DEFAULT_THRESHOLD = 128
DEFAULT_KERNEL_SIZE = 3
KERNEL_SIZES = (3, 5, 7, 9, 11)


class MorphOp(str, Enum):
    THRESHOLD = 'Threshold'
    EROSION = 'Erosion'
    DILATION = 'Dilation'
    OPENING = 'Opening'
    CLOSING = 'Closing'
    BOUNDARY = 'Boundary Extraction'


def new_step_id() -> str:
    return uuid.uuid4().hex[:9]


def _is_integer(value) -> bool:
    # numpy integers count, bools do not
    return isinstance(value, numbers.Integral) and not isinstance(value, (bool, np.bool_))


def _check_kernel(kernel_size):
    if not _is_integer(kernel_size) or kernel_size < 3 or kernel_size % 2 == 0:
        raise ValueError(f'kernel_size must be an odd integer >= 3, got {kernel_size!r}')


def _check_iterations(iterations):
    if not _is_integer(iterations) or iterations < 1:
        raise ValueError(f'iterations must be an integer >= 1, got {iterations!r}')


# ─────────────────────────────────────────────────────────────────────────────
#  STEP VARIANTS
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Threshold:
    value: int = DEFAULT_THRESHOLD
    step_id: str = field(default_factory=new_step_id, compare=False, kw_only=True)

    op: ClassVar[MorphOp] = MorphOp.THRESHOLD


@dataclass(frozen=True)
class _KernelStep:
    kernel_size: int = DEFAULT_KERNEL_SIZE
    iterations: int = 1
    step_id: str = field(default_factory=new_step_id, compare=False, kw_only=True)

    def __post_init__(self):
        _check_kernel(self.kernel_size)
        _check_iterations(self.iterations)


@dataclass(frozen=True)
class Erosion(_KernelStep):
    op: ClassVar[MorphOp] = MorphOp.EROSION


@dataclass(frozen=True)
class Dilation(_KernelStep):
    op: ClassVar[MorphOp] = MorphOp.DILATION


@dataclass(frozen=True)
class _DerivedStep:
    """Single-pass operation built from erode / dilate; no iteration count."""
    kernel_size: int = DEFAULT_KERNEL_SIZE
    step_id: str = field(default_factory=new_step_id, compare=False, kw_only=True)

    def __post_init__(self):
        _check_kernel(self.kernel_size)


@dataclass(frozen=True)
class Opening(_DerivedStep):
    op: ClassVar[MorphOp] = MorphOp.OPENING


@dataclass(frozen=True)
class Closing(_DerivedStep):
    op: ClassVar[MorphOp] = MorphOp.CLOSING


@dataclass(frozen=True)
class Boundary(_DerivedStep):
    op: ClassVar[MorphOp] = MorphOp.BOUNDARY


STEP_TYPES = {
    MorphOp.THRESHOLD: Threshold,
    MorphOp.EROSION:   Erosion,
    MorphOp.DILATION:  Dilation,
    MorphOp.OPENING:   Opening,
    MorphOp.CLOSING:   Closing,
    MorphOp.BOUNDARY:  Boundary,
}

PipelineStep = Threshold | Erosion | Dilation | Opening | Closing | Boundary


def new_step(op) -> PipelineStep:
    """Fresh step of kind *op* with default parameters and a new id."""
    return STEP_TYPES[MorphOp(op)]()


# ─────────────────────────────────────────────────────────────────────────────
#  PIPELINE  (ordered, editable list of steps)
# ─────────────────────────────────────────────────────────────────────────────

class Pipeline:
    """
    Ordered sequence of steps with the edits the lab UI needs:
    add / append / update / remove, addressed by step id.
    """

    def __init__(self, steps=()):
        self._steps = list(steps)

    def __iter__(self):
        return iter(self._steps)

    def __len__(self):
        return len(self._steps)

    def __getitem__(self, index):
        return self._steps[index]

    def __repr__(self):
        return f'Pipeline({self._steps!r})'

    @property
    def steps(self) -> list:
        return list(self._steps)

    def add(self, op) -> PipelineStep:
        step = new_step(op)
        self._steps.append(step)
        return step

    def append(self, step: PipelineStep) -> PipelineStep:
        self._steps.append(step)
        return step

    def update(self, step_id: str, **changes):
        """
        Replace the step with *step_id* by a copy carrying *changes*.
        Fields the variant does not have raise TypeError, bad values raise
        ValueError.  Unknown ids are ignored.
        """
        for i, step in enumerate(self._steps):
            if step.step_id == step_id:
                self._steps[i] = replace(step, **changes)
                return self._steps[i]
        return None

    def remove(self, step_id: str):
        self._steps = [s for s in self._steps if s.step_id != step_id]


# ─────────────────────────────────────────────────────────────────────────────
#  EXECUTION
# ─────────────────────────────────────────────────────────────────────────────

def apply_step(step: PipelineStep, pixels: np.ndarray) -> np.ndarray:
    """
    Run one step and return its output raster.
    Threshold works in place on *pixels*; every kernel step allocates.
    """
    if isinstance(step, Threshold):
        return threshold(pixels, step.value)

    if isinstance(step, Erosion):
        for _ in range(step.iterations):
            pixels = erode(pixels, step.kernel_size)
        return pixels

    if isinstance(step, Dilation):
        for _ in range(step.iterations):
            pixels = dilate(pixels, step.kernel_size)
        return pixels

    if isinstance(step, Opening):
        return dilate(erode(pixels, step.kernel_size), step.kernel_size)

    if isinstance(step, Closing):
        return erode(dilate(pixels, step.kernel_size), step.kernel_size)

    if isinstance(step, Boundary):
        original = pixels
        eroded = erode(original, step.kernel_size)
        return subtract(original, eroded)

    raise TypeError(f'Unknown pipeline step: {step!r}')


def run_pipeline(steps, source: np.ndarray) -> np.ndarray:
    """
    Apply *steps* in order to a copy of *source*.
    An empty step list returns an unchanged copy.
    """
    pixels = source.copy()
    for step in steps:
        pixels = apply_step(step, pixels)
    return pixels


class PipelineRunner:
    """
    Serialises pipeline runs and drops results that went stale.

    Every call to run() takes a generation number.  Runs execute one at a
    time on their own copy of the source; when a newer run was requested
    while one was executing, the older result is discarded (None).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._generation = 0
        self.latest = None

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def run(self, steps, source: np.ndarray):
        with self._lock:
            self._generation += 1
            generation = self._generation
        steps = list(steps)
        source = source.copy()

        with self._run_lock:
            if not self._is_current(generation):
                return None
            result = run_pipeline(steps, source)

        with self._lock:
            if generation != self._generation:
                return None
            self.latest = result
        return result
