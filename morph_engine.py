# Purpose: Morphology Lab - thresholding and square-kernel erosion / dilation
"""
Morphology Lab – Engine
=======================
Pixel primitives used by every pipeline step, written with plain numpy
array slicing (no cv2 morphology calls):

  - threshold  : binarise on the mean of the colour channels (in place)
  - erode      : min over a k×k flat square window
  - dilate     : max over a k×k flat square window
  - subtract   : unsigned-clamped difference, used by boundary extraction

A raster is a uint8 array of shape (H, W) or (H, W, C).  Channel 0 carries
the intensity; every write sets all colour channels (the first three) to the
same value, anything beyond them (alpha) is left alone.

Border pixels closer than k // 2 to an edge are never processed, they are
copied unchanged from the input.  Kernels larger than the image therefore
leave the raster untouched instead of raising.
"""

import numpy as np


def _intensity(pixels: np.ndarray) -> np.ndarray:
    """2-D view of the intensity channel."""
    return pixels if pixels.ndim == 2 else pixels[:, :, 0]


def _write_intensity(out: np.ndarray, values: np.ndarray,
                     rows: slice, cols: slice):
    if out.ndim == 2:
        out[rows, cols] = values
    else:
        out[rows, cols, :3] = values[:, :, None]


# ─────────────────────────────────────────────────────────────────────────────
#  THRESHOLD
# ─────────────────────────────────────────────────────────────────────────────

def threshold(pixels: np.ndarray, t) -> np.ndarray:
    """
    Binarise *pixels* in place.

    A pixel becomes 255 on every colour channel when the unweighted mean of
    its colour channels is >= t, otherwise 0.  The comparison is done on the
    channel sum (sum >= n * t) so no float rounding creeps in.  t is not
    range-checked: t <= 0 gives all white, t > 255 all black.

    Returns the same array for chaining.
    """
    if pixels.ndim == 2:
        colour = pixels[:, :, None]
    else:
        colour = pixels[:, :, :3]

    n = colour.shape[2]
    total = colour.astype(np.int32).sum(axis=2)
    white = total >= n * t
    colour[...] = np.where(white, 255, 0).astype(pixels.dtype)[:, :, None]
    return pixels


# ─────────────────────────────────────────────────────────────────────────────
#  ERODE / DILATE  (sliding-window min / max over the interior)
# ─────────────────────────────────────────────────────────────────────────────

def _sliding_extreme(pixels: np.ndarray, ksize: int, reduce) -> np.ndarray:
    """
    Shared body of erode / dilate.

    Accumulates *reduce* (np.minimum or np.maximum) over all window offsets
    using array slicing, then writes the result into the interior of a copy.
    """
    out = pixels.copy()
    pad = max(int(ksize) // 2, 0)
    H, W = pixels.shape[:2]
    inner_h = H - 2 * pad
    inner_w = W - 2 * pad
    if inner_h <= 0 or inner_w <= 0:
        return out

    src = _intensity(pixels)
    window = 2 * pad + 1
    acc = src[0:inner_h, 0:inner_w].copy()
    for dy in range(window):
        for dx in range(window):
            reduce(acc, src[dy: dy + inner_h, dx: dx + inner_w], out=acc)

    _write_intensity(out, acc, slice(pad, pad + inner_h), slice(pad, pad + inner_w))
    return out


def erode(pixels: np.ndarray, ksize: int) -> np.ndarray:
    """
    Morphological erosion with a full ksize×ksize square.
    Each interior pixel takes the minimum intensity of its neighbourhood;
    bright regions shrink.  Returns a new array.
    """
    return _sliding_extreme(pixels, ksize, np.minimum)


def dilate(pixels: np.ndarray, ksize: int) -> np.ndarray:
    """
    Morphological dilation with a full ksize×ksize square.
    Each interior pixel takes the maximum intensity of its neighbourhood;
    bright regions grow.  Returns a new array.
    """
    return _sliding_extreme(pixels, ksize, np.maximum)


# ─────────────────────────────────────────────────────────────────────────────
#  SUBTRACT  (boundary extraction helper)
# ─────────────────────────────────────────────────────────────────────────────

def subtract(minuend: np.ndarray, subtrahend: np.ndarray) -> np.ndarray:
    """Per-pixel max(a - b, 0) on the intensity channel, as a new array."""
    a = _intensity(minuend).astype(np.int16)
    b = _intensity(subtrahend).astype(np.int16)
    diff = np.clip(a - b, 0, 255).astype(minuend.dtype)

    out = minuend.copy()
    H, W = out.shape[:2]
    _write_intensity(out, diff, slice(0, H), slice(0, W))
    return out
