# Purpose: Morphology Lab - preset lab tasks and the in-memory lab session
"""
Morphology Lab – Tasks & Session
================================
The preset lab tasks and the in-memory session that ties a task, its
editable pipeline and a source image together.

Selecting a task always resets the pipeline and the source image to the
task's defaults; earlier edits are dropped, not merged.
"""

from dataclasses import dataclass

from image_io import load_image
from morph_pipeline import (Pipeline, PipelineRunner, Threshold, Dilation,
                            Opening, Closing, Boundary)
from script_export import generate_python_code, save_script


@dataclass(frozen=True)
class LabTask:
    task_id: str
    title: str
    description: str
    image_source: str
    default_steps: tuple
    explanation: str = ''


LAB_TASKS = (
    LabTask(
        task_id='task1',
        title='Task 1: Repair Broken Characters',
        description='Restore character continuity for scanned text with broken strokes.',
        image_source='https://picsum.photos/seed/morph1/800/400',
        default_steps=(Threshold(128, step_id='t1s1'),
                       Dilation(3, 1, step_id='t1s2')),
        explanation=('Scanned text often has gaps in its strokes. Dilation grows the '
                     'foreground and fills the cracks; a Closing (dilation then '
                     'erosion) welds fragments while keeping the stroke weight.'),
    ),
    LabTask(
        task_id='task2',
        title='Task 2: Separate Merged Objects',
        description='Split connected objects and repair internal breaks.',
        image_source='https://picsum.photos/seed/morph2/800/400',
        default_steps=(Threshold(128, step_id='t2s1'),
                       Opening(5, step_id='t2s2'),
                       Closing(3, step_id='t2s3')),
        explanation=('Merged objects usually share a thin bridge. Erosion removes the '
                     'bridge first, dilation then restores the objects, now separated.'),
    ),
    LabTask(
        task_id='task3',
        title='Task 3: Removing Noise',
        description='Remove salt-and-pepper noise and fill holes in fingerprint images.',
        image_source='https://picsum.photos/seed/morph3/800/400',
        default_steps=(Threshold(128, step_id='t3s1'),
                       Opening(3, step_id='t3s2'),
                       Closing(3, step_id='t3s3')),
        explanation=('Opening removes isolated bright islands, Closing fills small '
                     'dark pores inside the ridges.'),
    ),
    LabTask(
        task_id='task4',
        title='Task 4: Boundary Extraction',
        description='Use morphology to detect object boundaries.',
        image_source='https://picsum.photos/seed/morph4/800/400',
        default_steps=(Threshold(128, step_id='t4s1'),
                       Boundary(3, step_id='t4s2')),
        explanation=('beta(A) = A - (A eroded by B): subtracting the eroded shape from '
                     'the original leaves only its outer shell.'),
    ),
    LabTask(
        task_id='task5',
        title='Task 5: Solve Your Own Problem',
        description='Custom implementation of morphological operations.',
        image_source='https://picsum.photos/seed/morph5/800/400',
        default_steps=(Threshold(128, step_id='t5s1'),),
        explanation=('Experiment with the order of operations: erode-then-dilate and '
                     'dilate-then-erode give very different results.'),
    ),
)


def get_task(task_id: str) -> LabTask:
    for task in LAB_TASKS:
        if task.task_id == task_id:
            return task
    raise KeyError(f'Unknown lab task: {task_id!r}')


# ─────────────────────────────────────────────────────────────────────────────
#  SESSION
# ─────────────────────────────────────────────────────────────────────────────

class LabSession:
    """
    Active task + editable pipeline + loaded source raster.

    render() runs the whole pipeline again from the source every time it is
    called; callers invoke it after any edit.
    """

    def __init__(self, task_id: str = LAB_TASKS[0].task_id, loader=load_image):
        self._loader = loader
        self._runner = PipelineRunner()
        self.select_task(task_id)

    def select_task(self, task_id: str):
        self.task = get_task(task_id)
        self.pipeline = Pipeline(self.task.default_steps)
        self.source = self.task.image_source
        self.raster = None

    def set_source(self, source: str):
        """Switch the source image; the raster is reloaded on next render."""
        self.source = source
        self.raster = None

    def load(self):
        if self.raster is None:
            self.raster = self._loader(self.source)
        return self.raster

    def code(self) -> str:
        return generate_python_code(self.pipeline, self.task.task_id)

    def render(self):
        """
        (output raster, script) for the current state, or None when the
        source image could not be loaded or the run went stale.
        """
        raster = self.load()
        if raster is None:
            return None
        output = self._runner.run(self.pipeline, raster)
        if output is None:
            return None
        return output, self.code()

    def export(self, out_dir: str = '.') -> str:
        return save_script(self.code(), self.task.task_id, out_dir)
