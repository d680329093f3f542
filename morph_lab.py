# Purpose: Morphology Lab - command-line driver (load, run pipeline, show / save, export script)
"""
Morphology Lab
==============
Runs a lab task's morphology pipeline on an image, shows or saves the
Source | Result panel and exports the equivalent OpenCV script.

Step syntax for --steps (comma separated, applied left to right):
  threshold=128      binary threshold
  erode=3x2          erosion, kernel 3, 2 iterations  (erode=3 → 1 iteration)
  dilate=5           dilation, kernel 5
  open=5 / close=3   opening / closing
  boundary=3         boundary extraction

Usage:
  python3 morph_lab.py --list
  python3 morph_lab.py --task task4 --image IMGS/shapes.png
  python3 morph_lab.py --task task2 --image IMGS/shapes.png --save_dir outputs/ --export
  python3 morph_lab.py --image IMGS/text.png --steps threshold=100,close=3 --print_code
"""

import argparse
import os
import sys

import cv2

sys.path.insert(0, os.path.dirname(__file__))
from image_io import make_display, fit_width
from lab_tasks import LAB_TASKS, LabSession
from morph_pipeline import (DEFAULT_THRESHOLD, DEFAULT_KERNEL_SIZE, Pipeline, Threshold,
                            Erosion, Dilation, Opening, Closing, Boundary)


STEP_NAMES = {
    'threshold': Threshold,
    'erode':     Erosion,
    'erosion':   Erosion,
    'dilate':    Dilation,
    'dilation':  Dilation,
    'open':      Opening,
    'opening':   Opening,
    'close':     Closing,
    'closing':   Closing,
    'boundary':  Boundary,
}


# ─────────────────────────────────────────────────────────────────────────────
#  STEP PARSING
# ─────────────────────────────────────────────────────────────────────────────

def parse_step(text: str):
    name, _, arg = text.strip().partition('=')
    kind = STEP_NAMES.get(name.strip().lower())
    if kind is None:
        raise ValueError(f'Unknown step {name!r}')
    arg = arg.strip()

    if kind is Threshold:
        return Threshold(int(arg) if arg else DEFAULT_THRESHOLD)

    size, _, iters = arg.lower().partition('x')
    ksize = int(size) if size else DEFAULT_KERNEL_SIZE
    if kind in (Erosion, Dilation):
        return kind(ksize, int(iters) if iters else 1)
    if iters:
        raise ValueError(f'{name} takes no iteration count')
    return kind(ksize)


def parse_steps(text: str) -> list:
    """'threshold=128,erode=3x2' → [Threshold(128), Erosion(3, 2)]"""
    return [parse_step(part) for part in text.split(',') if part.strip()]


def print_tasks():
    for task in LAB_TASKS:
        steps = ', '.join(s.op.value for s in task.default_steps)
        print(f'{task.task_id}  {task.title}')
        print(f'       {task.description}')
        print(f'       default: {steps}')


# ─────────────────────────────────────────────────────────────────────────────
#  ENTRY POINT
# ─────────────────────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description='Morphology Lab – binary morphology pipelines')
    ap.add_argument('--task',       default=LAB_TASKS[0].task_id,
                    help='Lab task id (default task1)')
    ap.add_argument('--image',      default=None,
                    help="Image path or URL (default: the task's preset image)")
    ap.add_argument('--steps',      default=None,
                    help='Replace the task pipeline, e.g. threshold=128,open=5')
    ap.add_argument('--save_dir',   default=None,
                    help='Save the Source | Result panel to this folder')
    ap.add_argument('--export',     action='store_true',
                    help='Write morphology_<task>.py next to the output')
    ap.add_argument('--print_code', action='store_true',
                    help='Print the generated OpenCV script')
    ap.add_argument('--list',       action='store_true',
                    help='List the lab tasks and exit')
    args = ap.parse_args(argv)

    if args.list:
        print_tasks()
        return 0

    try:
        session = LabSession(args.task)
        if args.steps is not None:
            session.pipeline = Pipeline(parse_steps(args.steps))
    except (KeyError, ValueError) as e:
        print(f'[ERROR] {e}')
        return 1

    if args.image:
        session.set_source(args.image)

    print(f'[INFO] {session.task.title}')
    for i, step in enumerate(session.pipeline, start=1):
        print(f'[INFO]   {i}. {step}')

    rendered = session.render()
    if rendered is None:
        print('[ERROR] No image to process.')
        return 1
    output, code = rendered

    if args.print_code:
        print(code)

    out_dir = args.save_dir or '.'
    if args.export:
        session.export(out_dir)

    label = f'{session.task.task_id}: ' + ' > '.join(s.op.value for s in session.pipeline)
    disp = fit_width(make_display(session.raster, output, label=label))

    if args.save_dir:
        os.makedirs(args.save_dir, exist_ok=True)
        out_path = os.path.join(args.save_dir, f'{session.task.task_id}_output.png')
        cv2.imwrite(out_path, disp)
        print(f'[SAVED] {out_path}')
    else:
        cv2.imshow('Morphology Lab', disp)
        print('Press any key to close.')
        cv2.waitKey(0)
        cv2.destroyAllWindows()
    return 0


if __name__ == '__main__':
    sys.exit(main())
