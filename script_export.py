# Purpose: Morphology Lab - OpenCV script export for a step list
"""
Morphology Lab – Script Export
==============================
Turns a step list into a stand-alone OpenCV script that reproduces the
pipeline outside the lab: grayscale load → one call sequence per step →
save + display.

The script is documentation only; it is never executed here.  Note that
cv2.erode / cv2.dilate replicate the image border while the lab engine
leaves border pixels untouched, so results can differ along the edges.
"""

import os

from morph_pipeline import Threshold, Erosion, Dilation, Opening, Closing, Boundary


SCRIPT_NAME = 'morphology_{task_id}.py'


def script_filename(task_id: str) -> str:
    return SCRIPT_NAME.format(task_id=task_id)


def _header(task_id: str) -> str:
    return f"""import cv2
import numpy as np

# 1. Load the image in grayscale
# Replace 'input_image.png' with your actual file path (e.g., '{task_id}.png')
img = cv2.imread('input_image.png', 0)

if img is None:
    print("Error: Could not load image. Please check the file path.")
else:
    # Initial state
    result = img
"""


def _footer(task_id: str) -> str:
    return f"""
    # Final Step: Save and display result
    cv2.imwrite('{task_id}_output.png', result)
    cv2.imshow('Morphology Result: {task_id}', result)

    print("Process complete. Output saved as {task_id}_output.png")
    cv2.waitKey(0)
    cv2.destroyAllWindows()
"""


def _kernel_line(name: str, ksize: int) -> str:
    return f'    {name} = np.ones(({ksize}, {ksize}), np.uint8)\n'


def _step_lines(step, kernel: str) -> str:
    if isinstance(step, Threshold):
        return f'    _, result = cv2.threshold(result, {step.value}, 255, cv2.THRESH_BINARY)\n'

    if isinstance(step, (Erosion, Dilation)):
        call = 'erode' if isinstance(step, Erosion) else 'dilate'
        return (_kernel_line(kernel, step.kernel_size) +
                f'    result = cv2.{call}(result, {kernel}, iterations={step.iterations})\n')

    if isinstance(step, (Opening, Closing)):
        flag = 'MORPH_OPEN' if isinstance(step, Opening) else 'MORPH_CLOSE'
        return (_kernel_line(kernel, step.kernel_size) +
                f'    result = cv2.morphologyEx(result, cv2.{flag}, {kernel})\n')

    if isinstance(step, Boundary):
        return (_kernel_line(kernel, step.kernel_size) +
                f'    eroded = cv2.erode(result, {kernel}, iterations=1)\n'
                f'    result = cv2.subtract(result, eroded)\n')

    raise TypeError(f'Unknown pipeline step: {step!r}')


def generate_python_code(steps, task_id: str) -> str:
    """
    Render *steps* as an OpenCV script labelled with *task_id*.
    Kernels are named kernel_1, kernel_2, ... after the step index so
    they never collide.  Same input, same text.
    """
    code = _header(task_id)
    for index, step in enumerate(steps, start=1):
        lines = _step_lines(step, f'kernel_{index}')
        code += f'\n    # Step {index}: {step.op.value}\n' + lines
    code += _footer(task_id)
    return code


def save_script(code: str, task_id: str, out_dir: str = '.') -> str:
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, script_filename(task_id))
    with open(path, 'w') as f:
        f.write(code)
    print(f'[SAVED] {path}')
    return path
