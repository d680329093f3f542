import os

import cv2
import numpy as np
import pytest
import requests

from morph_lab import main, parse_step, parse_steps
from morph_pipeline import Threshold, Erosion, Dilation, Opening, Closing, Boundary


def test_parse_steps():
    steps = parse_steps('threshold=100, erode=3x2,dilate=5,open=5,close=3,boundary=3')
    assert steps == [Threshold(100), Erosion(3, 2), Dilation(5, 1),
                     Opening(5), Closing(3), Boundary(3)]


def test_parse_step_defaults():
    assert parse_step('threshold') == Threshold(128)
    assert parse_step('Erosion') == Erosion(3, 1)
    assert parse_steps('') == []


@pytest.mark.parametrize('text', ['skeleton=3', 'erode=4', 'open=3x2', 'dilate=3x0', 'threshold=abc'])
def test_parse_step_errors(text):
    with pytest.raises(ValueError):
        parse_step(text)


def test_list_tasks(capsys):
    assert main(['--list']) == 0
    out = capsys.readouterr().out
    assert 'task1' in out and 'task5' in out


def test_run_saves_panel_and_script(tmp_path, capsys):
    img = np.zeros((30, 40, 3), dtype=np.uint8)
    img[8:22, 10:30] = 230
    src = str(tmp_path / 'shapes.png')
    cv2.imwrite(src, img)
    out_dir = str(tmp_path / 'out')

    code = main(['--task', 'task4', '--image', src, '--save_dir', out_dir,
                 '--export', '--print_code'])
    assert code == 0

    panel = cv2.imread(os.path.join(out_dir, 'task4_output.png'))
    assert panel.shape == (30, 80, 3)
    assert os.path.exists(os.path.join(out_dir, 'morphology_task4.py'))
    assert 'cv2.subtract(result, eroded)' in capsys.readouterr().out


def test_custom_steps_override_task(tmp_path, capsys):
    src = str(tmp_path / 'flat.png')
    cv2.imwrite(src, np.full((10, 10, 3), 90, dtype=np.uint8))

    code = main(['--task', 'task5', '--image', src, '--steps', 'threshold=50,close=3',
                 '--save_dir', str(tmp_path), '--print_code'])
    assert code == 0
    out = capsys.readouterr().out
    assert 'cv2.MORPH_CLOSE' in out
    assert 'cv2.threshold(result, 50, 255' in out


def test_unknown_task_fails(capsys):
    assert main(['--task', 'task99']) == 1
    assert '[ERROR]' in capsys.readouterr().out


def test_bad_steps_fail(capsys):
    assert main(['--steps', 'erode=2']) == 1
    assert '[ERROR]' in capsys.readouterr().out


def test_missing_image_fails(tmp_path, capsys):
    assert main(['--image', str(tmp_path / 'missing.png'), '--save_dir', str(tmp_path)]) == 1
    assert 'No image to process' in capsys.readouterr().out


def test_unreachable_url_fails_cleanly(monkeypatch, tmp_path, capsys):
    def truncated(url, timeout):
        raise requests.exceptions.ChunkedEncodingError('connection broken')

    monkeypatch.setattr(requests, 'get', truncated)
    assert main(['--task', 'task3', '--save_dir', str(tmp_path)]) == 1
    out = capsys.readouterr().out
    assert 'Cannot fetch' in out and 'No image to process' in out
