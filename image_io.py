# Purpose: Morphology Lab - image acquisition (path / URL / data URL) and report panels
"""
Morphology Lab – Image I/O
==========================
Getting a source raster into the lab and a result back out:

  - load_image    : local path, http(s) URL or data: URL → RGB uint8 array
  - make_display  : Source | Result side-by-side panel (BGR, for cv2)
  - fit_width     : shrink a panel that is too wide for the screen

Load failures are reported and return None; the pipeline must not be run
on a missing raster.
"""

import base64
import os

import cv2
import numpy as np
import requests


URL_TIMEOUT = 15
MAX_DISPLAY_WIDTH = 1600


# ─────────────────────────────────────────────────────────────────────────────
#  LOADING
# ─────────────────────────────────────────────────────────────────────────────

def decode_image(data: bytes):
    """Decode encoded image bytes (PNG, JPEG, ...) to an RGB array."""
    buf = np.frombuffer(data, np.uint8)
    if buf.size == 0:
        return None
    bgr = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if bgr is None:
        return None
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def _read_source_bytes(source: str) -> bytes:
    if source.startswith('data:'):
        # data:image/png;base64,<payload>
        payload = source.split(',', 1)[1] if ',' in source else ''
        return base64.b64decode(payload)
    response = requests.get(source, timeout=URL_TIMEOUT)
    response.raise_for_status()
    return response.content


def load_image(source: str):
    """
    Load *source* as an RGB uint8 array of shape (H, W, 3).

    *source* can be a file path, an http(s) URL or a base64 data: URL
    (what a browser upload produces).  Returns None when the image cannot
    be fetched or decoded.
    """
    if not source:
        print('[ERROR] No image source given')
        return None

    if source.startswith(('http://', 'https://', 'data:')):
        try:
            data = _read_source_bytes(source)
        except (requests.RequestException, ValueError) as e:
            print(f'[ERROR] Cannot fetch {source[:80]}: {e}')
            return None
        image = decode_image(data)
    else:
        if not os.path.exists(source):
            print(f'[ERROR] Cannot read {source}')
            return None
        bgr = cv2.imread(source, cv2.IMREAD_COLOR)
        image = None if bgr is None else cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)

    if image is None:
        print(f'[ERROR] Cannot decode {source[:80]}')
    return image


# ─────────────────────────────────────────────────────────────────────────────
#  VISUALISATION
# ─────────────────────────────────────────────────────────────────────────────

def to_bgr(raster: np.ndarray) -> np.ndarray:
    """RGB / RGBA / grayscale raster → 3-channel BGR for cv2 drawing."""
    if raster.ndim == 2:
        return cv2.cvtColor(raster, cv2.COLOR_GRAY2BGR)
    if raster.shape[2] == 1:
        return cv2.cvtColor(np.ascontiguousarray(raster[:, :, 0]), cv2.COLOR_GRAY2BGR)
    return cv2.cvtColor(np.ascontiguousarray(raster[:, :, :3]), cv2.COLOR_RGB2BGR)


def annotate(img: np.ndarray, text: str, color=(50, 230, 50)) -> np.ndarray:
    out = img.copy()
    cv2.putText(out, text, (8, 26), cv2.FONT_HERSHEY_SIMPLEX,
                0.6, (0, 0, 0), 4)
    cv2.putText(out, text, (8, 26), cv2.FONT_HERSHEY_SIMPLEX,
                0.6, color, 2)
    return out


def make_display(source: np.ndarray, result: np.ndarray,
                 label: str = '') -> np.ndarray:
    """
    2-panel display:
    Source | Result (after the full pipeline)
    """
    row = np.hstack([annotate(to_bgr(source), 'Source'),
                     annotate(to_bgr(result), 'Result')])

    if label:
        H = row.shape[0]
        cv2.putText(row, label, (10, H - 8),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.45, (160, 160, 160), 1)
    return row


def fit_width(disp: np.ndarray, max_width: int = MAX_DISPLAY_WIDTH) -> np.ndarray:
    if disp.shape[1] <= max_width:
        return disp
    scale = max_width / disp.shape[1]
    return cv2.resize(disp, (int(disp.shape[1] * scale),
                             max(1, int(disp.shape[0] * scale))))
