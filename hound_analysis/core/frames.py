"""
Frame/window engine.

Frames are read-only views into the sample buffer: frame i starts at
i * HOP_SIZE and the sequence stops before the first frame that would run
past the end of the buffer. A trailing partial frame is dropped, never
zero-padded, so a buffer shorter than FRAME_SIZE has no frames at all.
"""
from functools import lru_cache
from typing import Iterator

import numpy as np

SAMPLE_RATE = 22050
FRAME_SIZE  = 2048
HOP_SIZE    = 1024
MAX_SECONDS = 120


@lru_cache
def hann_window(frame_size: int = FRAME_SIZE) -> np.ndarray:
    """Symmetric Hann window, 0.5 - 0.5*cos(2*pi*n/(L-1))."""
    win = np.hanning(frame_size)
    win.setflags(write=False)
    return win


def frame_count(n_samples: int, frame_size: int = FRAME_SIZE, hop: int = HOP_SIZE) -> int:
    if n_samples < frame_size:
        return 0
    return (n_samples - frame_size) // hop + 1


def iter_frames(
    samples: np.ndarray,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> Iterator[np.ndarray]:
    """Lazily yield read-only frame views. Each call starts a fresh cursor."""
    samples = np.asarray(samples)
    for i in range(frame_count(len(samples), frame_size, hop)):
        start = i * hop
        frame = samples[start : start + frame_size]
        frame.flags.writeable = False
        yield frame


def frame_view(
    samples: np.ndarray,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> np.ndarray:
    """
    All frames at once as a (n_frames, frame_size) strided view.
    Used by consumers that only need per-frame reductions (tempo envelope).
    """
    samples = np.asarray(samples)
    n = frame_count(len(samples), frame_size, hop)
    if n == 0:
        return np.empty((0, frame_size), dtype=samples.dtype)
    view = np.lib.stride_tricks.sliding_window_view(samples, frame_size)[::hop]
    return view[:n]


def windowed(frame: np.ndarray) -> np.ndarray:
    """Transient windowed copy of one frame; the frame itself is untouched."""
    return frame * hann_window(len(frame))
