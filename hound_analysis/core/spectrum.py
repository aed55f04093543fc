"""Spectral engine: magnitude spectra of windowed frames."""
from functools import lru_cache
from typing import Iterator

import numpy as np

from hound_analysis.core.frames import FRAME_SIZE, HOP_SIZE, SAMPLE_RATE, iter_frames, windowed


def magnitude_spectrum(frame: np.ndarray) -> np.ndarray:
    """
    FFT of the Hann-windowed frame, keeping only the first L/2 bins.
    Phase is discarded; only |X[k]| = sqrt(re^2 + im^2) survives.
    """
    size = len(frame)
    spectrum = np.fft.rfft(windowed(frame), n=size)
    return np.abs(spectrum[: size // 2])


@lru_cache
def bin_frequencies(sample_rate: int = SAMPLE_RATE, frame_size: int = FRAME_SIZE) -> np.ndarray:
    freqs = np.arange(frame_size // 2) * sample_rate / frame_size
    freqs.setflags(write=False)
    return freqs


def iter_spectra(
    samples: np.ndarray,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> Iterator[np.ndarray]:
    for frame in iter_frames(samples, frame_size, hop):
        yield magnitude_spectrum(frame)
