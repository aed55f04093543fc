"""Spectral shape statistics: centroid (brightness), rolloff and flatness."""
from dataclasses import dataclass

import numpy as np

from hound_analysis.core.frames import FRAME_SIZE, HOP_SIZE, SAMPLE_RATE
from hound_analysis.core.spectrum import bin_frequencies, iter_spectra

ROLLOFF_FRACTION = 0.85
LOG_FLOOR        = 1e-9


@dataclass(frozen=True)
class SpectralShape:
    brightness: float = 0.0  # Hz
    rolloff:    float = 0.0  # Hz
    flatness:   float = 0.0


def frame_statistics(magnitudes: np.ndarray, freqs: np.ndarray) -> tuple[float, float, float]:
    """(centroid, rolloff, flatness) of a single magnitude spectrum."""
    mag_sum  = float(magnitudes.sum())
    centroid = float(np.dot(freqs, magnitudes)) / mag_sum if mag_sum > 0 else 0.0

    # Lowest bin where the cumulative energy first reaches 85 % of the total
    power     = magnitudes * magnitudes
    threshold = float(power.sum()) * ROLLOFF_FRACTION
    crossed   = np.nonzero(np.cumsum(power) >= threshold)[0]
    rolloff   = float(freqs[crossed[0]]) if len(crossed) else 0.0

    geo_mean   = float(np.exp(np.mean(np.log(magnitudes + LOG_FLOOR))))
    arith_mean = mag_sum / len(magnitudes)
    flatness   = geo_mean / arith_mean if arith_mean > 0 else 0.0

    return centroid, rolloff, flatness


class SpectralAccumulator:

    def __init__(self, sample_rate: int = SAMPLE_RATE, frame_size: int = FRAME_SIZE):
        self.freqs  = bin_frequencies(sample_rate, frame_size)
        self.totals = np.zeros(3)
        self.frames = 0

    def update(self, magnitudes: np.ndarray) -> None:
        self.totals += frame_statistics(magnitudes, self.freqs)
        self.frames += 1

    def result(self) -> SpectralShape:
        if self.frames == 0:
            return SpectralShape()
        brightness, rolloff, flatness = (self.totals / self.frames).tolist()
        return SpectralShape(brightness=brightness, rolloff=rolloff, flatness=flatness)


def spectral_stats(
    samples: np.ndarray,
    sample_rate: int = SAMPLE_RATE,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> SpectralShape:
    acc = SpectralAccumulator(sample_rate, frame_size)
    for mag in iter_spectra(samples, frame_size, hop):
        acc.update(mag)
    return acc.result()
