"""
Tempo estimation by autocorrelation of the frame energy envelope.

The envelope is the mean squared amplitude of each unwindowed analysis
frame. Candidate lags cover 60-200 BPM; the lag with the largest positive
autocorrelation score is converted back to BPM.
"""
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from hound_analysis.core.frames import FRAME_SIZE, HOP_SIZE, SAMPLE_RATE, frame_view

log = structlog.get_logger()

MIN_BPM    = 60
MAX_BPM    = 200
MIN_FRAMES = 4


@dataclass(frozen=True)
class TempoEstimate:
    bpm: Optional[float] = None
    confidence: float = 0.0


def energy_envelope(
    samples: np.ndarray,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> np.ndarray:
    frames = frame_view(np.asarray(samples, dtype=np.float64), frame_size, hop)
    return np.einsum("ij,ij->i", frames, frames) / frame_size


def lag_range(sample_rate: int = SAMPLE_RATE, hop: int = HOP_SIZE) -> range:
    """Envelope lags for MAX_BPM down to MIN_BPM (floored, so every lag stays >= MIN_BPM)."""
    min_lag = math.floor(60 * sample_rate / (MAX_BPM * hop))
    max_lag = math.floor(60 * sample_rate / (MIN_BPM * hop))
    return range(min_lag, max_lag + 1)


def lag_to_bpm(lag: int, sample_rate: int = SAMPLE_RATE, hop: int = HOP_SIZE) -> float:
    return 60 * sample_rate / (lag * hop)


def autocorrelation_scores(centered: np.ndarray, lags: range) -> np.ndarray:
    """Unnormalised sum(c[i] * c[i + lag]) for each lag."""
    n = len(centered)
    return np.array([
        float(np.dot(centered[: n - lag], centered[lag:])) if lag < n else 0.0
        for lag in lags
    ])


def estimate_tempo(
    samples: np.ndarray,
    sample_rate: int = SAMPLE_RATE,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> TempoEstimate:
    envelope = energy_envelope(samples, frame_size, hop)
    if len(envelope) < MIN_FRAMES:
        return TempoEstimate()

    centered = envelope - envelope.mean()
    lags     = lag_range(sample_rate, hop)
    scores   = autocorrelation_scores(centered, lags)

    # First strictly positive maximum wins; ties keep the shorter lag
    best_idx = int(np.argmax(scores))
    best     = float(scores[best_idx])
    if best <= 0:
        return TempoEstimate()

    total = float(np.abs(scores).sum())
    bpm   = lag_to_bpm(lags[best_idx], sample_rate, hop)
    log.debug("tempo_lag_selected", lag=lags[best_idx], score=round(best, 6), total=round(total, 6))
    return TempoEstimate(bpm=bpm, confidence=min(1.0, best / total) if total > 0 else 0.0)
