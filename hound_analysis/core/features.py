"""
Pure synchronous feature extraction over one in-memory sample buffer.

Single pass over the frames:
  Each frame is windowed and transformed once; the magnitude spectrum feeds
  the MFCC, spectral-shape and chroma accumulators.
  Tempo and the energy curve read the raw samples directly (no FFT).

Short or silent buffers never raise: every component falls back to its
zero/None defaults so the result stays structurally comparable.
"""
from dataclasses import dataclass, field

import numpy as np
import structlog

from hound_analysis.core.energy import ENERGY_BINS, energy_curve_summary
from hound_analysis.core.frames import FRAME_SIZE, HOP_SIZE, SAMPLE_RATE, frame_count
from hound_analysis.core.key import ChromaAccumulator, KeyEstimate
from hound_analysis.core.mfcc import N_MFCC, MfccAccumulator
from hound_analysis.core.spectral import SpectralAccumulator, SpectralShape
from hound_analysis.core.spectrum import iter_spectra
from hound_analysis.core.tempo import TempoEstimate, estimate_tempo

log = structlog.get_logger()


@dataclass(frozen=True)
class TrackFeatures:
    """Everything the embedding is built from, for one track."""

    mfcc_mean:    np.ndarray = field(default_factory=lambda: np.zeros(N_MFCC))
    mfcc_var:     np.ndarray = field(default_factory=lambda: np.zeros(N_MFCC))
    spectral:     SpectralShape = field(default_factory=SpectralShape)
    tempo:        TempoEstimate = field(default_factory=TempoEstimate)
    key:          KeyEstimate = field(default_factory=KeyEstimate)
    energy_curve: np.ndarray = field(default_factory=lambda: np.zeros(ENERGY_BINS))


def extract(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> TrackFeatures:
    """Run every analysis component on `samples` and collect the results."""
    n_frames = frame_count(len(samples), FRAME_SIZE, HOP_SIZE)
    log.info("feature_extraction_start",
             samples=len(samples), frames=n_frames,
             analysed_sec=round(len(samples) / sample_rate, 2))

    # ── Spectral pass: one FFT per frame, three consumers ────────────────────
    mfcc_acc     = MfccAccumulator(sample_rate, FRAME_SIZE)
    spectral_acc = SpectralAccumulator(sample_rate, FRAME_SIZE)
    chroma_acc   = ChromaAccumulator(sample_rate, FRAME_SIZE)
    for mag in iter_spectra(samples, FRAME_SIZE, HOP_SIZE):
        mfcc_acc.update(mag)
        spectral_acc.update(mag)
        chroma_acc.update(mag)

    mfcc_mean, mfcc_var = mfcc_acc.result()
    spectral = spectral_acc.result()
    key      = chroma_acc.result()
    log.info("key_result", key=key.key, mode=key.mode, conf=round(key.confidence, 3))

    # ── Time-domain pass ─────────────────────────────────────────────────────
    tempo = estimate_tempo(samples, sample_rate, FRAME_SIZE, HOP_SIZE)
    log.info("bpm_detected",
             bpm=round(tempo.bpm, 1) if tempo.bpm is not None else None,
             conf=round(tempo.confidence, 3))

    energy_curve = energy_curve_summary(samples, sample_rate)

    features = TrackFeatures(
        mfcc_mean=mfcc_mean,
        mfcc_var=mfcc_var,
        spectral=spectral,
        tempo=tempo,
        key=key,
        energy_curve=energy_curve,
    )
    log.info("feature_extraction_complete",
             brightness=round(spectral.brightness, 2),
             rolloff=round(spectral.rolloff, 2),
             flatness=round(spectral.flatness, 4))
    return features
