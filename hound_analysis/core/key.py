"""
Key detection — chroma accumulation + Krumhansl-Schmuckler profiles.

Every spectrum bin at or above 40 Hz is folded onto its nearest
equal-tempered pitch class and its magnitude added to a 12-bin chroma
vector. The normalised chroma is scored against the major and minor
profiles at all 12 rotations; the better profile picks the mode and its
rotation picks the tonic.
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import numpy as np

from hound_analysis.core.frames import FRAME_SIZE, HOP_SIZE, SAMPLE_RATE
from hound_analysis.core.spectrum import bin_frequencies, iter_spectra

KEYS = ["C","C#","D","D#","E","F","F#","G","G#","A","A#","B"]

# Krumhansl-Schmuckler key profiles
_KS_MAJOR = np.array([6.35,2.23,3.48,2.33,4.38,4.09,2.52,5.19,2.39,3.66,2.29,2.88])
_KS_MINOR = np.array([6.33,2.68,3.52,5.38,2.60,3.53,2.54,4.75,3.98,2.69,3.34,3.17])

MIN_CHROMA_HZ   = 40.0
CONFIDENCE_NORM = 10.0


@dataclass(frozen=True)
class KeyEstimate:
    key: Optional[str] = None
    mode: Optional[str] = None   # "major" / "minor"
    confidence: float = 0.0


@lru_cache
def pitch_class_map(
    sample_rate: int = SAMPLE_RATE,
    frame_size: int = FRAME_SIZE,
) -> tuple[np.ndarray, np.ndarray]:
    """
    (bin indices, pitch classes) for the bins that contribute to chroma.
    Bin 0 (DC) and anything below 40 Hz are skipped.
    """
    import librosa

    freqs = bin_frequencies(sample_rate, frame_size)
    bins  = np.nonzero((np.arange(len(freqs)) >= 1) & (freqs >= MIN_CHROMA_HZ))[0]
    # Half-way values round up, not to even
    midi  = np.floor(librosa.hz_to_midi(freqs[bins]) + 0.5).astype(int)
    pcs   = np.mod(midi, 12)
    bins.setflags(write=False)
    pcs.setflags(write=False)
    return bins, pcs


class ChromaAccumulator:

    def __init__(self, sample_rate: int = SAMPLE_RATE, frame_size: int = FRAME_SIZE):
        self.bins, self.pitch_classes = pitch_class_map(sample_rate, frame_size)
        self.chroma = np.zeros(12)

    def update(self, magnitudes: np.ndarray) -> None:
        self.chroma += np.bincount(
            self.pitch_classes, weights=magnitudes[self.bins], minlength=12
        )

    def result(self) -> KeyEstimate:
        return estimate_key_from_chroma(self.chroma)


def _best_rotation(chroma_norm: np.ndarray, profile: np.ndarray) -> tuple[int, float]:
    """Offset o maximising sum_i chroma[(i + o) % 12] * profile[i]; first offset wins ties."""
    best_key, best_score = 0, -np.inf
    for offset in range(12):
        score = float(np.dot(np.roll(chroma_norm, -offset), profile))
        if score > best_score:
            best_key, best_score = offset, score
    return best_key, best_score


def estimate_key_from_chroma(chroma: np.ndarray) -> KeyEstimate:
    chroma = np.asarray(chroma, dtype=np.float64)
    total  = float(chroma.sum())
    if total == 0:
        return KeyEstimate()

    chroma_norm = chroma / total
    major = _best_rotation(chroma_norm, _KS_MAJOR)
    minor = _best_rotation(chroma_norm, _KS_MINOR)

    mode   = "major" if major[1] >= minor[1] else "minor"
    chosen = major if mode == "major" else minor
    # Empirical normaliser, not a probability
    confidence = min(1.0, abs(chosen[1]) / CONFIDENCE_NORM)
    return KeyEstimate(key=KEYS[chosen[0]], mode=mode, confidence=confidence)


def estimate_key(
    samples: np.ndarray,
    sample_rate: int = SAMPLE_RATE,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> KeyEstimate:
    acc = ChromaAccumulator(sample_rate, frame_size)
    for mag in iter_spectra(samples, frame_size, hop):
        acc.update(mag)
    return acc.result()
