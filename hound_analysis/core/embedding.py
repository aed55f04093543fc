"""
Embedding assembler.

The layout below is positional. Consumers compare embeddings dimension by
dimension, so any change to the blocks, their order or their scaling must
bump EMBEDDING_VERSION.
"""
import numpy as np

from hound_analysis.core.features import TrackFeatures
from hound_analysis.core.frames import SAMPLE_RATE
from hound_analysis.core.key import KEYS

EMBEDDING_VERSION = 1
BPM_SCALE = 200.0

EMBEDDING_LAYOUT: list[tuple[str, int]] = [
    ("mfcc_mean",    13),
    ("mfcc_var",     13),
    ("brightness",    1),
    ("rolloff",       1),
    ("flatness",      1),
    ("bpm",           1),
    ("key",          12),
    ("mode",          1),
    ("energy_curve", 16),
]
EMBEDDING_DIM = sum(size for _, size in EMBEDDING_LAYOUT)


def embedding_slice(name: str) -> slice:
    """Position of a named block inside the embedding."""
    start = 0
    for block, size in EMBEDDING_LAYOUT:
        if block == name:
            return slice(start, start + size)
        start += size
    raise KeyError(name)


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Unit-length copy of `vector`; the zero vector stays zero."""
    vector = np.asarray(vector, dtype=np.float64)
    norm = float(np.sqrt(np.sum(vector * vector))) or 1.0
    return vector / norm


def feature_vector(features: TrackFeatures, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Raw, un-normalised vector in EMBEDDING_LAYOUT order."""
    nyquist = sample_rate / 2

    key_one_hot = np.zeros(len(KEYS))
    if features.key.key is not None:
        key_one_hot[KEYS.index(features.key.key)] = 1.0

    bpm = features.tempo.bpm
    blocks = [
        features.mfcc_mean,
        features.mfcc_var,
        [features.spectral.brightness / nyquist],
        [features.spectral.rolloff / nyquist],
        [features.spectral.flatness],
        [bpm / BPM_SCALE if bpm is not None else 0.0],
        key_one_hot,
        [0.0 if features.key.mode == "minor" else 1.0],
        features.energy_curve,
    ]
    vector = np.concatenate([np.asarray(b, dtype=np.float64) for b in blocks])
    if len(vector) != EMBEDDING_DIM:
        raise ValueError(f"feature vector has {len(vector)} dims, expected {EMBEDDING_DIM}")
    return vector


def build_embedding(features: TrackFeatures, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    return l2_normalize(feature_vector(features, sample_rate))
