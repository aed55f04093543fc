"""
Mel filterbank and MFCC statistics.

The filterbank uses the HTK mel formula (2595 * log10(1 + hz/700)) with 26
triangular bands between 0 Hz and Nyquist. Per frame the band energies are
log-compressed with log10(e + 1e-9) and projected onto 13 cosine basis
vectors. Across frames only the mean and population variance are kept.
"""
from functools import lru_cache

import numpy as np

from hound_analysis.core.frames import FRAME_SIZE, HOP_SIZE, SAMPLE_RATE
from hound_analysis.core.spectrum import iter_spectra

N_MFCC      = 13
N_MEL_BANDS = 26
LOG_FLOOR   = 1e-9


@lru_cache
def mel_filterbank(
    sample_rate: int = SAMPLE_RATE,
    frame_size: int = FRAME_SIZE,
    n_bands: int = N_MEL_BANDS,
) -> np.ndarray:
    """(n_bands, frame_size // 2) triangular weights, built once per configuration."""
    import librosa

    n_bins  = frame_size // 2
    min_mel = librosa.hz_to_mel(0.0, htk=True)
    max_mel = librosa.hz_to_mel(sample_rate / 2, htk=True)
    mel_points = min_mel + np.arange(n_bands + 2) / (n_bands + 1) * (max_mel - min_mel)
    hz_points  = librosa.mel_to_hz(mel_points, htk=True)
    edges = np.floor((frame_size + 1) * hz_points / sample_rate).astype(int)

    bank = np.zeros((n_bands, n_bins))
    for m in range(1, n_bands + 1):
        left, center, right = edges[m - 1], edges[m], edges[m + 1]
        for k in range(max(left, 0), min(center, n_bins)):
            bank[m - 1, k] = (k - left) / max(1, center - left)
        for k in range(max(center, 0), min(right, n_bins)):
            bank[m - 1, k] = (right - k) / max(1, right - center)

    bank.setflags(write=False)
    return bank


@lru_cache
def dct_basis(n_in: int = N_MEL_BANDS, n_out: int = N_MFCC) -> np.ndarray:
    """Unscaled DCT-II basis: cos(pi/N * (n + 0.5) * k)."""
    k = np.arange(n_out)[:, None]
    n = np.arange(n_in)[None, :]
    basis = np.cos(np.pi / n_in * (n + 0.5) * k)
    basis.setflags(write=False)
    return basis


class MfccAccumulator:
    """Folds magnitude spectra into per-frame MFCC vectors."""

    def __init__(self, sample_rate: int = SAMPLE_RATE, frame_size: int = FRAME_SIZE):
        self.bank  = mel_filterbank(sample_rate, frame_size)
        self.basis = dct_basis()
        self.frames: list[np.ndarray] = []

    def update(self, magnitudes: np.ndarray) -> None:
        log_mel = np.log10(self.bank @ magnitudes + LOG_FLOOR)
        self.frames.append(self.basis @ log_mel)

    def result(self) -> tuple[np.ndarray, np.ndarray]:
        """(mean, variance), both 13 zeros when no frame was seen."""
        if not self.frames:
            return np.zeros(N_MFCC), np.zeros(N_MFCC)
        coeffs = np.vstack(self.frames)
        return coeffs.mean(axis=0), coeffs.var(axis=0)


def mfcc_stats(
    samples: np.ndarray,
    sample_rate: int = SAMPLE_RATE,
    frame_size: int = FRAME_SIZE,
    hop: int = HOP_SIZE,
) -> tuple[np.ndarray, np.ndarray]:
    acc = MfccAccumulator(sample_rate, frame_size)
    for mag in iter_spectra(samples, frame_size, hop):
        acc.update(mag)
    return acc.result()
