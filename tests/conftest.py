"""Synthetic signals shared by the test modules."""
import numpy as np
import pytest

from hound_analysis.core.frames import HOP_SIZE, SAMPLE_RATE


def make_sine(freq: float, seconds: float, amp: float = 0.5, sr: int = SAMPLE_RATE) -> np.ndarray:
    t = np.arange(int(seconds * sr)) / sr
    return (amp * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def make_click_train(period: int, seconds: float, offset: int = 512, sr: int = SAMPLE_RATE) -> np.ndarray:
    """Unit impulses every `period` samples, starting one period in."""
    y = np.zeros(int(seconds * sr), dtype=np.float32)
    y[period + offset :: period] = 1.0
    return y


def make_metronome_with_tone(
    bpm: float = 120.0,
    tone_hz: float = 440.0,
    seconds: float = 30.0,
    sr: int = SAMPLE_RATE,
) -> np.ndarray:
    """Sustained tone plus short alternating-sign clicks on every beat."""
    y = make_sine(tone_hz, seconds, amp=0.3, sr=sr).astype(np.float64)
    click = 0.8 * (-1.0) ** np.arange(32)
    period = int(round(60 * sr / bpm))
    for start in range(0, len(y) - len(click), period):
        y[start : start + len(click)] += click
    return y.astype(np.float32)


@pytest.fixture
def sine_1k():
    return make_sine(1000.0, 3.0)


@pytest.fixture
def white_noise():
    rng = np.random.default_rng(0)
    return (0.3 * rng.standard_normal(3 * SAMPLE_RATE)).astype(np.float32)


@pytest.fixture
def slow_click_train():
    # 21 hops per click -> 60 * 22050 / (21 * 1024) ~= 61.5 BPM
    return make_click_train(21 * HOP_SIZE, 120.0)


@pytest.fixture
def metronome_with_tone():
    return make_metronome_with_tone()
