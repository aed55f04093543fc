import numpy as np
import pytest
import soundfile as sf

from hound_analysis.core.embedding import EMBEDDING_DIM, EMBEDDING_VERSION
from hound_analysis.core.frames import FRAME_SIZE, MAX_SECONDS, SAMPLE_RATE
from hound_analysis.core.pipeline import (
    AnalysisRequest,
    STAGE_PROGRESS,
    Stage,
    iter_analysis_events,
    run_analysis,
)
from hound_analysis.schemas.track import CompleteEvent, ErrorEvent, ProgressEvent

from conftest import make_sine


def _events(**kwargs):
    return list(iter_analysis_events(AnalysisRequest(track_id="t-1", **kwargs)))


def test_event_stream_shape():
    events = _events(samples=make_sine(330.0, 2.0))

    progress = [e for e in events if isinstance(e, ProgressEvent)]
    assert [e.stage for e in progress] == ["decode", "features", "embedding", "finalize"]
    assert [e.progress for e in progress] == [0.1, 0.4, 0.8, 1.0]
    assert all(e.track_id == "t-1" for e in events)

    assert isinstance(events[-1], CompleteEvent)
    assert sum(isinstance(e, (CompleteEvent, ErrorEvent)) for e in events) == 1


def test_stage_progress_table():
    assert list(STAGE_PROGRESS) == [Stage.DECODE, Stage.FEATURES, Stage.EMBEDDING, Stage.FINALIZE]
    assert Stage.DONE not in STAGE_PROGRESS


def test_end_to_end_metronome_and_a4(metronome_with_tone):
    events = _events(samples=metronome_with_tone, loudness_lufs=-14.2)
    record = events[-1].result

    assert record.bpm == pytest.approx(120, abs=3)
    assert record.key == "A"
    assert record.mode in ("major", "minor")
    assert record.key_confidence > 0
    assert len(record.embedding) == EMBEDDING_DIM
    assert np.linalg.norm(record.embedding) == pytest.approx(1.0, abs=1e-6)
    assert record.embedding_version == EMBEDDING_VERSION
    assert record.loudness_lufs == -14.2
    assert record.duration_sec == pytest.approx(30.0)


def test_buffer_shorter_than_one_frame():
    events = _events(samples=make_sine(440.0, (FRAME_SIZE - 1) / SAMPLE_RATE))
    record = events[-1].result

    assert record.timbre_stats.mfcc_mean == (0.0,) * 13
    assert record.timbre_stats.mfcc_var == (0.0,) * 13
    assert record.timbre_stats.brightness == 0.0
    assert record.timbre_stats.rolloff == 0.0
    assert record.timbre_stats.flatness == 0.0
    assert (record.bpm, record.bpm_confidence) == (None, 0.0)
    assert (record.key, record.mode, record.key_confidence) == (None, None, 0.0)
    assert len(record.embedding) == EMBEDDING_DIM
    assert np.linalg.norm(record.embedding) == pytest.approx(1.0, abs=1e-6)


def test_empty_buffer_still_completes():
    record = _events(samples=np.zeros(0, dtype=np.float32))[-1].result
    assert record.duration_sec == 0.0
    assert record.energy_curve_summary == (0.0,) * 16


def test_runs_are_bit_identical():
    rng = np.random.default_rng(7)
    samples = (make_sine(220.0, 4.0) + 0.05 * rng.standard_normal(4 * SAMPLE_RATE)).astype(np.float32)

    first = _events(samples=samples)[-1].result
    second = _events(samples=samples.copy())[-1].result
    assert first.model_dump() == second.model_dump()


def test_probed_duration_wins_over_sample_count():
    record = _events(samples=make_sine(440.0, 1.0), duration_sec=245.3)[-1].result
    assert record.duration_sec == 245.3


def test_input_is_truncated_to_max_seconds():
    record = _events(samples=make_sine(440.0, 3.0), max_seconds=2)[-1].result
    assert record.duration_sec == pytest.approx(2.0)


def test_max_seconds_cannot_exceed_the_cap():
    record = _events(samples=make_sine(440.0, 150.0), max_seconds=300)[-1].result
    assert record.duration_sec == pytest.approx(float(MAX_SECONDS))


def test_pcm_bytes_request():
    pcm = make_sine(440.0, 1.0).astype("<f4").tobytes()
    record = _events(pcm=pcm)[-1].result
    assert record.duration_sec == pytest.approx(1.0)


def test_audio_path_request_uses_probe(tmp_path):
    path = tmp_path / "tone.wav"
    sf.write(path, make_sine(440.0, 2.0), SAMPLE_RATE)

    record = _events(audio_path=str(path))[-1].result
    assert record.duration_sec == pytest.approx(2.0)
    assert record.key == "A"


def test_malformed_buffer_ends_with_single_error():
    events = _events(samples=np.zeros((2, 4096), dtype=np.float32))

    assert isinstance(events[-1], ErrorEvent)
    assert events[-1].track_id == "t-1"
    assert "mono" in events[-1].error
    assert not any(isinstance(e, CompleteEvent) for e in events)
    assert sum(isinstance(e, ErrorEvent) for e in events) == 1


def test_non_finite_samples_are_rejected():
    samples = make_sine(440.0, 1.0)
    samples[100] = np.nan
    assert isinstance(_events(samples=samples)[-1], ErrorEvent)


def test_missing_audio_is_an_error():
    events = _events()
    assert isinstance(events[-1], ErrorEvent)
    assert events[-1].error


def test_unreadable_file_is_an_error(tmp_path):
    path = tmp_path / "broken.wav"
    path.write_bytes(b"not audio at all")
    event = _events(audio_path=str(path))[-1]
    assert isinstance(event, ErrorEvent)
    assert event.error.startswith("Could not decode audio file")


def test_run_analysis_forwards_every_event():
    seen = []
    terminal = run_analysis(AnalysisRequest(track_id="t-2", samples=make_sine(440.0, 1.0)), seen.append)
    assert seen[-1] is terminal
    assert len(seen) == 5
    assert isinstance(terminal, CompleteEvent)


def test_consumer_can_stop_early():
    stream = iter_analysis_events(AnalysisRequest(track_id="t-3", samples=make_sine(440.0, 1.0)))
    first = next(stream)
    stream.close()
    assert first.stage == "decode"
    assert list(stream) == []
