"""Tests for the microphone adapter with a fake input stream."""

import numpy as np
import pytest

try:
    import sounddevice as sd
except OSError:
    pytest.skip("PortAudio library not available", allow_module_level=True)

from microtuner import FFT_SIZE, HOP_SIZE
from microtuner.audio_input import AudioInput
from microtuner.tuner import TunerEngine


class FakeInputStream:
    """Records how the stream was opened and used."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


@pytest.fixture
def fake_stream(monkeypatch):
    streams = []

    def make_stream(**kwargs):
        stream = FakeInputStream(**kwargs)
        streams.append(stream)
        return stream

    monkeypatch.setattr(sd, "InputStream", make_stream)
    monkeypatch.setattr(sd, "query_devices", lambda device, kind: {"default_samplerate": 48000.0})
    return streams


class TestAudioInput:
    """Stream lifecycle and callback."""

    def test_start_uses_device_sample_rate(self, fake_stream):
        engine = TunerEngine()
        audio = AudioInput(engine)

        audio.start()

        stream = fake_stream[0]
        assert stream.started
        assert stream.kwargs["samplerate"] == 48000.0
        assert stream.kwargs["blocksize"] == HOP_SIZE
        assert stream.kwargs["channels"] == 1
        assert engine.sample_rate == 48000.0
        assert engine.is_running
        assert audio.is_active

    def test_explicit_sample_rate(self, fake_stream):
        engine = TunerEngine()
        AudioInput(engine, sample_rate=44100).start()

        assert fake_stream[0].kwargs["samplerate"] == 44100
        assert engine.sample_rate == 44100

    def test_start_twice_opens_one_stream(self, fake_stream):
        audio = AudioInput(TunerEngine())
        audio.start()
        audio.start()

        assert len(fake_stream) == 1

    def test_stop(self, fake_stream):
        engine = TunerEngine()
        audio = AudioInput(engine)
        audio.start()
        audio.stop()

        assert fake_stream[0].closed
        assert not audio.is_active
        assert not engine.is_running

    def test_callback_feeds_engine(self, fake_stream):
        engine = TunerEngine()
        audio = AudioInput(engine, sample_rate=44100, block_size=FFT_SIZE)
        audio.start()
        t = np.arange(FFT_SIZE) / 44100
        block = (0.5 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32).reshape(-1, 1)

        audio._audio_callback(block, FFT_SIZE, None, None)

        assert engine.state.note_name == "A4"
        assert audio.peak == pytest.approx(0.5, abs=0.01)
        assert audio.rms == pytest.approx(0.5 / np.sqrt(2), abs=0.01)
