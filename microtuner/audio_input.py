"""
Microphone capture feeding the tuner engine.
"""

import logging

import numpy as np
import sounddevice as sd

from .constants import HOP_SIZE
from .tuner import TunerEngine

logger = logging.getLogger(__name__)


class AudioInput:
    """
    Mono input stream delivering fixed-size blocks to a TunerEngine.

    The engine is driven from the sounddevice callback thread. Input levels
    are kept for level meters.
    """

    def __init__(
        self,
        engine: TunerEngine,
        device: int | str | None = None,
        block_size: int = HOP_SIZE,
        sample_rate: float | None = None,
    ):
        """
        Initialize audio input.

        Args:
            engine: Engine that processes each block
            device: Input device (None = default device)
            block_size: Samples per callback
            sample_rate: Stream sample rate; the device default when None
        """
        self.engine = engine
        self.device = device
        self.block_size = block_size
        self.sample_rate = sample_rate

        self._stream = None
        self.rms = 0.0
        self.peak = 0.0

    @property
    def is_active(self) -> bool:
        return self._stream is not None

    def _device_sample_rate(self) -> float:
        info = sd.query_devices(self.device, "input")
        return float(info["default_samplerate"])

    def start(self):
        """
        Open the input stream and start the engine.

        Raises:
            sounddevice.PortAudioError: If the device cannot be opened
        """
        if self._stream is not None:
            return

        sample_rate = self.sample_rate or self._device_sample_rate()
        self.engine.set_sample_rate(sample_rate)

        stream = sd.InputStream(
            device=self.device,
            samplerate=sample_rate,
            blocksize=self.block_size,
            channels=1,
            dtype=np.float32,
            callback=self._audio_callback,
        )
        stream.start()
        self._stream = stream
        self.engine.start()
        logger.info("Audio input started at %.0f Hz", sample_rate)

    def stop(self):
        """Close the stream and stop the engine."""
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        self.engine.stop()

    def _audio_callback(self, indata, frames, time, status):
        """Audio callback - process incoming audio."""
        if status:
            logger.debug("Input stream status: %s", status)

        audio = indata[:, 0]
        self.rms = float(np.sqrt(np.mean(audio**2))) if len(audio) else 0.0
        self.peak = float(np.max(np.abs(audio))) if len(audio) else 0.0

        self.engine.process(audio)
