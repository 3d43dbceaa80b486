"""
Audio helpers for the narrated lesson
Decodes base64 PCM16 speech and keeps at most one buffer playing
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from backend.errors import PlaybackFailure
from utils.config import AUDIO_SAMPLE_RATE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioBuffer:
    """Mono float32 samples in [-1.0, 1.0]"""
    samples: np.ndarray
    sample_rate: int = AUDIO_SAMPLE_RATE
    channels: int = 1

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def duration(self) -> float:
        """Length in seconds"""
        return len(self.samples) / self.sample_rate


def decode_pcm16(audio_b64: str, sample_rate: int = AUDIO_SAMPLE_RATE) -> AudioBuffer:
    """
    Decode base64 16-bit signed little-endian mono PCM.

    Raises:
        PlaybackFailure: If the payload is not valid base64 PCM16
    """
    if not audio_b64:
        raise PlaybackFailure("No audio data")

    try:
        raw = base64.b64decode(audio_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PlaybackFailure(f"Invalid base64 audio: {e}") from e

    if len(raw) % 2:
        raise PlaybackFailure(f"PCM16 payload has odd length ({len(raw)} bytes)")

    samples = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


class AudioPlayer:
    """
    Scoped playback handle.

    The sink receives each buffer to play (st.audio in the UI). Starting a
    new buffer stops the previous one first, so two never overlap.
    """

    def __init__(self, sink: Callable[[AudioBuffer], None], on_stop: Optional[Callable[[], None]] = None):
        self._sink = sink
        self._on_stop = on_stop
        self.current: Optional[AudioBuffer] = None
        self.closed = False

    @property
    def is_playing(self) -> bool:
        return self.current is not None

    def play(self, buffer: AudioBuffer):
        if self.closed:
            raise PlaybackFailure("Audio player is closed")
        self.stop()
        try:
            self._sink(buffer)
        except Exception as e:
            logger.error(f"Playback failed: {type(e).__name__}: {str(e)}")
            raise PlaybackFailure(str(e)) from e
        self.current = buffer
        logger.info(f"Playing {buffer.duration:.1f}s of narration")

    def stop(self):
        if self.current is None:
            return
        self.current = None
        if self._on_stop:
            self._on_stop()

    def close(self):
        """Release the buffer when the learner starts over; the player is not reused."""
        self.stop()
        self.closed = True
