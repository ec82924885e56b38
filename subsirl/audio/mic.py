from __future__ import annotations

import contextlib
import threading
import time
import wave
from pathlib import Path
from typing import Iterator, Optional

from subsirl.contracts import AudioChunk


class MicError(RuntimeError):
    pass


_UNSET = object()


class SoundDeviceMicSource:
    """
    Live microphone source using the `sounddevice` package (PortAudio).
    Captures raw PCM16 frames of `frame_samples` samples each.

    The capture device is exclusive: one open stream per source. A device
    switch closes the active stream before the next one is opened.
    """

    def __init__(
        self,
        *,
        frame_samples: int = 1536,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Optional[int] = None,
    ) -> None:
        if frame_samples <= 0:
            raise ValueError("frame_samples must be > 0")
        if sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if channels not in (1, 2):
            raise ValueError("channels must be 1 or 2 (for now)")

        self.frame_samples = int(frame_samples)
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.device = device
        self._active = threading.Lock()
        self._switch_lock = threading.Lock()
        self._pending_device: object = _UNSET

    @staticmethod
    def list_devices() -> str:
        try:
            import sounddevice as sd
        except ImportError as e:
            raise MicError(
                "sounddevice is not installed. Install with: python -m pip install sounddevice"
            ) from e
        return str(sd.query_devices())

    def switch_device(self, device: Optional[int]) -> None:
        """Request a new input device; takes effect at the next frame boundary."""
        with self._switch_lock:
            if self._active.locked():
                self._pending_device = device
            else:
                self.device = device

    @contextlib.contextmanager
    def _open_stream(self):
        try:
            import sounddevice as sd
        except ImportError as e:
            raise MicError(
                "sounddevice is not installed. Install with: python -m pip install sounddevice"
            ) from e

        try:
            stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
                blocksize=self.frame_samples,
            )
        except Exception as e:
            raise MicError(
                "Failed to open microphone stream. "
                "Try --list-devices and select a device id with --device."
            ) from e

        with stream:
            yield stream

    def chunks(self) -> Iterator[AudioChunk]:
        if not self._active.acquire(blocking=False):
            raise MicError("Microphone stream is already active for this source.")
        try:
            frames_seen = 0
            while True:
                with self._open_stream() as stream:
                    while self._pending_device is _UNSET:
                        data, overflowed = stream.read(self.frame_samples)
                        if overflowed:
                            # Keep going; overflow just means PortAudio dropped frames.
                            pass

                        start_time = frames_seen / self.sample_rate
                        frames_seen += self.frame_samples
                        yield AudioChunk(
                            pcm16=bytes(data),
                            sample_rate=self.sample_rate,
                            channels=self.channels,
                            start_time=start_time,
                            duration=self.frame_samples / self.sample_rate,
                        )
                # Stream is closed here; only now pick up the new device.
                with self._switch_lock:
                    self._apply_pending_device()
        finally:
            with self._switch_lock:
                self._apply_pending_device()
                self._active.release()

    def _apply_pending_device(self) -> None:
        if self._pending_device is not _UNSET:
            self.device = self._pending_device  # type: ignore[assignment]
            self._pending_device = _UNSET


class WavFileSource:
    """Replay a PCM16 WAV file as a stream of fixed-size frames."""

    def __init__(self, path: str | Path, *, frame_samples: int = 1536, realtime: bool = False) -> None:
        if frame_samples <= 0:
            raise ValueError("frame_samples must be > 0")
        self.path = Path(path)
        self.frame_samples = int(frame_samples)
        self.realtime = realtime

    def chunks(self) -> Iterator[AudioChunk]:
        if not self.path.exists():
            raise MicError(f"Input WAV not found: {self.path}")
        with wave.open(str(self.path), "rb") as wf:
            if wf.getsampwidth() != 2:
                raise MicError(f"Input WAV must be 16-bit PCM: {self.path}")
            sample_rate = wf.getframerate()
            channels = wf.getnchannels()
            frames_seen = 0
            while True:
                data = wf.readframes(self.frame_samples)
                if not data:
                    return
                frame_bytes = self.frame_samples * channels * 2
                if len(data) < frame_bytes:
                    # zero-pad the final partial frame
                    data = data + b"\x00" * (frame_bytes - len(data))
                duration = self.frame_samples / sample_rate
                yield AudioChunk(
                    pcm16=data,
                    sample_rate=sample_rate,
                    channels=channels,
                    start_time=frames_seen / sample_rate,
                    duration=duration,
                )
                frames_seen += self.frame_samples
                if self.realtime:
                    time.sleep(duration)
