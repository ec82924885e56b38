from __future__ import annotations

from typing import Any


class SileroVad:
    """
    Silero neural VAD. The model scores fixed windows (512 samples at 16 kHz,
    256 at 8 kHz); a frame's score is the highest window score inside it.
    The model is stateful across calls, so one instance serves one stream.
    """

    def __init__(self, sr: int = 16000, onnx: bool = False) -> None:
        if sr not in (8000, 16000):
            raise ValueError("sr must be 8000 or 16000 for silero")
        self.sr = sr
        self.window = 512 if sr == 16000 else 256
        self.onnx = onnx
        self._model: Any = None

    def _get_model(self):
        if self._model is None:
            try:
                from silero_vad import load_silero_vad
            except ImportError as e:
                raise RuntimeError(
                    "silero-vad is not installed. Install with: python -m pip install silero-vad"
                ) from e
            self._model = load_silero_vad(onnx=self.onnx)
        return self._model

    def speech_probability(self, pcm16: bytes) -> float:
        import numpy as np
        import torch

        samples = np.frombuffer(pcm16, dtype=np.int16).astype(np.float32) / 32768.0
        if samples.size == 0:
            return 0.0
        remainder = samples.size % self.window
        if remainder:
            samples = np.concatenate([samples, np.zeros(self.window - remainder, dtype=np.float32)])

        model = self._get_model()
        best = 0.0
        for i in range(0, samples.size, self.window):
            window = torch.from_numpy(samples[i : i + self.window].copy())
            best = max(best, float(model(window, self.sr).item()))
        return best
