from __future__ import annotations


class WebRtcVad:
    """
    WebRTC VAD expects:
      - 16-bit mono PCM
      - sample rate: 8000/16000/32000/48000
      - frame size: 10/20/30 ms
    Longer frames are split into sub-frames; the score is the fraction
    of sub-frames classified as speech.
    aggressiveness: 0 (least) .. 3 (most aggressive)
    """
    def __init__(self, sr: int = 16000, frame_ms: int = 30, aggressiveness: int = 2):
        if frame_ms not in (10, 20, 30):
            raise ValueError("frame_ms must be 10/20/30")
        if sr not in (8000, 16000, 32000, 48000):
            raise ValueError("sr must be one of 8000/16000/32000/48000")
        self.sr = sr
        self.frame_ms = frame_ms
        self.frame_bytes = int(sr * frame_ms / 1000) * 2  # int16 => 2 bytes
        try:
            import webrtcvad
        except ImportError as e:
            raise RuntimeError(
                "webrtcvad is not installed. Install with: python -m pip install webrtcvad"
            ) from e
        self.vad = webrtcvad.Vad(aggressiveness)

    def speech_probability(self, pcm16: bytes) -> float:
        total = 0
        voiced = 0
        for i in range(0, len(pcm16) - self.frame_bytes + 1, self.frame_bytes):
            total += 1
            if self.vad.is_speech(pcm16[i : i + self.frame_bytes], self.sr):
                voiced += 1
        if total == 0:
            return 0.0
        return voiced / float(total)
