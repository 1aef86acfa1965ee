from __future__ import annotations

import io
import logging
import wave
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from meetai.capture import CaptureConstraints

logger = logging.getLogger(__name__)


def _to_mono_int16_left(indata: np.ndarray) -> Tuple[bytes, float]:
    """
    Convert sounddevice callback 'indata' into mono PCM16 little-endian bytes.
    Uses LEFT channel only (avoids phase-cancellation artifacts from stereo system audio).
    Returns (pcm_bytes, rms_float_0_1).
    """
    x = np.asarray(indata)

    if x.ndim == 2 and x.shape[1] >= 1:
        mono = x[:, 0]
    else:
        mono = x.reshape(-1)

    if mono.dtype == np.int16:
        f = mono.astype(np.float32) / 32768.0
    else:
        f = mono.astype(np.float32)

    f = np.clip(f, -1.0, 1.0)
    pcm16 = (f * 32767.0).astype(np.int16).tobytes(order="C")
    rms = float(np.sqrt(np.mean(f * f)) + 1e-12) if f.size else 0.0
    return pcm16, rms


def pcm16_to_wav(pcm: bytes, sample_rate: int) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(sample_rate)
        w.writeframes(pcm)
    return buf.getvalue()


class SoundDeviceSource:
    """Microphone (or loopback device) input via sounddevice, delivered as mono PCM16."""

    def __init__(self, device: Optional[Union[int, str]] = None, blocksize: int = 1024):
        self.device = device
        self.blocksize = blocksize
        self.sample_rate = CaptureConstraints.sample_rate
        self.last_rms = 0.0
        self._stream = None

    def open(self, constraints: CaptureConstraints, on_data: Callable[[bytes], None]) -> None:
        # PortAudio is loaded on import; keep it off the backend's import path.
        import sounddevice as sd

        self.sample_rate = int(constraints.sample_rate)

        def audio_cb(indata, frames, time_info, status):
            if status:
                logger.debug("[AUDIO] sd_status: %s", status)
            pcm16, rms = _to_mono_int16_left(indata)
            self.last_rms = rms
            on_data(pcm16)

        stream = sd.InputStream(
            device=constraints.device if constraints.device is not None else self.device,
            channels=constraints.channels,
            samplerate=self.sample_rate,
            dtype="float32",
            blocksize=self.blocksize,
            callback=audio_cb,
        )
        stream.start()
        self._stream = stream
        logger.info("[AUDIO] input stream open device=%s sr=%d ch=%d", stream.device, self.sample_rate, constraints.channels)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    def package(self, data: bytes) -> bytes:
        return pcm16_to_wav(data, self.sample_rate)


def list_input_devices() -> List[Dict[str, Any]]:
    import sounddevice as sd

    devices = []
    for idx, dev in enumerate(sd.query_devices()):
        if dev.get("max_input_channels", 0) > 0:
            devices.append({
                "index": idx,
                "name": dev.get("name"),
                "channels": dev.get("max_input_channels"),
                "defaultSampleRate": dev.get("default_samplerate"),
            })
    return devices
