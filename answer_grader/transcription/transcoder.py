"""
Audio transcoding to the canonical recognition format.

Uploaded recordings arrive in whatever container the client produced
(webm, ogg, m4a, mp3, wav...). Recognition backends need a fixed sample
format, so every payload is converted with ffmpeg to mono, 16 kHz,
16-bit PCM WAV before it is submitted.
"""

from __future__ import annotations

import subprocess
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..core.config import settings
from ..core.errors import TranscodeFailed
from ..core.logging import get_logger

logger = get_logger(__name__)

CANONICAL_CHANNELS = 1
CANONICAL_SAMPLE_WIDTH = 2  # bytes, 16-bit PCM

# Declared MIME types / container names -> input file suffix.
# ffmpeg probes the content either way; the suffix only helps it along.
_SUFFIXES = {
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/webm": ".webm",
    "video/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/opus": ".opus",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/mp4": ".m4a",
    "audio/m4a": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/aac": ".aac",
    "audio/flac": ".flac",
    "audio/x-flac": ".flac",
    "audio/3gpp": ".3gp",
    "audio/amr": ".amr",
}


def suffix_for(encoding_hint: Optional[str]) -> str:
    """Input file suffix for a MIME type or bare container name."""
    if not encoding_hint:
        return ".bin"
    hint = encoding_hint.split(";", 1)[0].strip().lower()
    if hint in _SUFFIXES:
        return _SUFFIXES[hint]
    bare = hint.lstrip(".")
    if bare.isalnum() and "/" not in bare:
        return f".{bare}"
    return ".bin"


@dataclass(frozen=True)
class CanonicalAudio:
    """Mono 16-bit PCM WAV ready for recognition"""
    path: Path
    content: bytes
    sample_rate: int
    channels: int = CANONICAL_CHANNELS
    sample_width: int = CANONICAL_SAMPLE_WIDTH
    frames: int = 0

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0


class FfmpegTranscoder:
    """
    Converts arbitrary audio payloads to canonical PCM WAV with ffmpeg.

    All files are written inside the caller-provided working directory;
    the caller owns its lifetime.
    """

    def __init__(
        self,
        ffmpeg_binary: Optional[str] = None,
        sample_rate: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.ffmpeg_binary = ffmpeg_binary or settings.FFMPEG_BINARY
        self.sample_rate = sample_rate or settings.SAMPLE_RATE_HERTZ
        self.timeout = timeout if timeout is not None else settings.TRANSCODE_TIMEOUT_SECONDS

    def build_command(self, input_path: Path, output_path: Path) -> List[str]:
        return [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel", "error",
            "-nostdin",
            "-y",
            "-i", str(input_path),
            "-vn",
            "-ac", str(CANONICAL_CHANNELS),
            "-ar", str(self.sample_rate),
            "-acodec", "pcm_s16le",
            "-f", "wav",
            str(output_path),
        ]

    def transcode(
        self,
        content: bytes,
        encoding_hint: Optional[str],
        workdir: Path,
    ) -> CanonicalAudio:
        """
        Transcode a payload into ``workdir``.

        Raises:
            TranscodeFailed: empty or corrupt input, unsupported codec,
                missing ffmpeg binary, timeout or unexpected output format
        """
        if not content:
            raise TranscodeFailed("empty audio payload")

        input_path = workdir / f"input{suffix_for(encoding_hint)}"
        output_path = workdir / "canonical.wav"
        input_path.write_bytes(content)

        cmd = self.build_command(input_path, output_path)

        try:
            process = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError:
            raise TranscodeFailed(f"ffmpeg binary not found: {self.ffmpeg_binary}")
        except subprocess.TimeoutExpired:
            raise TranscodeFailed(f"ffmpeg timed out after {self.timeout}s")

        if process.returncode != 0:
            stderr = (process.stderr or "").strip()
            logger.warning(
                "ffmpeg rejected audio payload",
                extra_data={
                    "returncode": process.returncode,
                    "encoding_hint": encoding_hint,
                    "stderr": stderr[-500:],
                }
            )
            raise TranscodeFailed(stderr.splitlines()[-1] if stderr else f"ffmpeg exited with {process.returncode}")

        return self._load_canonical(output_path)

    def _load_canonical(self, output_path: Path) -> CanonicalAudio:
        if not output_path.exists():
            raise TranscodeFailed("ffmpeg produced no output")

        try:
            with wave.open(str(output_path), "rb") as wav:
                channels = wav.getnchannels()
                sample_width = wav.getsampwidth()
                sample_rate = wav.getframerate()
                frames = wav.getnframes()
        except (wave.Error, EOFError) as e:
            raise TranscodeFailed(f"invalid WAV output: {e}")

        if channels != CANONICAL_CHANNELS or sample_width != CANONICAL_SAMPLE_WIDTH or sample_rate != self.sample_rate:
            raise TranscodeFailed(
                f"unexpected output format: {channels}ch {sample_width * 8}bit {sample_rate}Hz"
            )
        if frames == 0:
            raise TranscodeFailed("audio contains no samples")

        return CanonicalAudio(
            path=output_path,
            content=output_path.read_bytes(),
            sample_rate=sample_rate,
            channels=channels,
            sample_width=sample_width,
            frames=frames,
        )
