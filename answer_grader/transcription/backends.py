"""
Speech recognition backends.

A backend receives canonical audio and returns the recognized segments,
each segment being its list of alternatives (best first). The call is
blocking and must honour the timeout it is given; the pipeline runs it in
a worker thread.
"""

from __future__ import annotations

import shlex
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import speech

from ..core.config import settings
from ..core.errors import BackendUnavailable
from ..core.logging import get_logger
from .transcoder import CanonicalAudio

logger = get_logger(__name__)

Segments = List[List[str]]


class TranscriptionBackend(ABC):
    """Abstract interface for a speech recognition service"""

    name: str = "unknown"

    @abstractmethod
    def recognize(self, audio: CanonicalAudio, timeout: float) -> Segments:
        """Recognize speech; return alternatives per segment"""
        pass


class GoogleSpeechBackend(TranscriptionBackend):
    """Google Cloud Speech-to-Text synchronous recognition"""

    name = "google"

    def __init__(
        self,
        language_code: Optional[str] = None,
        client: Optional[speech.SpeechClient] = None,
    ):
        self.language_code = language_code or settings.SPEECH_LANGUAGE_CODE
        self._client = client

    @property
    def client(self) -> speech.SpeechClient:
        if self._client is None:
            self._client = speech.SpeechClient()
        return self._client

    def build_config(self, audio: CanonicalAudio) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=audio.sample_rate,
            audio_channel_count=audio.channels,
            language_code=self.language_code,
        )

    def recognize(self, audio: CanonicalAudio, timeout: float) -> Segments:
        try:
            response = self.client.recognize(
                config=self.build_config(audio),
                audio=speech.RecognitionAudio(content=audio.content),
                timeout=timeout,
            )
        except GoogleAPIError as e:
            raise BackendUnavailable(str(e))

        return [
            [alternative.transcript for alternative in result.alternatives]
            for result in response.results
        ]


class CommandLineBackend(TranscriptionBackend):
    """
    Locally invoked batch transcription model.

    ``command`` is a template such as ``"whisper-cli -m base.en -nt -f {input}"``;
    ``{input}`` is replaced by the path of the canonical WAV file. Each
    non-empty line the command prints on stdout is one segment.
    """

    name = "command"

    def __init__(self, command: Optional[str] = None):
        command = command or settings.TRANSCRIPTION_COMMAND
        if not command:
            raise ValueError("TRANSCRIPTION_COMMAND is not configured")
        self.command = command

    def build_command(self, input_path: Path) -> List[str]:
        args = shlex.split(self.command)
        if not any("{input}" in arg for arg in args):
            args.append("{input}")
        return [arg.replace("{input}", str(input_path)) for arg in args]

    def recognize(self, audio: CanonicalAudio, timeout: float) -> Segments:
        with tempfile.TemporaryDirectory(prefix="asr-") as workdir:
            input_path = Path(workdir) / "speech.wav"
            input_path.write_bytes(audio.content)
            cmd = self.build_command(input_path)

            try:
                process = subprocess.run(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    timeout=timeout,
                    check=False,
                )
            except FileNotFoundError:
                raise BackendUnavailable(f"transcription command not found: {cmd[0]}")
            except subprocess.TimeoutExpired:
                raise BackendUnavailable(f"transcription command timed out after {timeout}s")

        if process.returncode != 0:
            logger.warning(
                "Transcription command failed",
                extra_data={"returncode": process.returncode, "stderr": (process.stderr or "")[-500:]}
            )
            raise BackendUnavailable(f"transcription command exited with {process.returncode}")

        return [[line.strip()] for line in process.stdout.splitlines() if line.strip()]


def get_transcription_backend(name: Optional[str] = None) -> TranscriptionBackend:
    """Create the configured backend"""
    name = (name or settings.TRANSCRIPTION_BACKEND).lower()
    if name == GoogleSpeechBackend.name:
        return GoogleSpeechBackend()
    if name == CommandLineBackend.name:
        return CommandLineBackend()
    raise ValueError(f"Unknown transcription backend: {name}")
