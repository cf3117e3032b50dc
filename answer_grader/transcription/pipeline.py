"""
Transcription pipeline.

Turns a recorded spoken response into text:

    received -> transcoded -> submitted -> transcribed
    received | transcoded | submitted -> failed

Every temporary artifact lives in one working directory that is removed
on all exit paths. The backend call is blocking, runs in a worker thread
and is bounded by a timeout. Nothing is retried here.
"""

from __future__ import annotations

import asyncio
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from ..core.config import settings
from ..core.errors import BackendUnavailable, EmptyTranscript, TranscriptionError
from ..core.logging import get_context_logger
from ..models.domain import TranscriptionState, TranscriptResult
from .backends import Segments, TranscriptionBackend, get_transcription_backend
from .transcoder import FfmpegTranscoder

_TRANSITIONS = {
    TranscriptionState.RECEIVED: {TranscriptionState.TRANSCODED, TranscriptionState.FAILED},
    TranscriptionState.TRANSCODED: {TranscriptionState.SUBMITTED, TranscriptionState.FAILED},
    TranscriptionState.SUBMITTED: {TranscriptionState.TRANSCRIBED, TranscriptionState.FAILED},
    TranscriptionState.TRANSCRIBED: set(),
    TranscriptionState.FAILED: set(),
}


class TranscriptionJob:
    """Ephemeral state of a single transcription call"""

    def __init__(self, job_id: Optional[str] = None):
        self.job_id = job_id or uuid.uuid4().hex[:12]
        self.state = TranscriptionState.RECEIVED
        self.error: Optional[TranscriptionError] = None

    def advance(self, state: TranscriptionState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transcription transition {self.state.value} -> {state.value}")
        self.state = state

    def fail(self, error: TranscriptionError) -> TranscriptionError:
        self.advance(TranscriptionState.FAILED)
        self.error = error
        return error

    @property
    def finished(self) -> bool:
        return not _TRANSITIONS[self.state]


def join_segments(segments: Segments) -> str:
    """First alternative of each segment, joined with single spaces and trimmed."""
    parts = [alternatives[0].strip() for alternatives in segments if alternatives and alternatives[0]]
    return " ".join(part for part in parts if part).strip()


class TranscriptionPipeline:
    """
    Transcode, submit and collect a transcript.

    Args:
        backend: Speech recognition backend
        transcoder: Converter to canonical PCM WAV (ffmpeg by default)
        timeout: Default backend timeout in seconds
    """

    def __init__(
        self,
        backend: TranscriptionBackend,
        transcoder: Optional[FfmpegTranscoder] = None,
        timeout: Optional[float] = None,
    ):
        self.backend = backend
        self.transcoder = transcoder or FfmpegTranscoder()
        self.timeout = timeout if timeout is not None else settings.TRANSCRIPTION_TIMEOUT_SECONDS

    async def transcribe(
        self,
        audio_bytes: bytes,
        encoding_hint: Optional[str] = None,
        timeout: Optional[float] = None,
        job: Optional[TranscriptionJob] = None,
    ) -> TranscriptResult:
        """
        Run the pipeline on one payload.

        Raises:
            TranscodeFailed: audio could not be converted
            BackendUnavailable: backend error or timeout
            EmptyTranscript: recognition returned no text
        """
        job = job or TranscriptionJob()
        timeout = timeout if timeout is not None else self.timeout
        logger = get_context_logger(__name__, job_id=job.job_id, backend=self.backend.name)

        logger.info(
            "Transcription received",
            extra_data={"bytes": len(audio_bytes or b""), "encoding_hint": encoding_hint}
        )

        with tempfile.TemporaryDirectory(prefix="transcode-") as workdir:
            try:
                audio = await asyncio.to_thread(
                    self.transcoder.transcode, audio_bytes, encoding_hint, Path(workdir)
                )
            except TranscriptionError as e:
                logger.warning("Transcoding failed", extra_data={"error": e.message})
                raise job.fail(e)
            job.advance(TranscriptionState.TRANSCODED)

            job.advance(TranscriptionState.SUBMITTED)
            try:
                segments = await asyncio.wait_for(
                    asyncio.to_thread(self.backend.recognize, audio, timeout),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Transcription timed out", extra_data={"timeout": timeout})
                raise job.fail(BackendUnavailable(f"timed out after {timeout}s"))
            except TranscriptionError as e:
                logger.warning("Transcription backend failed", extra_data={"error": e.message})
                raise job.fail(e)
            except Exception as e:
                logger.error(
                    "Transcription backend raised",
                    extra_data={"error": str(e), "error_type": e.__class__.__name__},
                    exc_info=True
                )
                raise job.fail(BackendUnavailable(str(e)))

        transcript = join_segments(segments)
        if not transcript:
            logger.warning("Empty transcript", extra_data={"segments": len(segments)})
            raise job.fail(EmptyTranscript())

        job.advance(TranscriptionState.TRANSCRIBED)
        logger.info(
            "Transcription completed",
            extra_data={"segments": len(segments), "characters": len(transcript)}
        )

        return TranscriptResult(
            transcript=transcript,
            segments=[alternatives[0] for alternatives in segments if alternatives],
            state=job.state,
        )


def get_transcription_pipeline(backend: Optional[TranscriptionBackend] = None) -> TranscriptionPipeline:
    """Create a pipeline around the configured backend"""
    return TranscriptionPipeline(backend or get_transcription_backend())
