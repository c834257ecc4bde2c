# interview_console/services/polling.py
"""
Waits for the backend to finish transcription (Hindi) and translation
(English) of an uploaded recording.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from interview_console.api_client import BackendClient
from interview_console.config import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_MAX_ATTEMPTS
from interview_console.errors import ConsoleError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class TranscriptPair:
    hindi: Optional[str] = None
    english: Optional[str] = None
    cancelled: bool = False
    attempts: int = 0

    @property
    def complete(self) -> bool:
        return bool(self.hindi and self.english)


def poll_for_transcripts(client: BackendClient, audio_id: str,
                         on_progress: Optional[ProgressCallback] = None,
                         max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
                         interval: float = DEFAULT_POLL_INTERVAL,
                         cancel: Optional[threading.Event] = None) -> TranscriptPair:
    """
    Fixed-interval polling, no backoff. Errors on a single attempt are logged
    and polling continues. Returns what is ready when both texts arrive, the
    attempts run out, or `cancel` is set (the result may be partial).
    """
    cancel = cancel or threading.Event()
    out = TranscriptPair()

    while out.attempts < max_attempts:
        if cancel.is_set():
            out.cancelled = True
            logger.info("Polling for %s cancelled after %d attempts", audio_id, out.attempts)
            return out
        out.attempts += 1

        if not out.hindi:
            try:
                resp = client.get_transcript(audio_id)
                if resp.ready:
                    out.hindi = resp.data
                    if on_progress:
                        on_progress("Hindi transcript ready")
            except ConsoleError as e:
                logger.warning("Transcript poll %d for %s failed: %s", out.attempts, audio_id, e)

        if not out.english:
            try:
                resp = client.get_translation(audio_id)
                if resp.ready:
                    out.english = resp.data
                    if on_progress:
                        on_progress("English translation ready")
            except ConsoleError as e:
                logger.warning("Translation poll %d for %s failed: %s", out.attempts, audio_id, e)

        if out.complete:
            return out

        # wait() returns early when cancelled
        if out.attempts < max_attempts and cancel.wait(interval):
            out.cancelled = True
            logger.info("Polling for %s cancelled after %d attempts", audio_id, out.attempts)
            return out

    logger.info("Polling for %s stopped after %d attempts (hindi=%s, english=%s)",
                audio_id, out.attempts, bool(out.hindi), bool(out.english))
    return out


def start_background_poll(client: BackendClient, audio_id: str,
                          on_done: Optional[Callable[[TranscriptPair], None]] = None,
                          **kwargs) -> Tuple[threading.Thread, threading.Event]:
    """Run `poll_for_transcripts` on a daemon thread. Set the returned event to stop it."""
    cancel = threading.Event()

    def _run():
        result = poll_for_transcripts(client, audio_id, cancel=cancel, **kwargs)
        if on_done:
            on_done(result)

    thread = threading.Thread(target=_run, name=f"poll-{audio_id}", daemon=True)
    thread.start()
    return thread, cancel
