import threading

from interview_console.services.polling import poll_for_transcripts, start_background_poll
from tests.conftest import make_response

TRANSCRIPT = "/api/records/a1/transcript"
TRANSLATION = "/api/records/a1/translation"


def test_polls_until_both_ready(client, session):
    session.add("GET", TRANSCRIPT, make_response(202), make_response(200, "hindi text"))
    session.add("GET", TRANSLATION, make_response(202), make_response(500, "busy"), make_response(200, "english text"))
    progress = []

    result = poll_for_transcripts(client, "a1", on_progress=progress.append, max_attempts=10, interval=0)

    assert result.complete and not result.cancelled
    assert (result.hindi, result.english) == ("hindi text", "english text")
    assert result.attempts == 3
    assert progress == ["Hindi transcript ready", "English translation ready"]
    # the ready transcript is not fetched again
    assert len(session.calls_to("GET", TRANSCRIPT)) == 2


def test_gives_up_after_max_attempts_with_partial_result(client, session):
    session.add("GET", TRANSCRIPT, make_response(200, "hindi text"))
    session.add("GET", TRANSLATION, make_response(202))

    result = poll_for_transcripts(client, "a1", max_attempts=3, interval=0)

    assert result.hindi == "hindi text"
    assert result.english is None
    assert result.attempts == 3
    assert not result.complete


def test_cancel_before_first_attempt(client, session):
    cancel = threading.Event()
    cancel.set()
    result = poll_for_transcripts(client, "a1", max_attempts=5, interval=0, cancel=cancel)
    assert result.cancelled
    assert result.attempts == 0
    assert session.calls == []


def test_background_poll_can_be_cancelled(client, session):
    session.add("GET", TRANSCRIPT, make_response(202))
    session.add("GET", TRANSLATION, make_response(202))
    done = []

    thread, cancel = start_background_poll(client, "a1", on_done=done.append, max_attempts=1000, interval=30)
    cancel.set()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert done and done[0].cancelled
    assert not done[0].complete
