import json

import pytest

from interview_console.contracts.models import AnswerBlock, Interview
from interview_console.errors import ConsoleError, GuideFormatError
from interview_console.repositories.guides import GuideRepository
from interview_console.repositories.interviews import InterviewRepository
from interview_console.repositories.records import RecordRepository
from tests.conftest import make_response

RECORD = {
    "audioId": "a1", "originalFilename": "ramesh.mp3", "audioBlobName": "a1.mp3",
    "uploadedAt": "2025-11-18T09:00:00Z",
    "meta": {"farmerName": "Ramesh", "village": "Dewas", "interviewer": "Asha", "interviewDate": "2025-11-20"},
    "transcript": {"status": "completed"}, "translation": {"status": "completed"},
}


def _backend_with_guide(session, guide_body):
    session.add("GET", "/api/questionnaires", make_response(200, {"questionnaires": [
        {"questionnaireId": "g1", "originalFilename": "kharif.json", "meta": {"guideName": "Kharif"}},
    ]}))
    session.add("GET", "/api/questionnaires/g1", make_response(200, json.dumps(guide_body)))


def test_guide_repository_skips_broken_guides(client, session):
    session.add("GET", "/api/questionnaires", make_response(200, {"questionnaires": [
        {"questionnaireId": "g1", "originalFilename": "kharif.json"},
        {"questionnaireId": "g2", "originalFilename": "empty.txt"},
        {"questionnaireId": "g3", "originalFilename": "broken.txt"},
    ]}))
    session.add("GET", "/api/questionnaires/g1", make_response(200, '{"questions": ["Q1"], "prompts": ["P1"]}'))
    session.add("GET", "/api/questionnaires/g2", make_response(200, "   "))
    session.add("GET", "/api/questionnaires/g3", make_response(500, "blob missing"))

    repo = GuideRepository(client)
    guides = repo.all()

    assert [(g.id, g.name, g.questions, g.prompts) for g in guides] == [("g1", "kharif", ["Q1"], ["P1"])]
    # cached until invalidated
    repo.all()
    assert len(session.calls_to("GET", "/api/questionnaires")) == 1
    repo.invalidate()
    repo.all()
    assert len(session.calls_to("GET", "/api/questionnaires")) == 2


def test_guide_upload_validates_and_invalidates(client, session):
    session.add("POST", "/api/create_questionnaire_upload_url",
                make_response(200, {"uploadUrl": "https://blob.test/g9", "questionnaireId": "g9"}))
    session.add("PUT", "https://blob.test/g9", make_response(201))
    repo = GuideRepository(client)
    repo._guides = []

    with pytest.raises(GuideFormatError):
        repo.upload("empty.json", b'{"questions": []}')
    assert repo.upload("rabi.json", b'{"questions": ["Q1"]}', tags=["2025"]) == "g9"

    post = session.calls_to("POST", "/api/create_questionnaire_upload_url")[0]["json"]
    assert post["contentType"] == "application/json"
    assert post["meta"] == {"guideName": "rabi", "tags": ["2025"]}
    assert repo._guides is None


def test_delete_analyses_across_audio_files(client, session):
    session.add("GET", "/api/analysis", make_response(200, {"analysis": [
        {"audioId": "a1", "questionnaireId": "g1", "version": 1},
        {"audioId": "a1", "questionnaireId": "g1", "version": 2},
        {"audioId": "a2", "questionnaireId": "g1", "version": 1},
        {"audioId": "a3", "questionnaireId": "g1", "version": 1},
    ]}))
    session.add("DELETE", "/api/analysis/a1/g1", make_response(200, {"deleted": ["v1", "v2"]}))
    session.add("DELETE", "/api/analysis/a2/g1", make_response(200, {"deleted": ["v1"]}))
    session.add("DELETE", "/api/analysis/a3/g1", make_response(500, "locked"))

    assert GuideRepository(client).delete_analyses("g1") == 2
    assert session.calls_to("DELETE", "/api/analysis/a1/g1")[0]["params"] == {"allVersions": "true"}


def test_record_repository(client, session):
    pending = dict(RECORD, audioId="a2", translation={"status": "pending"})
    session.add("GET", "/api/records", make_response(200, [RECORD, pending]))
    session.add("DELETE", "/api/records/a2", make_response(200, {"deleted": ["a2.mp3"]}))
    repo = RecordRepository(client)

    assert [r.audio_id for r in repo.completed_translations()] == ["a1"]
    assert repo.get("a2").meta.farmer_name == "Ramesh"
    assert repo.delete("a2").deleted == ["a2.mp3"]
    repo.all()
    assert len(session.calls_to("GET", "/api/records")) == 2


def _interview_backend(session, model="gpt-5.1"):
    _backend_with_guide(session, {"questions": ["Q1", "Q2"]})
    session.add("GET", "/api/records", make_response(200, [RECORD]))
    session.add("GET", "/api/analysis", make_response(200, {"analysis": [
        {"audioId": "a1", "questionnaireId": "g1", "version": 1, "blobName": "b1"},
    ]}))
    session.add("GET", "/api/analysis/a1/g1", make_response(200, {
        "model": model,
        "result": {"questions": [{"index": 0, "answerSummary": "A1"}, {"index": 1, "answerSummary": "A2"}]},
    }))
    session.add("GET", "/api/records/a1/transcript", make_response(200, "hindi"))
    session.add("GET", "/api/records/a1/translation", make_response(200, {"translatedTranscript": "english"}))


def test_interview_refresh_joins_records_and_guides(client, session):
    _interview_backend(session)
    repo = InterviewRepository(client, GuideRepository(client), max_workers=2)

    interviews = repo.all()

    assert len(interviews) == 1
    i = interviews[0]
    assert (i.guide_name, i.farmer_name, i.village, i.interviewer, i.date, i.audio_file) == (
        "Kharif", "Ramesh", "Dewas", "Asha", "2025-11-20", "ramesh.mp3")
    assert i.status.kind == "generated" and i.status.label == "gpt-5.1"
    assert session.calls_to("GET", "/api/analysis")[0]["params"] == {"latestOnly": "true"}

    # ids survive a refresh
    assert repo.refresh()[0].id == i.id
    assert repo.find_by_audio_and_guide("a1", "g1").id == i.id


def test_guide_upload_then_analysis_renders_answers(client, session):
    stored = {}

    def put_blob(method, url, data=None, **kwargs):
        stored["g1"] = data
        return make_response(201)

    def get_guide(method, url, **kwargs):
        return make_response(200, stored["g1"], content_type="text/plain")

    _interview_backend(session)
    session.add("POST", "/api/create_questionnaire_upload_url",
                make_response(200, {"uploadUrl": "https://blob.test/g1", "questionnaireId": "g1"}))
    session.add("PUT", "https://blob.test/g1", put_blob)
    session.add("GET", "/api/questionnaires/g1", get_guide)
    session.add("POST", "/api/analyze/a1/g1", make_response(200, {"version": 1}))
    guides = GuideRepository(client)
    repo = InterviewRepository(client, guides)

    assert guides.upload("kharif.json", b'{"questions":["Q1","Q2"]}') == "g1"
    client.run_analysis("a1", "g1")
    detail = repo.load_detail(repo.find_by_audio_and_guide("a1", "g1"))

    assert stored["g1"] == b'{"questions":["Q1","Q2"]}'
    assert [(a.question, a.answer) for a in detail.answers] == [("Q1", "A1"), ("Q2", "A2")]
    assert detail.hindi_transcript == "hindi"
    assert detail.english_transcript == "english"
    assert detail.status.label == "gpt-5.1"


def test_interview_ids_are_stable_across_invalidate(client, session):
    _interview_backend(session)
    repo = InterviewRepository(client, GuideRepository(client))
    first = repo.all()[0].id

    repo.invalidate()

    assert repo.all()[0].id == first == "a1-g1"
    assert InterviewRepository(client, GuideRepository(client)).get(first) is not None


def test_load_details_keeps_interviews_without_versions(client, session):
    _interview_backend(session)
    listed = make_response(200, {"analysis": [
        {"audioId": "a1", "questionnaireId": "g1", "version": 1, "blobName": "b1"},
    ]})
    session.add("GET", "/api/analysis", lambda method, url, params=None, **kw: (
        make_response(200, {"analysis": []}) if params.get("audioId") == "a2" else listed))
    repo = InterviewRepository(client, GuideRepository(client))
    first = repo.all()[0]
    orphan = Interview(id="a2-g1", guideId="g1", audioId="a2", farmerName="Sita")

    detailed = repo.load_details([first, orphan])

    assert [i.id for i in detailed] == ["a1-g1", "a2-g1"]
    assert detailed[1].answers == []


def test_load_detail_without_versions_raises(client, session):
    _backend_with_guide(session, {"questions": ["Q1"]})
    session.add("GET", "/api/analysis", make_response(200, {"analysis": []}))
    repo = InterviewRepository(client, GuideRepository(client))
    interview = Interview(id="x", guideId="g1", audioId="a1")
    with pytest.raises(ConsoleError, match="No versions available"):
        repo.load_detail(interview)


def test_load_detail_falls_back_to_result_question_texts(client, session):
    _interview_backend(session)
    session.add("GET", "/api/questionnaires", make_response(200, {"questionnaires": []}))
    session.add("GET", "/api/analysis/a1/g1", make_response(200, {"model": "m", "result": {"questions": [
        {"index": 0, "questionText": "Old Q1", "answerSummary": "A1"},
    ]}}))
    repo = InterviewRepository(client, GuideRepository(client))

    detail = repo.load_detail(Interview(id="x", guideId="g1", guideName="Deleted guide", audioId="a1"))

    assert [(a.question, a.answer) for a in detail.answers] == [("Old Q1", "A1")]


def test_save_edits_posts_manual_version_and_updates_cache(client, session):
    _interview_backend(session)
    session.add("POST", "/api/analysis/a1/g1/manual", make_response(200, {"version": 2}))
    repo = InterviewRepository(client, GuideRepository(client), human_edit_model="fallback-human-edit")
    interview = repo.all()[0]

    updated = repo.save_edits(interview, [AnswerBlock(question="Q1", answer="edited", index=0)])

    body = session.calls_to("POST", "/api/analysis/a1/g1/manual")[0]["json"]
    assert body["model"] == "gpt-5.1-human-edit"
    assert body["result"]["questions"][0]["answerSummary"] == "edited"
    assert updated.status.human_approved
    assert repo.get(interview.id).answers[0].answer == "edited"


def test_save_edits_requires_identifiers(client):
    repo = InterviewRepository(client, GuideRepository(client))
    with pytest.raises(ConsoleError, match="Missing audio/guide identifiers"):
        repo.save_edits(Interview(id="x", guideId="g1"), [])


def test_local_cache_operations(client, session):
    _interview_backend(session)
    repo = InterviewRepository(client, GuideRepository(client))
    interview = repo.all()[0]

    assert repo.update(interview.id, village="Ujjain").village == "Ujjain"
    assert repo.update("missing", village="x") is None
    created = repo.upsert_by_audio_and_guide(Interview(id="", guideId="g2", audioId="a9"))
    assert created.id and len(repo.all()) == 2
    repo.remove(created.id)
    assert [i.id for i in repo.all()] == [interview.id]
