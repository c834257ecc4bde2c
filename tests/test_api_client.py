import pytest
import requests

from interview_console.api_client import BackendClient, guess_content_type
from interview_console.contracts.models import UploadMeta
from interview_console.errors import BackendConnectionError, BackendHTTPError, ConfigurationError
from tests.conftest import BASE, make_response


def test_missing_base_url_fails_before_any_request(session):
    client = BackendClient("  ", session=session)
    with pytest.raises(ConfigurationError, match="INTERVIEW_API_BASE"):
        client.list_records()
    assert session.calls == []


def test_connection_errors_mention_cors(client, session):
    session.add("GET", "/api/records", requests.ConnectionError("Connection refused"))
    with pytest.raises(BackendConnectionError, match="CORS") as exc:
        client.list_records()
    assert exc.value.url == f"{BASE}/api/records"


def test_http_errors_include_status_and_body(client, session):
    session.add("GET", "/api/records", make_response(500, "database down"))
    with pytest.raises(BackendHTTPError) as exc:
        client.list_records()
    assert exc.value.status_code == 500
    assert str(exc.value) == "Failed to list records: 500 Internal Server Error - database down"


def test_base_url_trailing_slash_and_timeout(session):
    client = BackendClient(BASE + "/", session=session, timeout=7)
    session.add("GET", "/api/records", make_response(200, []))
    client.list_records()
    assert session.calls[0]["url"] == f"{BASE}/api/records"
    assert session.calls[0]["timeout"] == 7


@pytest.mark.parametrize("resp", [
    make_response(204),
    make_response(200, b""),
    make_response(200, "<html>proxy page</html>", content_type="text/html"),
    make_response(200, {"unexpected": True}),
])
def test_list_records_empty_shapes(client, session, resp):
    session.add("GET", "/api/records", resp)
    assert client.list_records() == []


def test_list_records_accepts_list_or_wrapper(client, session):
    record = {
        "audioId": "a1", "originalFilename": "farm.mp3", "audioBlobName": "a1.mp3",
        "uploadedAt": "2025-11-20T10:00:00Z",
        "meta": {"farmerName": "Ramesh", "village": "Dewas"},
        "translation": {"status": "completed"},
    }
    session.add("GET", "/api/records", make_response(200, [record, "junk"]))
    records = client.list_records()
    assert records[0].meta.farmer_name == "Ramesh"
    assert records[0].translation_completed

    session.add("GET", "/api/records", make_response(200, {"records": [record]}))
    assert [r.audio_id for r in client.list_records()] == ["a1"]


def test_create_upload_url_and_sas_put(client, session):
    session.add("POST", "/api/create_upload_url",
                make_response(200, {"uploadUrl": "https://blob.test/a1.mp3?sig=1", "audioId": "a1"}))
    session.add("PUT", "https://blob.test/a1.mp3?sig=1", make_response(201, b""))

    target = client.create_upload_url("farm.mp3", 3, "audio/mpeg", UploadMeta(farmerName="R", village="V"))
    client.upload_to_sas(target.upload_url, b"abc", filename="farm.mp3")

    post = session.calls_to("POST", "/api/create_upload_url")[0]
    assert post["json"] == {"filename": "farm.mp3", "size": 3, "contentType": "audio/mpeg",
                            "meta": {"farmerName": "R", "village": "V"}}
    put = session.calls_to("PUT", "https://blob.test/a1.mp3?sig=1")[0]
    assert put["headers"] == {"x-ms-blob-type": "BlockBlob", "Content-Type": "application/octet-stream"}
    assert put["data"] == b"abc"


def test_sas_put_failure(client, session):
    session.add("PUT", "https://blob.test/x", make_response(403, "AuthenticationFailed"))
    with pytest.raises(BackendHTTPError, match="upload file to blob storage: 403"):
        client.upload_to_sas("https://blob.test/x", b"abc")


def test_guess_content_type():
    assert guess_content_type("guide.TXT", None) == "text/plain"
    assert guess_content_type("farm.mp3", "") == "application/octet-stream"
    assert guess_content_type("farm.mp3", "audio/mpeg") == "audio/mpeg"


def test_delete_record_404_is_missing(client, session):
    session.add("DELETE", "/api/records/a1", make_response(404, "gone"))
    assert client.delete_record("a1").missing == ["a1"]

    session.add("DELETE", "/api/records/a2", make_response(200, {"deleted": ["a2.mp3", "a2.json"]}))
    assert client.delete_record("a2").deleted == ["a2.mp3", "a2.json"]


def test_ids_are_url_quoted(client, session):
    session.add("DELETE", "/api/questionnaires/g%2F1", make_response(200, {"deleted": ["g/1"]}))
    assert client.delete_questionnaire("g/1").deleted == ["g/1"]


def test_update_record_metadata_patches_meta(client, session):
    session.add("PATCH", "/api/records/a1", make_response(200, {"ok": True}))
    client.update_record_metadata("a1", {"village": "Dewas"})
    assert session.calls_to("PATCH", "/api/records/a1")[0]["json"] == {"meta": {"village": "Dewas"}}


def test_transcript_pending_and_ready(client, session):
    path = "/api/records/a1/transcript"
    session.add("GET", path, make_response(202, {"status": "pending"}))
    assert client.get_transcript("a1").status == "pending"

    session.add("GET", path, make_response(200, "नमस्ते किसान"))
    assert client.get_transcript("a1").data == "नमस्ते किसान"

    session.add("GET", path, make_response(200, {"transcript": "from field"}))
    assert client.get_transcript("a1").data == "from field"


def test_translation_shapes(client, session):
    path = "/api/records/a1/translation"
    session.add("GET", path, make_response(200, {"translatedTranscript": "Hello farmer"}))
    assert client.get_translation("a1").data == "Hello farmer"

    # JSON document encoded in a JSON string
    session.add("GET", path, make_response(200, '{"text": "nested"}', content_type="application/json"))
    assert client.get_translation("a1").data == "nested"

    session.add("GET", path, make_response(200, "plain english"))
    translation = client.get_translation("a1")
    assert translation.ready and translation.data == "plain english"


def test_get_questionnaire_plain_text(client, session):
    session.add("GET", "/api/questionnaires/g1", make_response(200, "1. Q1\r\n2. Q2\r\n"))
    record = client.get_questionnaire("g1")
    assert record.questionnaire_id == "g1"
    assert record.text == "1. Q1\n2. Q2"


def test_get_questionnaire_json_fields(client, session):
    session.add("GET", "/api/questionnaires/g1", make_response(200, {
        "questionsText": "Q1\r\nQ2",
        "record": {"questionnaireId": "g1", "originalFilename": "kharif.txt", "meta": {"guideName": "Kharif"}},
    }))
    record = client.get_questionnaire("g1")
    assert record.text == "Q1\nQ2"
    assert record.original_filename == "kharif.txt"
    assert record.meta == {"guideName": "Kharif"}


def test_get_questionnaire_follows_blob_url(client, session):
    session.add("GET", "/api/questionnaires/g1",
                make_response(200, {"record": {"questionnaireBlobUrl": "https://blob.test/g1.json"}}))
    session.add("GET", "https://blob.test/g1.json", make_response(200, '{"questions": ["Q1"]}'))
    assert client.get_questionnaire("g1").text == '{"questions": ["Q1"]}'


def test_list_questionnaires_limit(client, session):
    session.add("GET", "/api/questionnaires",
                make_response(200, {"questionnaires": [{"questionnaireId": "g1", "originalFilename": "a.txt"}]}))
    assert [q.questionnaire_id for q in client.list_questionnaires(limit=10)] == ["g1"]
    assert session.calls[0]["params"] == {"limit": "10"}


def test_analysis_endpoints(client, session):
    session.add("GET", "/api/analysis", make_response(200, {"analysis": [
        {"audioId": "a1", "questionnaireId": "g1", "version": 2, "blobName": "b"},
    ]}))
    items = client.list_analysis(audio_id="a1", latest_only=True)
    assert items[0].version == 2
    assert session.calls[-1]["params"] == {"audioId": "a1", "latestOnly": "true"}

    session.add("GET", "/api/analysis/a1/g1", make_response(200, {"model": "m"}))
    assert client.get_analysis("a1", "g1", latest=True) == {"model": "m"}
    assert session.calls[-1]["params"] == {"latest": "true"}

    session.add("POST", "/api/analyze/a1/g1", make_response(200, {"version": 3}))
    assert client.run_analysis("a1", "g1") == {"version": 3}

    session.add("POST", "/api/analysis/a1/g1/manual", make_response(200, {"version": 4}))
    client.create_manual_analysis("a1", "g1", {"model": "m-human-edit", "result": {}})
    assert session.calls[-1]["json"] == {"model": "m-human-edit", "result": {}}

    session.add("DELETE", "/api/analysis/a1/g1", make_response(404))
    assert client.delete_analysis("a1", "g1", all_versions=True)["missing"] == ["a1/g1"]
    assert session.calls[-1]["params"] == {"allVersions": "true"}


def test_non_json_success_bodies_are_backend_errors(client, session):
    session.add("GET", "/api/analysis/a1/g1", make_response(200, "<html>login</html>", content_type="text/html"))
    with pytest.raises(BackendHTTPError, match="get analysis: 200 invalid JSON body - <html>login</html>"):
        client.get_analysis("a1", "g1", latest=True)

    session.add("POST", "/api/create_upload_url", make_response(200, "<html>proxy</html>", content_type="text/html"))
    with pytest.raises(BackendHTTPError, match="create upload URL"):
        client.create_upload_url("farm.mp3", 3, "audio/mpeg", {})


def test_upload_url_response_without_upload_url(client, session):
    session.add("POST", "/api/create_questionnaire_upload_url", make_response(200, {"questionnaireId": "g1"}))
    with pytest.raises(BackendHTTPError, match="create questionnaire upload URL: 200 unexpected response"):
        client.create_questionnaire_upload_url("guide.txt", 3, "text/plain")
