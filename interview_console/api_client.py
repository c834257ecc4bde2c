# interview_console/api_client.py
"""
HTTP client for the transcription / translation / analysis backend.

Every backend call goes through `BackendClient`, which owns a
`requests.Session` (injectable for tests) and turns transport failures and
non-2xx answers into the console's error types.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests
from pydantic import ValidationError

from interview_console.config import DEFAULT_REQUEST_TIMEOUT, Settings, get_settings
from interview_console.contracts.models import (
    AnalysisVersion, AudioRecord, DeleteResult, QuestionnaireRecord,
    TranscriptResponse, UploadMeta, UploadTarget,
)
from interview_console.errors import BackendConnectionError, BackendHTTPError, ConfigurationError

logger = logging.getLogger(__name__)

# Fields the questionnaire endpoint has used for the guide's text, in order of preference.
QUESTIONNAIRE_TEXT_FIELDS = ("text", "content", "fileText", "raw", "body")
QUESTIONNAIRE_URL_FIELDS = ("textUrl", "contentUrl", "blobUrl", "fileUrl")


def _safe_text(resp: requests.Response) -> str:
    try:
        return resp.text
    except Exception:  # body already consumed or undecodable
        return ""


def _json_or(resp: requests.Response, default: Any) -> Any:
    if not resp.content:
        return default
    try:
        return resp.json()
    except ValueError:
        return default


def _json_body(resp: requests.Response, operation: str) -> Any:
    """JSON body of a successful response; anything else is a backend error."""
    try:
        return resp.json()
    except ValueError as e:
        raise BackendHTTPError(operation, resp.status_code, _safe_text(resp)[:500], "invalid JSON body") from e


def _upload_target(resp: requests.Response, operation: str) -> UploadTarget:
    try:
        return UploadTarget.model_validate(_json_body(resp, operation))
    except ValidationError as e:
        raise BackendHTTPError(operation, resp.status_code, _safe_text(resp)[:500], "unexpected response") from e


def _normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").strip()


def _flag(value: bool) -> Optional[str]:
    return "true" if value else None


def _params(**kwargs) -> Dict[str, str]:
    return {k: str(v) for k, v in kwargs.items() if v is not None}


def guess_content_type(filename: Optional[str], content_type: Optional[str]) -> str:
    if content_type and content_type.strip():
        return content_type
    if filename and filename.lower().endswith(".txt"):
        return "text/plain"
    return "application/octet-stream"


class BackendClient:
    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.base_url = (base_url or "").strip().rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None,
                      session: Optional[requests.Session] = None) -> "BackendClient":
        settings = settings or get_settings()
        return cls(settings.api_base_url, session=session, timeout=settings.request_timeout)

    # ----- transport -----
    def _url(self, path: str) -> str:
        if not self.base_url:
            raise ConfigurationError(
                "Backend base URL is not configured. Set INTERVIEW_API_BASE in the environment or your .env file."
            )
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise BackendConnectionError(url, e) from e

    def _request(self, method: str, path: str, operation: str, allow=(), **kwargs) -> requests.Response:
        url = self._url(path)
        logger.debug("%s %s", method, url)
        resp = self._send(method, url, **kwargs)
        if resp.status_code in allow:
            return resp
        if not resp.ok:
            raise BackendHTTPError(operation, resp.status_code, _safe_text(resp), resp.reason or "")
        return resp

    # ----- audio records -----
    def create_upload_url(self, filename: str, size: int, content_type: str,
                          meta: Union[UploadMeta, Dict[str, Any]]) -> UploadTarget:
        if isinstance(meta, UploadMeta):
            meta = meta.model_dump(by_alias=True, exclude_none=True)
        resp = self._request(
            "POST", "/api/create_upload_url", "create upload URL",
            json={"filename": filename, "size": size, "contentType": content_type, "meta": meta},
        )
        return _upload_target(resp, "create upload URL")

    def upload_to_sas(self, upload_url: str, data, filename: Optional[str] = None,
                      content_type: Optional[str] = None) -> None:
        """PUT raw bytes straight to blob storage. The SAS URL is absolute, so no base URL is involved."""
        headers = {
            "x-ms-blob-type": "BlockBlob",
            "Content-Type": guess_content_type(filename, content_type),
        }
        resp = self._send("PUT", upload_url, headers=headers, data=data)
        if not resp.ok:
            raise BackendHTTPError("upload file to blob storage", resp.status_code, _safe_text(resp), resp.reason or "")

    def list_records(self) -> List[AudioRecord]:
        resp = self._request("GET", "/api/records", "list records", allow=(204,))
        if resp.status_code == 204:
            return []
        raw = _json_or(resp, None)
        if isinstance(raw, list):
            items = raw
        elif isinstance(raw, dict) and isinstance(raw.get("records"), list):
            items = raw["records"]
        else:
            if raw is not None:
                logger.warning("list_records(): unexpected response shape %r", type(raw).__name__)
            return []
        return [AudioRecord.model_validate(r) for r in items if isinstance(r, dict)]

    def delete_record(self, audio_id: str) -> DeleteResult:
        resp = self._request("DELETE", f"/api/records/{quote(audio_id, safe='')}", "delete record", allow=(404,))
        if resp.status_code == 404:
            logger.warning("delete_record: 404 for %s - treating as missing. Body: %s", audio_id, _safe_text(resp))
            return DeleteResult(missing=[audio_id])
        return DeleteResult.model_validate(_json_or(resp, {}) or {})

    def update_record_metadata(self, audio_id: str, meta: Dict[str, Any]) -> Dict[str, Any]:
        resp = self._request(
            "PATCH", f"/api/records/{quote(audio_id, safe='')}", "update record metadata",
            json={"meta": meta},
        )
        return _json_or(resp, {}) or {}

    def get_transcript(self, audio_id: str) -> TranscriptResponse:
        resp = self._request(
            "GET", f"/api/records/{quote(audio_id, safe='')}/transcript", "get transcript", allow=(202,)
        )
        if resp.status_code == 202:
            return TranscriptResponse(status="pending")
        data = _json_or(resp, None)
        if data is None:
            text = _safe_text(resp)
        elif isinstance(data, str):
            text = data
        else:
            text = (isinstance(data, dict) and (data.get("text") or data.get("transcript"))) or json.dumps(data)
        return TranscriptResponse(status="ready", data=text)

    def get_translation(self, audio_id: str) -> TranscriptResponse:
        resp = self._request(
            "GET", f"/api/records/{quote(audio_id, safe='')}/translation", "get translation", allow=(202,)
        )
        if resp.status_code == 202:
            return TranscriptResponse(status="pending")
        data = _json_or(resp, None)
        if data is None:
            data = _safe_text(resp)
        if isinstance(data, str):
            # some translations arrive as a JSON document encoded in a string
            try:
                parsed = json.loads(data)
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                data = parsed
            else:
                return TranscriptResponse(status="ready", data=data)
        if isinstance(data, dict):
            text = data.get("translatedTranscript") or data.get("text") or data.get("translation") or json.dumps(data)
        else:
            text = json.dumps(data)
        return TranscriptResponse(status="ready", data=text)

    # ----- questionnaires (guides) -----
    def create_questionnaire_upload_url(self, filename: str, size: int, content_type: str,
                                        meta: Optional[Dict[str, Any]] = None) -> UploadTarget:
        resp = self._request(
            "POST", "/api/create_questionnaire_upload_url", "create questionnaire upload URL",
            json={"filename": filename, "size": size, "contentType": content_type, "meta": meta},
        )
        return _upload_target(resp, "create questionnaire upload URL")

    def list_questionnaires(self, limit: Optional[int] = None) -> List[QuestionnaireRecord]:
        resp = self._request("GET", "/api/questionnaires", "list questionnaires", params=_params(limit=limit))
        data = _json_or(resp, {}) or {}
        items = data.get("questionnaires") if isinstance(data, dict) else None
        return [QuestionnaireRecord.model_validate(q) for q in (items or []) if isinstance(q, dict)]

    def get_questionnaire(self, questionnaire_id: str) -> QuestionnaireRecord:
        resp = self._request("GET", f"/api/questionnaires/{quote(questionnaire_id, safe='')}", "get questionnaire")
        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type:
            return QuestionnaireRecord(questionnaireId=questionnaire_id, text=_normalize_newlines(_safe_text(resp)))

        data = _json_or(resp, {}) or {}
        if not isinstance(data, dict):
            return QuestionnaireRecord(questionnaireId=questionnaire_id, text=json.dumps(data))
        record = data.get("record") if isinstance(data.get("record"), dict) else {}

        if isinstance(data.get("questionsText"), str):
            text = _normalize_newlines(data["questionsText"])
        else:
            text = next((data[k] for k in QUESTIONNAIRE_TEXT_FIELDS if isinstance(data.get(k), str) and data[k]), "")
            if not text:
                text = self._fetch_questionnaire_blob(data, record)
            if not text and data:
                text = json.dumps(data)

        return QuestionnaireRecord(
            questionnaireId=record.get("questionnaireId") or data.get("questionnaireId") or questionnaire_id,
            originalFilename=record.get("originalFilename") or data.get("originalFilename") or "",
            uploadedAt=record.get("uploadedAt") or data.get("uploadedAt") or "",
            meta=record.get("meta") or data.get("meta") or None,
            text=text,
        )

    def _fetch_questionnaire_blob(self, data: Dict[str, Any], record: Dict[str, Any]) -> str:
        url = next((data[k] for k in QUESTIONNAIRE_URL_FIELDS if isinstance(data.get(k), str)), None)
        url = url or record.get("questionnaireBlobUrl")
        if not url:
            return ""
        try:
            blob = self._send("GET", url)
        except BackendConnectionError as e:
            logger.warning("get_questionnaire blob fetch error: %s", e)
            return ""
        if not blob.ok:
            logger.warning("get_questionnaire blob fetch failed: %s %s", blob.status_code, blob.reason)
            return ""
        return _normalize_newlines(_safe_text(blob))

    def delete_questionnaire(self, questionnaire_id: str) -> DeleteResult:
        resp = self._request(
            "DELETE", f"/api/questionnaires/{quote(questionnaire_id, safe='')}", "delete questionnaire", allow=(404,)
        )
        if resp.status_code == 404:
            logger.warning("delete_questionnaire: 404 for %s - treating as missing", questionnaire_id)
            return DeleteResult(missing=[questionnaire_id])
        return DeleteResult.model_validate(_json_or(resp, {}) or {})

    # ----- analysis -----
    def list_analysis(self, audio_id: Optional[str] = None, questionnaire_id: Optional[str] = None,
                      latest_only: bool = False) -> List[AnalysisVersion]:
        params = _params(audioId=audio_id, questionnaireId=questionnaire_id, latestOnly=_flag(latest_only))
        resp = self._request("GET", "/api/analysis", "list analysis", params=params)
        data = _json_or(resp, {}) or {}
        items = data.get("analysis") if isinstance(data, dict) else None
        return [AnalysisVersion.model_validate(a) for a in (items or []) if isinstance(a, dict)]

    def get_analysis(self, audio_id: str, questionnaire_id: str, version: Optional[int] = None,
                     latest: bool = False) -> Dict[str, Any]:
        params = _params(version=version, latest=_flag(latest))
        resp = self._request("GET", self._analysis_path(audio_id, questionnaire_id), "get analysis", params=params)
        return _json_body(resp, "get analysis")

    def run_analysis(self, audio_id: str, questionnaire_id: str) -> Dict[str, Any]:
        path = f"/api/analyze/{quote(audio_id, safe='')}/{quote(questionnaire_id, safe='')}"
        resp = self._request("POST", path, "run analysis")
        return _json_or(resp, {})

    def create_manual_analysis(self, audio_id: str, questionnaire_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        path = self._analysis_path(audio_id, questionnaire_id) + "/manual"
        resp = self._request("POST", path, "create manual analysis", json=payload)
        return _json_or(resp, {})

    def delete_analysis(self, audio_id: str, questionnaire_id: str, version: Optional[int] = None,
                        all_versions: bool = False) -> Dict[str, Any]:
        params = _params(version=version, allVersions=_flag(all_versions))
        resp = self._request(
            "DELETE", self._analysis_path(audio_id, questionnaire_id), "delete analysis",
            allow=(404,), params=params,
        )
        if resp.status_code == 404:
            logger.warning("delete_analysis: 404 for %s/%s - treating as missing", audio_id, questionnaire_id)
            return {"deleted": [], "missing": [f"{audio_id}/{questionnaire_id}"]}
        return _json_or(resp, {})

    @staticmethod
    def _analysis_path(audio_id: str, questionnaire_id: str) -> str:
        return f"/api/analysis/{quote(audio_id, safe='')}/{quote(questionnaire_id, safe='')}"
