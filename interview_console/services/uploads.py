# interview_console/services/uploads.py
import logging
from typing import List, Optional

from interview_console.api_client import BackendClient, guess_content_type
from interview_console.contracts.models import UploadMeta
from interview_console.errors import GuideFormatError, UploadValidationError
from interview_console.services.text_filters import parse_guide_content

logger = logging.getLogger(__name__)

LARGE_FILE_MB = 20
VERY_LARGE_FILE_MB = 50


def validate_audio_meta(meta: UploadMeta) -> None:
    missing = []
    if not (meta.interviewer or "").strip():
        missing.append("interviewer name")
    if not meta.farmer_name.strip():
        missing.append("farmer name")
    if not meta.village.strip():
        missing.append("village/district")
    if not (meta.interview_date or "").strip():
        missing.append("interview date")
    if missing:
        raise UploadValidationError("Please enter " + ", ".join(missing))


def build_audio_meta(interviewer: str, farmer_name: str, village: str, interview_date: str,
                     tags: Optional[List[str]] = None) -> UploadMeta:
    meta = UploadMeta(
        farmerName=farmer_name.strip(),
        village=village.strip(),
        interviewer=interviewer.strip(),
        interviewDate=(interview_date or "").strip(),
        tags=[t for t in (tags or []) if t] or None,
    )
    meta.notes = f"Interviewer: {meta.interviewer}, Date: {meta.interview_date}"
    return meta


def upload_audio(client: BackendClient, filename: str, data: bytes, content_type: Optional[str],
                 meta: UploadMeta) -> str:
    """Request a SAS URL, PUT the recording, return the backend's audio id."""
    if not data:
        raise UploadValidationError("Please select an audio file")
    validate_audio_meta(meta)

    size_mb = len(data) / (1024 * 1024)
    if size_mb > VERY_LARGE_FILE_MB:
        logger.info("%s is %.1f MB; upload and transcription will take several minutes", filename, size_mb)
    elif size_mb > LARGE_FILE_MB:
        logger.info("%s is %.1f MB; upload may take a while", filename, size_mb)

    content_type = guess_content_type(filename, content_type)
    target = client.create_upload_url(filename, len(data), content_type, meta)
    client.upload_to_sas(target.upload_url, data, filename=filename, content_type=content_type)
    logger.info("Uploaded %s as %s", filename, target.audio_id)
    return target.audio_id or ""


def upload_guide(client: BackendClient, filename: str, data: bytes, guide_name: Optional[str] = None,
                 tags: Optional[List[str]] = None) -> str:
    """Check the guide parses to at least one question, then upload it. Returns the questionnaire id."""
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise GuideFormatError(f"{filename} is not UTF-8 text") from e
    questions, _ = parse_guide_content(text)
    if not questions:
        raise GuideFormatError(f"No questions found in {filename}")

    meta = {"guideName": (guide_name or "").strip() or filename.rsplit(".", 1)[0]}
    if tags:
        meta["tags"] = tags

    content_type = "application/json" if filename.lower().endswith(".json") else "text/plain"
    target = client.create_questionnaire_upload_url(filename, len(data), content_type, meta)
    client.upload_to_sas(target.upload_url, data, filename=filename, content_type=content_type)
    logger.info("Uploaded guide %s (%d questions)", meta["guideName"], len(questions))
    return target.questionnaire_id or ""
