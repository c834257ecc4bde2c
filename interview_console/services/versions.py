# interview_console/services/versions.py
"""
Analysis version lookup for an (audio, guide) pair.

Version numbers are assigned by the backend and assumed strictly increasing
per pair; the list order the backend returns is not trusted, so versions are
always sorted here. Duplicate version numbers are not detected.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Union

from interview_console.api_client import BackendClient
from interview_console.config import DEFAULT_MAX_CONCURRENT_REQUESTS
from interview_console.contracts.models import AnalysisVersion, ResolvedAnalysis, VersionSummary
from interview_console.errors import ConsoleError, NoVersionsAvailable

logger = logging.getLogger(__name__)

LATEST = "latest"


def extract_model(analysis: Dict[str, Any]) -> str:
    if not isinstance(analysis, dict):
        return ""
    model = analysis.get("model")
    if not model and isinstance(analysis.get("payload"), dict):
        model = analysis["payload"].get("model")
    return model if isinstance(model, str) else ""


def extract_result(analysis: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(analysis, dict):
        return {}
    payload = analysis.get("payload")
    if isinstance(payload, dict) and isinstance(payload.get("result"), dict):
        return payload["result"]
    result = analysis.get("result")
    return result if isinstance(result, dict) else {}


def extract_created_at(analysis: Dict[str, Any]) -> Optional[str]:
    if not isinstance(analysis, dict):
        return None
    created = analysis.get("createdAt")
    if not created and isinstance(analysis.get("payload"), dict):
        created = analysis["payload"].get("createdAt")
    return created or None


def sort_versions(versions: List[AnalysisVersion]) -> List[AnalysisVersion]:
    return sorted(versions, key=lambda v: v.version, reverse=True)


def _fetch_model(client: BackendClient, item: AnalysisVersion) -> str:
    try:
        analysis = client.get_analysis(item.audio_id, item.questionnaire_id, version=item.version)
    except ConsoleError as e:
        logger.warning("Could not load model for %s/%s v%s: %s",
                       item.audio_id, item.questionnaire_id, item.version, e)
        return ""
    return extract_model(analysis)


def list_versions(client: BackendClient, audio_id: str, questionnaire_id: str,
                  with_models: bool = False,
                  max_workers: int = DEFAULT_MAX_CONCURRENT_REQUESTS) -> List[VersionSummary]:
    """All versions of the pair, newest first. Model names are fetched with at most `max_workers` requests in flight."""
    items = sort_versions(client.list_analysis(audio_id=audio_id, questionnaire_id=questionnaire_id))
    models = [""] * len(items)
    if with_models and items:
        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            models = list(pool.map(lambda item: _fetch_model(client, item), items))
    return [
        VersionSummary(
            version=item.version,
            model=models[i] or item.model or "",
            blobName=item.blob_name,
            size=item.size or 0,
            lastModified=item.last_modified,
        )
        for i, item in enumerate(items)
    ]


def resolve_version(client: BackendClient, audio_id: str, questionnaire_id: str,
                    version: Union[int, str, None] = LATEST) -> ResolvedAnalysis:
    """
    Fetch the payload of `version`, or of the highest version number when
    `version` is "latest" (or None).

    Raises:
        NoVersionsAvailable: the pair has no versions, the requested version
            does not exist, or the backend could not be queried. Not retried.
    """
    try:
        items = sort_versions(client.list_analysis(audio_id=audio_id, questionnaire_id=questionnaire_id))
    except ConsoleError as e:
        raise NoVersionsAvailable(audio_id, questionnaire_id, str(e)) from e
    if not items:
        raise NoVersionsAvailable(audio_id, questionnaire_id)

    if version is None or version == LATEST:
        chosen = items[0].version
    else:
        try:
            chosen = int(version)
        except (TypeError, ValueError) as e:
            raise NoVersionsAvailable(audio_id, questionnaire_id, f"invalid version {version!r}") from e
        if chosen not in {item.version for item in items}:
            raise NoVersionsAvailable(audio_id, questionnaire_id, f"version {chosen} not found")

    try:
        raw = client.get_analysis(audio_id, questionnaire_id, version=chosen)
    except ConsoleError as e:
        raise NoVersionsAvailable(audio_id, questionnaire_id, str(e)) from e

    return ResolvedAnalysis(
        audioId=audio_id,
        questionnaireId=questionnaire_id,
        version=chosen,
        model=extract_model(raw),
        raw=raw if isinstance(raw, dict) else {},
    )
