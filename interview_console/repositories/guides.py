# interview_console/repositories/guides.py
import logging
from typing import List, Optional

from interview_console.api_client import BackendClient
from interview_console.contracts.models import DeleteResult, Guide, QuestionnaireRecord
from interview_console.errors import ConsoleError
from interview_console.services import uploads
from interview_console.services.text_filters import guide_display_name, parse_guide_content

logger = logging.getLogger(__name__)


def guide_from_record(record: QuestionnaireRecord) -> Guide:
    questions, prompts = parse_guide_content(record.text)
    return Guide(
        id=record.questionnaire_id,
        name=guide_display_name(record.original_filename, record.meta) or record.questionnaire_id,
        questions=questions,
        prompts=prompts,
        questionnaireId=record.questionnaire_id,
    )


class GuideRepository:
    """Guides cached from the backend. Call `refresh()` after writes made elsewhere."""

    def __init__(self, client: BackendClient):
        self.client = client
        self._guides: Optional[List[Guide]] = None
        self.records: List[QuestionnaireRecord] = []

    def refresh(self) -> List[Guide]:
        self.records = self.client.list_questionnaires()
        loaded = []
        for record in self.records:
            try:
                full = self.client.get_questionnaire(record.questionnaire_id)
            except ConsoleError as e:
                logger.warning("Skipping guide %s: %s", record.questionnaire_id, e)
                continue
            # the list endpoint carries the authoritative filename/meta
            full.original_filename = full.original_filename or record.original_filename
            full.meta = full.meta or record.meta
            guide = guide_from_record(full)
            if not guide.questions:
                logger.warning("Skipping guide %s: no questions found", record.questionnaire_id)
                continue
            loaded.append(guide)
        self._guides = loaded
        return loaded

    def invalidate(self) -> None:
        self._guides = None

    def all(self) -> List[Guide]:
        if self._guides is None:
            self.refresh()
        return list(self._guides or [])

    def get(self, guide_id: str) -> Optional[Guide]:
        return next((g for g in self.all() if g.id == guide_id), None)

    def upload(self, filename: str, data: bytes, guide_name: Optional[str] = None,
               tags: Optional[List[str]] = None) -> str:
        questionnaire_id = uploads.upload_guide(self.client, filename, data, guide_name=guide_name, tags=tags)
        self.invalidate()
        return questionnaire_id

    def delete(self, guide_id: str) -> DeleteResult:
        result = self.client.delete_questionnaire(guide_id)
        self.invalidate()
        return result

    def delete_analyses(self, guide_id: str) -> int:
        """Delete every analysis version of this guide, across all audio files. Returns the pairs deleted."""
        items = self.client.list_analysis(questionnaire_id=guide_id)
        audio_ids = sorted({item.audio_id for item in items})
        deleted = 0
        for audio_id in audio_ids:
            try:
                self.client.delete_analysis(audio_id, guide_id, all_versions=True)
                deleted += 1
            except ConsoleError as e:
                logger.warning("Failed to delete analyses for %s/%s: %s", audio_id, guide_id, e)
        return deleted
