# interview_console/repositories/records.py
from typing import Any, Dict, List, Optional

from interview_console.api_client import BackendClient
from interview_console.contracts.models import AudioRecord, DeleteResult


class RecordRepository:
    def __init__(self, client: BackendClient):
        self.client = client
        self._records: Optional[List[AudioRecord]] = None

    def refresh(self) -> List[AudioRecord]:
        self._records = self.client.list_records()
        return self._records

    def invalidate(self) -> None:
        self._records = None

    def all(self) -> List[AudioRecord]:
        if self._records is None:
            self.refresh()
        return list(self._records or [])

    def get(self, audio_id: str) -> Optional[AudioRecord]:
        return next((r for r in self.all() if r.audio_id == audio_id), None)

    def completed_translations(self) -> List[AudioRecord]:
        return [r for r in self.all() if r.translation_completed]

    def delete(self, audio_id: str) -> DeleteResult:
        result = self.client.delete_record(audio_id)
        self.invalidate()
        return result

    def update_metadata(self, audio_id: str, meta: Dict[str, Any]) -> Dict[str, Any]:
        result = self.client.update_record_metadata(audio_id, meta)
        self.invalidate()
        return result
