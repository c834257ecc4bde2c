# interview_console/repositories/interviews.py
"""
Interviews are not stored anywhere as such: each one is the latest analysis
of an (audio, guide) pair joined with the audio record's metadata and the
guide. The backend stays the system of record; this repository only caches.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from interview_console.api_client import BackendClient
from interview_console.config import DEFAULT_HUMAN_EDIT_MODEL, DEFAULT_MAX_CONCURRENT_REQUESTS
from interview_console.contracts.models import (
    AnalysisVersion, AnswerBlock, Guide, Interview, InterviewStatus, PromptBlock, ResolvedAnalysis,
)
from interview_console.errors import ConsoleError, NoVersionsAvailable
from interview_console.repositories.guides import GuideRepository
from interview_console.services.listing import parse_date
from interview_console.services.reconcile import build_manual_payload, human_edit_model_name, reconcile
from interview_console.services.versions import LATEST, extract_model, resolve_version

logger = logging.getLogger(__name__)


def interview_id(audio_id: str, guide_id: str) -> str:
    """Interview ids derive from the pair so they survive cache refreshes."""
    return f"{audio_id}-{guide_id}"


class InterviewRepository:
    def __init__(self, client: BackendClient, guides: GuideRepository,
                 max_workers: int = DEFAULT_MAX_CONCURRENT_REQUESTS,
                 human_edit_model: str = DEFAULT_HUMAN_EDIT_MODEL):
        self.client = client
        self.guides = guides
        self.max_workers = max(1, max_workers)
        self.human_edit_model = human_edit_model
        self._interviews: Optional[List[Interview]] = None

    # ----- cache -----
    def refresh(self) -> List[Interview]:
        analyses = self.client.list_analysis(latest_only=True)
        if not analyses:
            self._interviews = []
            return []
        records = {r.audio_id: r for r in self.client.list_records()}
        models = self._latest_models(analyses)

        out = []
        for a, model in zip(analyses, models):
            rec = records.get(a.audio_id)
            meta = rec.meta if rec else None
            guide = self.guides.get(a.questionnaire_id)
            date = (meta.interview_date if meta else None) or (rec.uploaded_at if rec else None)
            out.append(Interview(
                id=interview_id(a.audio_id, a.questionnaire_id),
                guideId=a.questionnaire_id,
                guideName=guide.name if guide else "Unknown",
                interviewer=(meta.interviewer if meta else "") or "",
                date=date or datetime.now(timezone.utc).isoformat(),
                village=meta.village if meta else "",
                farmerName=meta.farmer_name if meta else "",
                audioFile=rec.original_filename if rec else "",
                status=InterviewStatus.from_model(model),
                audioId=a.audio_id,
            ))
        out.sort(key=lambda i: parse_date(i.date), reverse=True)
        self._interviews = out
        return out

    def _latest_models(self, analyses: Sequence[AnalysisVersion]) -> List[str]:
        def fetch(a: AnalysisVersion) -> str:
            try:
                return extract_model(self.client.get_analysis(a.audio_id, a.questionnaire_id, latest=True))
            except ConsoleError as e:
                logger.warning("Could not load latest model for %s/%s: %s", a.audio_id, a.questionnaire_id, e)
                return ""

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(fetch, analyses))

    def invalidate(self) -> None:
        self._interviews = None

    def all(self) -> List[Interview]:
        if self._interviews is None:
            self.refresh()
        return list(self._interviews or [])

    # ----- local state -----
    def get(self, interview_id: str) -> Optional[Interview]:
        return next((i for i in self.all() if i.id == interview_id), None)

    def find_by_audio_and_guide(self, audio_id: str, guide_id: str) -> Optional[Interview]:
        return next((i for i in self.all() if i.audio_id == audio_id and i.guide_id == guide_id), None)

    def _replace(self, updated: Interview) -> Interview:
        items = self.all()
        self._interviews = [updated if i.id == updated.id else i for i in items]
        return updated

    def update(self, interview_id: str, **changes) -> Optional[Interview]:
        current = self.get(interview_id)
        if current is None:
            return None
        return self._replace(current.model_copy(update=changes))

    def upsert_by_audio_and_guide(self, data: Interview) -> Interview:
        existing = self.find_by_audio_and_guide(data.audio_id, data.guide_id)
        if existing:
            return self._replace(data.model_copy(update={"id": existing.id}))
        created = data.model_copy(update={"id": data.id or interview_id(data.audio_id or "", data.guide_id)})
        self._interviews = self.all() + [created]
        return created

    def remove(self, interview_id: str) -> None:
        self._interviews = [i for i in self.all() if i.id != interview_id]

    # ----- backend-backed operations -----
    def _guide_for(self, interview: Interview, resolved: ResolvedAnalysis) -> Guide:
        guide = self.guides.get(interview.guide_id)
        if guide is not None:
            return guide
        # guide deleted or unreadable: fall back to the question texts stored with the analysis
        texts = [(q.question_text or "") if q is not None else "" for q in resolved.result_questions]
        return Guide(id=interview.guide_id, name=interview.guide_name, questions=texts)

    def load_detail(self, interview: Interview, version: Union[int, str, None] = LATEST) -> Interview:
        """Fetch transcripts and reconcile the selected analysis version into answers."""
        changes: Dict[str, object] = {}
        if interview.audio_id:
            try:
                hindi = self.client.get_transcript(interview.audio_id)
                if hindi.ready:
                    changes["hindi_transcript"] = hindi.data
            except ConsoleError as e:
                logger.warning("Transcript unavailable for %s: %s", interview.audio_id, e)
            try:
                english = self.client.get_translation(interview.audio_id)
                if english.ready:
                    changes["english_transcript"] = english.data
            except ConsoleError as e:
                logger.warning("Translation unavailable for %s: %s", interview.audio_id, e)

            resolved = resolve_version(self.client, interview.audio_id, interview.guide_id, version)
            prompts, answers = reconcile(self._guide_for(interview, resolved), resolved)
            changes.update(answers=answers, prompts=prompts, status=InterviewStatus.from_model(resolved.model))

        updated = interview.model_copy(update=changes)
        if self._interviews is not None and any(i.id == updated.id for i in self._interviews):
            self._replace(updated)
        return updated

    def load_details(self, interviews: Sequence[Interview],
                     version: Union[int, str, None] = LATEST) -> List[Interview]:
        """
        Load each interview for export. One without analysis versions is kept
        as it is, with no answers, instead of failing the whole batch.
        """
        out = []
        for interview in interviews:
            try:
                out.append(self.load_detail(interview, version))
            except NoVersionsAvailable as e:
                logger.warning("Exporting %s without answers: %s", interview.id, e)
                out.append(interview)
        return out

    def save_edits(self, interview: Interview, answers: Sequence[AnswerBlock],
                   prompts: Sequence[PromptBlock] = ()) -> Interview:
        """
        Persist edited answers as a new manual analysis version, then update
        the cached interview. The two steps are not atomic: if the second
        fails the cache stays stale until the next refresh.
        """
        if not interview.audio_id or not interview.guide_id:
            raise ConsoleError("Missing audio/guide identifiers")
        model = human_edit_model_name(interview.status.model, default=self.human_edit_model)
        payload = build_manual_payload(interview.audio_id, interview.guide_id, answers, prompts, model=model)
        self.client.create_manual_analysis(interview.audio_id, interview.guide_id, payload)

        updated = interview.model_copy(update={
            "answers": list(answers),
            "prompts": list(prompts),
            "status": InterviewStatus.from_model(model),
        })
        if self._interviews is not None:
            self.upsert_by_audio_and_guide(updated)
        return updated
