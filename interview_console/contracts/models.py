# interview_console/contracts/models.py
from __future__ import annotations
import json
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Any, Dict, List, Literal, Optional

# Shared types
ProcessingStatus = Literal["pending", "completed"]
TranscriptStatus = Literal["pending", "ready"]
StatusKind = Literal["draft", "generated", "human_edited"]

HUMAN_EDIT_MARKER = "human-edit"
DRAFT_LABEL = "Draft"


class BackendModel(BaseModel):
    # Backend JSON is camelCase; python code uses snake_case names.
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UploadMeta(BackendModel):
    farmer_name: str = Field(default="", alias="farmerName")
    village: str = ""
    interviewer: Optional[str] = None
    interview_date: Optional[str] = Field(default=None, alias="interviewDate")
    survey_id: Optional[str] = Field(default=None, alias="surveyId")
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class ProcessingState(BackendModel):
    status: ProcessingStatus = "pending"
    location: Optional[str] = None


class AudioRecord(BackendModel):
    audio_id: str = Field(alias="audioId")
    original_filename: str = Field(default="", alias="originalFilename")
    audio_blob_name: str = Field(default="", alias="audioBlobName")
    uploaded_at: str = Field(default="", alias="uploadedAt")
    meta: UploadMeta = Field(default_factory=UploadMeta)
    transcript: Optional[ProcessingState] = None
    translation: Optional[ProcessingState] = None

    @property
    def translation_completed(self) -> bool:
        return self.translation is not None and self.translation.status == "completed"


class TranscriptResponse(BackendModel):
    status: TranscriptStatus
    data: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.status == "ready" and bool(self.data)


class UploadTarget(BackendModel):
    """SAS upload URL plus the identifier the backend generated for the blob."""
    upload_url: str = Field(alias="uploadUrl")
    audio_id: Optional[str] = Field(default=None, alias="audioId")
    questionnaire_id: Optional[str] = Field(default=None, alias="questionnaireId")


class QuestionnaireRecord(BackendModel):
    questionnaire_id: str = Field(alias="questionnaireId")
    original_filename: str = Field(default="", alias="originalFilename")
    uploaded_at: str = Field(default="", alias="uploadedAt")
    meta: Optional[Dict[str, Any]] = None
    text: str = ""


class DeleteResult(BackendModel):
    deleted: List[str] = []
    missing: List[str] = []


class Guide(BackendModel):
    id: str
    name: str
    questions: List[str] = []
    prompts: List[str] = []
    questionnaire_id: Optional[str] = Field(default=None, alias="questionnaireId")


class AnalysisVersion(BackendModel):
    audio_id: str = Field(alias="audioId")
    questionnaire_id: str = Field(alias="questionnaireId")
    version: int
    blob_name: str = Field(default="", alias="blobName")
    size: Optional[int] = None
    last_modified: Optional[str] = Field(default=None, alias="lastModified")
    model: Optional[str] = None


class VerbatimQuote(BackendModel):
    quote: str = ""
    note: Optional[str] = None


class AnalysisQuestionEntry(BackendModel):
    """One entry of an analysis result's `questions` array."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    index: Optional[int] = None
    question_text: Optional[str] = Field(default=None, alias="questionText")
    answer_found: Any = Field(default=None, alias="answerFound")
    answer_summary: Optional[str] = Field(default=None, alias="answerSummary")
    # list of {quote, note} objects or strings, or a bare string; normalized by the aligner
    verbatim_quotes: Any = Field(default=None, alias="verbatimQuotes")
    reasoning: Optional[str] = None
    response: Optional[str] = None

    @field_validator("question_text", "answer_summary", "reasoning", "response", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (list, dict)):
            return json.dumps(value, ensure_ascii=False)
        return str(value)

    @field_validator("index", mode="before")
    @classmethod
    def _coerce_index(cls, value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return None

    def looks_like_prompt(self) -> bool:
        return self.response is not None and self.answer_summary is None and self.question_text is None


class AnalysisPrompt(BackendModel):
    index: Optional[int] = None
    prompt_text: str = Field(default="", alias="promptText")
    response: str = ""


class AnswerBlock(BackendModel):
    question: str
    answer: str = ""
    quotes: Optional[List[VerbatimQuote]] = None
    reasoning: Optional[str] = None
    # position of the question in the unfiltered guide list
    index: Optional[int] = None


class PromptBlock(BackendModel):
    index: int
    prompt_text: str = Field(alias="promptText")
    response: str = ""


class InterviewStatus(BackendModel):
    kind: StatusKind = "draft"
    model: Optional[str] = None

    @classmethod
    def draft(cls) -> "InterviewStatus":
        return cls(kind="draft")

    @classmethod
    def from_model(cls, model: Optional[str]) -> "InterviewStatus":
        name = (model or "").strip()
        if not name:
            return cls.draft()
        if HUMAN_EDIT_MARKER in name.lower():
            return cls(kind="human_edited", model=name)
        return cls(kind="generated", model=name)

    @property
    def human_approved(self) -> bool:
        return self.kind == "human_edited"

    @property
    def label(self) -> str:
        return self.model if self.kind != "draft" and self.model else DRAFT_LABEL


class Interview(BackendModel):
    id: str
    guide_id: str = Field(alias="guideId")
    guide_name: str = Field(default="", alias="guideName")
    interviewer: str = ""
    date: str = ""
    village: str = ""
    farmer_name: str = Field(default="", alias="farmerName")
    audio_file: str = Field(default="", alias="audioFile")
    status: InterviewStatus = Field(default_factory=InterviewStatus.draft)
    answers: List[AnswerBlock] = []
    prompts: List[PromptBlock] = []
    hindi_transcript: Optional[str] = Field(default=None, alias="hindiTranscript")
    english_transcript: Optional[str] = Field(default=None, alias="englishTranscript")
    audio_id: Optional[str] = Field(default=None, alias="audioId")


class ResolvedAnalysis(BackendModel):
    """A single analysis version's payload as returned by the backend."""
    audio_id: str = Field(alias="audioId")
    questionnaire_id: str = Field(alias="questionnaireId")
    version: int
    model: str = ""
    raw: Dict[str, Any] = {}

    @property
    def result(self) -> Dict[str, Any]:
        payload = self.raw.get("payload")
        if isinstance(payload, dict) and isinstance(payload.get("result"), dict):
            return payload["result"]
        result = self.raw.get("result")
        return result if isinstance(result, dict) else {}

    @property
    def result_questions(self) -> List[Optional[AnalysisQuestionEntry]]:
        entries = self.result.get("questions") or []
        if not isinstance(entries, list):
            return []
        return _validate_entries(AnalysisQuestionEntry, entries)

    @property
    def result_prompts(self) -> List[Optional[AnalysisPrompt]]:
        entries = self.result.get("prompts") or []
        if not isinstance(entries, list):
            return []
        return _validate_entries(AnalysisPrompt, entries)


def _validate_entries(model, entries: List[Any]) -> List[Any]:
    """
    Strings and nulls leak into result arrays from malformed model output.
    They become None placeholders so later entries keep their positions.
    """
    out = []
    for entry in entries:
        if not isinstance(entry, dict):
            out.append(None)
            continue
        try:
            out.append(model.model_validate(entry))
        except ValidationError:
            out.append(None)
    return out


class VersionSummary(BackendModel):
    version: int
    model: str = ""
    blob_name: str = Field(default="", alias="blobName")
    size: int = 0
    last_modified: Optional[str] = Field(default=None, alias="lastModified")
