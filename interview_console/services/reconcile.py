# interview_console/services/reconcile.py
from typing import Any, Dict, List, Optional, Sequence, Tuple

from interview_console.config import DEFAULT_HUMAN_EDIT_MODEL
from interview_console.contracts.models import (
    HUMAN_EDIT_MARKER, AnswerBlock, Guide, PromptBlock, ResolvedAnalysis,
)
from interview_console.services.align import align, align_prompts
from interview_console.services.partition import partition_questions


def reconcile(guide: Guide, resolved: ResolvedAnalysis) -> Tuple[List[PromptBlock], List[AnswerBlock]]:
    """Guide + one analysis version -> the prompt and answer blocks shown to the user."""
    analysis_prompts = resolved.result_prompts
    questions = partition_questions(guide.questions, analysis_prompts, guide.prompts)
    answers = align(questions, resolved.result_questions)
    prompts = align_prompts(guide.prompts, analysis_prompts)
    return prompts, answers


def human_edit_model_name(model: Optional[str], default: str = DEFAULT_HUMAN_EDIT_MODEL) -> str:
    name = (model or "").strip()
    if not name:
        return default
    if HUMAN_EDIT_MARKER in name.lower():
        return name
    return f"{name}-{HUMAN_EDIT_MARKER}"


def build_manual_payload(audio_id: str, questionnaire_id: str, answers: Sequence[AnswerBlock],
                         prompts: Sequence[PromptBlock] = (), model: str = DEFAULT_HUMAN_EDIT_MODEL) -> Dict[str, Any]:
    questions = []
    for i, a in enumerate(answers):
        entry = {
            "index": a.index if a.index is not None else i,
            "questionText": a.question,
            "answerFound": bool((a.answer or "").strip()),
            "answerSummary": a.answer,
            "verbatimQuotes": [q.model_dump(exclude_none=True) for q in (a.quotes or [])],
        }
        if a.reasoning:
            entry["reasoning"] = a.reasoning
        questions.append(entry)

    result: Dict[str, Any] = {
        "audioId": audio_id,
        "questionnaireId": questionnaire_id,
        "questions": questions,
    }
    if prompts:
        result["prompts"] = [
            {"index": p.index, "promptText": p.prompt_text, "response": p.response} for p in prompts
        ]
    return {"model": model, "result": result}
