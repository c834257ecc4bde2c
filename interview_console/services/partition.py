# interview_console/services/partition.py
"""
Separates a guide's scorable questions from open-ended prompts.

Guides and analysis results can carry prompts and questions in one flat list,
so a guide line that duplicates (or nearly duplicates) a prompt text is
treated as a prompt and dropped from the question list.
"""
from typing import Iterable, List, NamedTuple, Optional, Sequence, Union

from interview_console.contracts.models import AnalysisPrompt
from interview_console.services.text_filters import is_valid_question_text

NEAR_DUPLICATE_RATIO = 0.8


class GuideQuestion(NamedTuple):
    position: int  # index in the unfiltered guide list
    text: str


def normalize(text: str) -> str:
    return (text or "").strip().lower()


def is_near_duplicate(a: str, b: str, ratio: float = NEAR_DUPLICATE_RATIO) -> bool:
    """Both strings already normalized. Similar length and one contains the other."""
    if not a or not b:
        return False
    shorter, longer = sorted((len(a), len(b)))
    if shorter / longer < ratio:
        return False
    return a in b or b in a


def _prompt_texts(analysis_prompts: Iterable[Union[AnalysisPrompt, dict]],
                  guide_prompts: Optional[Sequence[str]]) -> List[str]:
    texts = []
    for p in analysis_prompts or []:
        if p is None:
            continue
        raw = p.get("promptText") if isinstance(p, dict) else p.prompt_text
        if isinstance(raw, str) and normalize(raw):
            texts.append(normalize(raw))
    for raw in guide_prompts or []:
        if isinstance(raw, str) and normalize(raw):
            texts.append(normalize(raw))
    return texts


def matches_prompt(text: str, prompt_texts: Sequence[str]) -> bool:
    candidate = normalize(text)
    for prompt in prompt_texts:
        if candidate == prompt or is_near_duplicate(candidate, prompt):
            return True
    return False


def partition_questions(guide_questions: Sequence[str],
                        analysis_prompts: Iterable[Union[AnalysisPrompt, dict]] = (),
                        guide_prompts: Optional[Sequence[str]] = None) -> List[GuideQuestion]:
    """
    Keep the guide lines that are real questions, with their original positions.

    Every line that matches a prompt is excluded, even when several lines
    match the same prompt.
    """
    prompts = _prompt_texts(analysis_prompts, guide_prompts)
    kept = []
    for position, text in enumerate(guide_questions):
        if not is_valid_question_text(text):
            continue
        if matches_prompt(text, prompts):
            continue
        kept.append(GuideQuestion(position, text))
    return kept


def filtered_question_texts(guide_questions: Sequence[str],
                            analysis_prompts: Iterable[Union[AnalysisPrompt, dict]] = (),
                            guide_prompts: Optional[Sequence[str]] = None) -> List[str]:
    return [q.text for q in partition_questions(guide_questions, analysis_prompts, guide_prompts)]
