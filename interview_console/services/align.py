# interview_console/services/align.py
"""
Maps guide questions and prompts onto the entries of an analysis result.

Result arrays keep a None placeholder wherever an entry was malformed, so
list position always matches the position the analysis produced.
"""
from typing import Any, Dict, List, Optional, Sequence, Union

from interview_console.contracts.models import (
    AnalysisPrompt, AnalysisQuestionEntry, AnswerBlock, PromptBlock, VerbatimQuote,
)
from interview_console.services.partition import GuideQuestion

QuestionLike = Union[GuideQuestion, str]


def _as_entry(raw: Any) -> Optional[AnalysisQuestionEntry]:
    if isinstance(raw, AnalysisQuestionEntry):
        return raw
    if isinstance(raw, dict):
        try:
            return AnalysisQuestionEntry.model_validate(raw)
        except ValueError:
            return None
    return None


def _quotes(entry: AnalysisQuestionEntry) -> Optional[List[VerbatimQuote]]:
    raw = entry.verbatim_quotes
    if isinstance(raw, (str, dict)):
        raw = [raw]
    if not isinstance(raw, list):
        return None
    quotes = []
    for vq in raw:
        if isinstance(vq, dict):
            quote = vq.get("quote") if isinstance(vq.get("quote"), str) else ""
            note = vq.get("note") if isinstance(vq.get("note"), str) and vq.get("note") else None
            quotes.append(VerbatimQuote(quote=quote, note=note))
        elif isinstance(vq, str) and vq.strip():
            quotes.append(VerbatimQuote(quote=vq))
    return quotes or None


def find_entry(entries: Sequence[Optional[AnalysisQuestionEntry]], position: int,
               display_index: int) -> Optional[AnalysisQuestionEntry]:
    """
    Index match first. The positional candidate is only used when it carries
    no index of its own and does not look like a prompt; a placeholder at
    that position means no candidate.
    """
    for entry in entries:
        if entry is not None and entry.index == position:
            return entry
    if display_index < len(entries):
        candidate = entries[display_index]
        if candidate is not None and candidate.index is None and not candidate.looks_like_prompt():
            return candidate
    return None


def align(filtered_questions: Sequence[QuestionLike],
          result_questions: Sequence[Union[AnalysisQuestionEntry, Dict[str, Any]]]) -> List[AnswerBlock]:
    """
    One AnswerBlock per filtered question, in display order. Unmatched
    questions get an empty answer; mismatched lengths never raise.

    Plain strings are treated as already being at their original positions.
    """
    entries = [_as_entry(r) for r in result_questions or []]
    blocks = []
    for i, question in enumerate(filtered_questions):
        if isinstance(question, GuideQuestion):
            position, text = question.position, question.text
        else:
            position, text = i, question
        found = find_entry(entries, position, i)
        if found is None:
            blocks.append(AnswerBlock(question=text, answer="", index=position))
            continue
        blocks.append(AnswerBlock(
            question=text,
            answer=found.answer_summary or "",
            quotes=_quotes(found),
            reasoning=found.reasoning or None,
            index=position,
        ))
    return blocks


def align_prompts(guide_prompts: Sequence[str],
                  analysis_prompts: Sequence[Optional[AnalysisPrompt]]) -> List[PromptBlock]:
    """Pair outline items with their responses; without guide prompts the analysis prompts are shown as they are."""
    if not guide_prompts:
        return [
            PromptBlock(index=p.index if p.index is not None else i, promptText=p.prompt_text, response=p.response)
            for i, p in enumerate(analysis_prompts) if p is not None
        ]
    blocks = []
    for i, text in enumerate(guide_prompts):
        found = next((p for p in analysis_prompts if p is not None and p.index == i), None)
        candidate = analysis_prompts[i] if i < len(analysis_prompts) else None
        if found is None and candidate is not None and candidate.index is None:
            found = candidate
        blocks.append(PromptBlock(index=i, promptText=text, response=found.response if found else ""))
    return blocks
