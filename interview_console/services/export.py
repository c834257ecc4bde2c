# interview_console/services/export.py
"""
Human-readable interview exports (plain text and Word). One-directional:
nothing reads these files back.
"""
import io
import re
from datetime import datetime
from typing import List, Optional, Sequence

from docx import Document

from interview_console.contracts.models import AnswerBlock, Interview, PromptBlock
from interview_console.services.listing import format_date, format_timestamp

RULE = "=" * 80


def _header_lines(interview: Interview) -> List[str]:
    return [
        f"Interviewer: {interview.interviewer}",
        f"Date: {format_date(interview.date)}",
        f"Village: {interview.village}",
        f"Farmer ID: {interview.farmer_name}",
        f"Guide: {interview.guide_name}",
    ]


def _prompt_lines(prompts: Sequence[PromptBlock]) -> List[str]:
    lines = []
    for n, p in enumerate(prompts, start=1):
        lines.append(f"Prompt {n}: {p.prompt_text}")
        lines.append(f"Response: {p.response}")
        lines.append("")
    return lines


def _answer_lines(answers: Sequence[AnswerBlock]) -> List[str]:
    lines = []
    for n, block in enumerate(answers, start=1):
        lines.append(f"Question {n}: {block.question}")
        lines.append(f"Answer: {block.answer}")
        for q_n, quote in enumerate(block.quotes or [], start=1):
            lines.append(f'Quote {q_n}: "{quote.quote}"')
            if quote.note:
                lines.append(f"  Note: {quote.note}")
        if block.reasoning:
            lines.append(f"Reasoning: {block.reasoning}")
        lines.append("")
    return lines


def _body_lines(interview: Interview) -> List[str]:
    lines = _header_lines(interview) + [""]
    if interview.prompts:
        lines += ["Prompts & Responses", "-" * 19, ""] + _prompt_lines(interview.prompts)
    if interview.answers:
        lines += ["Questions & Answers", "-" * 19, ""] + _answer_lines(interview.answers)
    return lines


def render_interview_text(interview: Interview) -> str:
    return "\n".join(["Interview Summary", ""] + _body_lines(interview)) + "\n"


def render_bulk_text(interviews: Sequence[Interview], filter_info: Optional[str] = None,
                     generated_at: Optional[datetime] = None) -> str:
    lines = ["Interview Summary Report", "", f"Generated: {format_timestamp(generated_at)}"]
    if filter_info:
        lines.append(f"Filters Applied: {filter_info}")
    lines += [f"Total Interviews: {len(interviews)}", RULE, ""]
    for n, interview in enumerate(interviews, start=1):
        lines += [f"INTERVIEW {n} of {len(interviews)}", RULE, ""]
        lines += _body_lines(interview)
        lines.append("")
    return "\n".join(lines) + "\n"


def _filename_part(text: Optional[str]) -> str:
    # path separators and other unsafe characters in ids or farmer names
    return re.sub(r"[^\w.-]+", "_", text or "").strip("._")


def interview_filename(interview: Interview, suffix: str = ".txt") -> str:
    return f"interview_{_filename_part(interview.id)}_{_filename_part(interview.farmer_name)}{suffix}"


def bulk_filename(generated_at: Optional[datetime] = None) -> str:
    stamp = re.sub(r"[^a-zA-Z0-9]", "_", format_timestamp(generated_at))
    return f"interviews_bulk_{stamp}.txt"


def render_interview_docx(interview: Interview) -> bytes:
    doc = Document()
    doc.add_heading("Interview Summary", level=1)
    for line in _header_lines(interview):
        label, _, value = line.partition(": ")
        p = doc.add_paragraph()
        p.add_run(f"{label}: ").bold = True
        p.add_run(value)

    if interview.prompts:
        doc.add_heading("Prompts & Responses", level=2)
        for n, prompt in enumerate(interview.prompts, start=1):
            doc.add_paragraph(f"Prompt {n}: {prompt.prompt_text}", style="List Number")
            doc.add_paragraph(prompt.response)

    if interview.answers:
        doc.add_heading("Questions & Answers", level=2)
        for n, block in enumerate(interview.answers, start=1):
            doc.add_heading(f"Question {n}: {block.question}", level=3)
            doc.add_paragraph(block.answer)
            for quote in block.quotes or []:
                text = f'"{quote.quote}"' + (f" ({quote.note})" if quote.note else "")
                doc.add_paragraph(text, style="Quote")
            if block.reasoning:
                doc.add_paragraph(f"Reasoning: {block.reasoning}")

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
