# interview_console/services/text_filters.py
"""
Guide text handling: the noise filter for question lines and the parsers for
uploaded guide files (JSON `{questions, prompts}` or legacy plain text).
"""
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

STRUCTURAL_TOKENS = {"{", "}", "[", "]", "],", "},"}
STRUCTURAL_KEY_PREFIXES = ('"questions":', '"prompts":')
BRACKET_LINE = re.compile(r"^\s*[\[\]{}]\s*,?\s*$")
CODE_FENCE = re.compile(r"^`{3,}[\w-]*$")
NUMBERED_LINE = re.compile(r"^\d+\.\s*(.+)$")


def is_valid_question_text(text: Any) -> bool:
    """
    Last-resort filter for JSON syntax leaking into guide questions when a
    malformed upload is split line by line. Not a parser: multi-line fragments
    can still get through.
    """
    if not text or not isinstance(text, str):
        return False
    trimmed = text.strip()
    if not trimmed:
        return False
    if trimmed in STRUCTURAL_TOKENS:
        return False
    if trimmed.startswith(STRUCTURAL_KEY_PREFIXES):
        return False
    if BRACKET_LINE.match(trimmed):
        return False
    if CODE_FENCE.match(trimmed):
        return False
    return True


def normalize_guide_text(text: str) -> str:
    return (text or "").replace("\r\n", "\n").strip()


def parse_question_lines(text: str) -> List[str]:
    """Legacy guide format: one question per line, optionally numbered ("1. question")."""
    questions = []
    for line in normalize_guide_text(text).split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        match = NUMBERED_LINE.match(trimmed)
        question = match.group(1).strip() if match else trimmed
        if question:
            questions.append(question)
    return questions


def _clean_items(items: Any) -> List[str]:
    if not isinstance(items, list):
        return []
    return [s.strip() for s in items if isinstance(s, str) and s.strip()]


def parse_guide_content(text: str) -> Tuple[List[str], List[str]]:
    """
    Returns (questions, prompts) for a guide file's text.

    JSON objects with `questions` and/or `prompts` arrays are read as such;
    anything else falls back to the plain-text line format with no prompts.
    """
    normalized = normalize_guide_text(text)
    if not normalized:
        return [], []
    try:
        data = json.loads(normalized)
    except ValueError:
        data = None
    if isinstance(data, dict) and ("questions" in data or "prompts" in data):
        return _clean_items(data.get("questions")), _clean_items(data.get("prompts"))
    return parse_question_lines(normalized), []


def guide_display_name(filename: str, meta: Optional[Dict[str, Any]] = None) -> str:
    guide_name = (meta or {}).get("guideName")
    if isinstance(guide_name, str) and guide_name.strip():
        return guide_name.strip()
    return Path(filename or "").stem if filename else ""
