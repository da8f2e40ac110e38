"""
Pattern rules that pull a candidate identity number and a candidate full
name out of raw OCR text.
"""
import re
from dataclasses import dataclass
from typing import Optional

ID_NUMBER_PATTERN = re.compile(r"\b\d{6,12}\b", re.ASCII)
NAME_PATTERN = re.compile(r"[A-Z][a-zA-Z]+\s+[A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)?")


@dataclass(frozen=True)
class FieldMatch:
    candidate_id: Optional[str] = None
    candidate_name: Optional[str] = None


def normalize_text(text: str) -> str:
    return text.replace("\r", " ").replace("\n", " ")


def match_fields(text: str) -> FieldMatch:
    """
    Extract the first 6-12 digit run and the first two or three consecutive
    capitalised words from ``text``.

    Returns a FieldMatch whose attributes are None when nothing matched.
    """
    cleaned = normalize_text(text or "")

    id_match = ID_NUMBER_PATTERN.search(cleaned)
    name_match = NAME_PATTERN.search(cleaned)

    return FieldMatch(
        candidate_id=id_match.group(0) if id_match else None,
        candidate_name=name_match.group(0) if name_match else None,
    )
