from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from .config import SlotNames

ROLES = ["computer scientist", "social work", "engineer", "educator", "writer"]
SUBJECTS = ["English", "Math", "Programming"]

ROLE_SYNONYMS = {
    "computer scientist": r"computer scien\w*|programmer|developer|coder",
    "social work": r"social work\w*",
    "engineer": r"engineer\w*",
    "educator": r"educator|teacher|teach\w*",
    "writer": r"writer|author|journalist|writ\w*",
}

SUBJECT_SYNONYMS = {
    "English": r"english|grammar|vocabulary",
    "Math": r"math\w*|algebra|arithmetic",
    "Programming": r"programming|coding|code|python|ruby",
}

# Prompts for each criterion, asked in this order.
SLOT_PROMPTS = {
    "role": ("What would you like to be when you grow up?", [r.capitalize() for r in ROLES]),
    "subject": ("Which subject would you like to learn?", SUBJECTS),
    "grade": ("What grade are you in?", [str(g) for g in range(1, 9)]),
}


def detect_role(text: str) -> Optional[str]:
    t = text.lower()
    for role in ROLES:
        if re.search(rf"\b({ROLE_SYNONYMS[role]})\b", t):
            return role
    return None


def detect_subject(text: str) -> Optional[str]:
    t = text.lower()
    for subject in SUBJECTS:
        if re.search(rf"\b({SUBJECT_SYNONYMS[subject]})\b", t):
            return subject
    return None


def detect_grade(text: str) -> Optional[int]:
    m = re.search(r"\b(?:grade|year|class)\s*(\d{1,2})\b", text, re.I)
    if not m:
        m = re.search(r"\b(\d{1,2})(?:st|nd|rd|th)?\s*(?:grade|year|class)\b", text, re.I)
    if not m:
        # A bare number is accepted as an answer to the grade prompt
        m = re.fullmatch(r"\s*(\d{1,2})\s*", text)
    return int(m.group(1)) if m else None


def extract_slots(text: str, names: SlotNames = SlotNames()) -> Dict[str, Any]:
    """Return only the parameters found in this utterance, keyed by NLU parameter name."""
    found: Dict[str, Any] = {}
    role = detect_role(text)
    if role:
        found[names.role] = role
    subject = detect_subject(text)
    if subject:
        found[names.subject] = subject
    grade = detect_grade(text)
    if grade is not None:
        found[names.grade] = grade
    return found


def missing_slots(slots: Mapping[str, Any], names: SlotNames = SlotNames()) -> List[str]:
    keys = {"role": names.role, "subject": names.subject, "grade": names.grade}
    return [k for k, param in keys.items() if slots.get(param) in (None, "")]
