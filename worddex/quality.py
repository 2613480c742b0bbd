"""
Heuristic quality checks for translator output.

A translation starts at 100 points and loses points for:
- being much shorter than the source (up to 50)
- lacking the target language's script (30)
- containing provider error wording (60)
- containing leftover JSON from the reply format (40)

Scores under VERIFICATION_THRESHOLD are flagged so the orchestrator can
attach a warning. The checks never reject a translation on their own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from worddex.script import classify, contains_han

VERIFICATION_THRESHOLD = 70

LATIN_LANGUAGES = frozenset({"en", "fr", "es", "it", "pt", "de", "tl", "eo"})

ERROR_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"error", r"failed", r"exception", r"timeout", r"rate limit",
        r"invalid", r"malformed", r"api error", r"token limit",
    )
]

JSON_ARTIFACT_PATTERNS = [
    re.compile(r'"readingsText"\s*:'),
    re.compile(r'"translatedText"\s*:'),
    re.compile(r"\{.*\}", re.DOTALL),
]

ASCII_LETTER = re.compile(r"[A-Za-z]")


@dataclass
class QualityAssessment:
    score: int
    needs_verification: bool
    reasons: list[str] = field(default_factory=list)


def has_expected_script(text: str, language: str) -> bool:
    """True if ``text`` looks like it is written in ``language``."""
    signature = classify(text)
    if language == "ja":
        return signature.japanese
    elif language == "zh":
        return contains_han(text)
    elif language == "ko":
        return signature.korean
    elif language == "ru":
        return signature.cyrillic
    elif language == "ar":
        return signature.arabic
    elif language == "hi":
        return signature.devanagari
    elif language in LATIN_LANGUAGES:
        return bool(ASCII_LETTER.search(text)) and not (signature.japanese or signature.korean)
    return len(text) > 0


def contains_error_patterns(text: str) -> bool:
    return any(p.search(text) for p in ERROR_PATTERNS)


def contains_json_artifacts(text: str) -> bool:
    return any(p.search(text) for p in JSON_ARTIFACT_PATTERNS)


def assess_translation_quality(
    translated_text: str,
    target_language: str,
    source_length: int,
) -> QualityAssessment:
    """Score a translation from 0 to 100.

    Args:
        translated_text: Translator output
        target_language: Target language code
        source_length: Length of the source text in characters
    """
    score = 100
    reasons: list[str] = []

    min_expected = max(3, int(source_length * 0.3))
    if len(translated_text) < min_expected:
        score -= min(50, (min_expected - len(translated_text)) * 5)
        reasons.append(f"Too short ({len(translated_text)} chars, expected >{min_expected})")

    if not has_expected_script(translated_text, target_language):
        score -= 30
        reasons.append(f"Missing expected {target_language} characters")

    if contains_error_patterns(translated_text):
        score -= 60
        reasons.append("Contains error messages or API failures")

    if contains_json_artifacts(translated_text):
        score -= 40
        reasons.append("Contains JSON parsing artifacts")

    score = max(0, score)
    return QualityAssessment(
        score=score,
        needs_verification=score < VERIFICATION_THRESHOLD,
        reasons=reasons,
    )
