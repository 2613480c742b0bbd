"""
Script classification and forced-language validation.

This module answers three questions about a block of input text:
- Which script families does it contain? (``classify``)
- Which single language name should be shown for it? (``resolve_label``)
- Does it satisfy the language the user forced? (``validate_forced_language``)

All functions here are pure and total: any string, including the empty
string, is valid input and nothing is cached between calls. Every script
test scans code points against that script's Unicode block(s); ASCII
letters, digits, punctuation and whitespace never count towards any script,
so a shared punctuation character cannot trigger a false positive.

Example:
    >>> from worddex.script import classify, resolve_label
    >>> sig = classify("漢字です")
    >>> resolve_label(sig)
    'Japanese'
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

AUTO = "auto"
UNKNOWN = "unknown"


class Script(str, Enum):
    """Supported script families (field names of ScriptSignature)."""
    JAPANESE = "japanese"
    CHINESE = "chinese"
    KOREAN = "korean"
    CYRILLIC = "cyrillic"
    ARABIC = "arabic"
    DEVANAGARI = "devanagari"
    ESPERANTO = "esperanto"
    ITALIAN = "italian"
    TAGALOG = "tagalog"
    FRENCH = "french"
    SPANISH = "spanish"
    PORTUGUESE = "portuguese"
    GERMAN = "german"


# ============================================================================
# Unicode ranges
# ============================================================================

KANA_RANGES = ((0x3040, 0x30FF),)
HAN_RANGES = ((0x3400, 0x4DBF), (0x4E00, 0x9FFF))
HANGUL_RANGES = (
    (0xAC00, 0xD7AF),  # syllables
    (0x1100, 0x11FF),  # jamo
    (0x3130, 0x318F),  # compatibility jamo
    (0xFFA0, 0xFFDC),  # halfwidth jamo
)
CYRILLIC_RANGES = ((0x0400, 0x04FF),)
ARABIC_RANGES = ((0x0600, 0x06FF), (0x0750, 0x077F))
DEVANAGARI_RANGES = ((0x0900, 0x097F),)
BAYBAYIN_RANGES = ((0x1700, 0x171F),)

# Latin-script languages are recognised by their diacritics only
ESPERANTO_CHARS = frozenset("ĉĝĥĵŝŭĈĜĤĴŜŬ")
ITALIAN_CHARS = frozenset("àèéìíîòóùúÀÈÉÌÍÎÒÓÙÚ")
FRENCH_CHARS = frozenset("àâæçéèêëîïôœùûüÿÀÂÆÇÉÈÊËÎÏÔŒÙÛÜŸ")
SPANISH_CHARS = frozenset("ñáéíóúü¡¿ÑÁÉÍÓÚÜ")
PORTUGUESE_CHARS = frozenset("ãõâêôçáéíóúàÃÕÂÊÔÇÁÉÍÓÚÀ")
GERMAN_CHARS = frozenset("äöüßÄÖÜẞ")

# Tagalog "ng" written with a tilde (g + combining tilde, NFC has no precomposed form)
TAGALOG_NG_TILDE = re.compile("[gG]\u0303")


def _in_ranges(cp: int, ranges: Iterable[tuple[int, int]]) -> bool:
    return any(lo <= cp <= hi for lo, hi in ranges)


def _has_range(text: str, ranges: Iterable[tuple[int, int]]) -> bool:
    ranges = tuple(ranges)
    return any(ord(ch) > 0x7F and _in_ranges(ord(ch), ranges) for ch in text)


def _has_chars(text: str, chars: frozenset[str]) -> bool:
    return any(ch in chars for ch in text)


def contains_kana(text: str) -> bool:
    return _has_range(text, KANA_RANGES)


def contains_han(text: str) -> bool:
    return _has_range(text, HAN_RANGES)


def contains_hangul(text: str) -> bool:
    return _has_range(text, HANGUL_RANGES)


# ============================================================================
# Signature
# ============================================================================

@dataclass(frozen=True)
class ScriptSignature:
    """Independent presence flags, one per script family.

    ``japanese`` is kana or Han; ``chinese`` is Han without any kana, so
    kanji-only text sets both and the label resolver breaks the tie.
    """
    japanese: bool = False
    chinese: bool = False
    korean: bool = False
    cyrillic: bool = False
    arabic: bool = False
    devanagari: bool = False
    esperanto: bool = False
    italian: bool = False
    tagalog: bool = False
    french: bool = False
    spanish: bool = False
    portuguese: bool = False
    german: bool = False

    def has(self, script: Script | str) -> bool:
        return bool(getattr(self, Script(script).value))

    @property
    def has_kana(self) -> bool:
        # japanese without chinese can only mean kana is present
        return self.japanese and not self.chinese

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))

    def present(self) -> list[Script]:
        return [s for s in Script if self.has(s)]

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def classify(text: str) -> ScriptSignature:
    """Compute the script signature of ``text``.

    Empty or whitespace-only input yields an all-false signature.
    """
    if not text or not text.strip():
        return ScriptSignature()

    # Decomposed accents (e + U+0301) must match the precomposed tables
    text = unicodedata.normalize("NFC", text)

    kana = contains_kana(text)
    han = contains_han(text)

    return ScriptSignature(
        japanese=kana or han,
        chinese=han and not kana,
        korean=contains_hangul(text),
        cyrillic=_has_range(text, CYRILLIC_RANGES),
        arabic=_has_range(text, ARABIC_RANGES),
        devanagari=_has_range(text, DEVANAGARI_RANGES),
        esperanto=_has_chars(text, ESPERANTO_CHARS),
        italian=_has_chars(text, ITALIAN_CHARS),
        tagalog=_has_range(text, BAYBAYIN_RANGES) or bool(TAGALOG_NG_TILDE.search(text)),
        french=_has_chars(text, FRENCH_CHARS),
        spanish=_has_chars(text, SPANISH_CHARS),
        portuguese=_has_chars(text, PORTUGUESE_CHARS),
        german=_has_chars(text, GERMAN_CHARS),
    )


# ============================================================================
# Language tables
# ============================================================================

# Display label for each script family
SCRIPT_LABELS: Mapping[Script, str] = MappingProxyType({
    Script.JAPANESE: "Japanese",
    Script.CHINESE: "Chinese",
    Script.KOREAN: "Korean",
    Script.CYRILLIC: "Russian",
    Script.ARABIC: "Arabic",
    Script.DEVANAGARI: "Hindi",
    Script.ESPERANTO: "Esperanto",
    Script.ITALIAN: "Italian",
    Script.TAGALOG: "Tagalog",
    Script.FRENCH: "French",
    Script.SPANISH: "Spanish",
    Script.PORTUGUESE: "Portuguese",
    Script.GERMAN: "German",
})

LANGUAGE_NAMES: Mapping[str, str] = MappingProxyType({
    "ja": "Japanese",
    "zh": "Chinese",
    "ko": "Korean",
    "ru": "Russian",
    "ar": "Arabic",
    "hi": "Hindi",
    "eo": "Esperanto",
    "it": "Italian",
    "tl": "Tagalog",
    "fr": "French",
    "es": "Spanish",
    "pt": "Portuguese",
    "de": "German",
    "en": "English",
})

# Forced-language code -> script test that must hold
CODE_SCRIPTS: Mapping[str, Script] = MappingProxyType({
    "ja": Script.JAPANESE,
    "zh": Script.CHINESE,
    "ko": Script.KOREAN,
    "ru": Script.CYRILLIC,
    "ar": Script.ARABIC,
    "hi": Script.DEVANAGARI,
    "eo": Script.ESPERANTO,
    "it": Script.ITALIAN,
    "tl": Script.TAGALOG,
    "fr": Script.FRENCH,
    "es": Script.SPANISH,
    "pt": Script.PORTUGUESE,
    "de": Script.GERMAN,
})

NON_LATIN_SCRIPTS = (
    Script.JAPANESE, Script.KOREAN, Script.CYRILLIC,
    Script.ARABIC, Script.DEVANAGARI,
)


def language_name(code: str) -> str:
    """Return the display name for a language code (the code itself if unknown)."""
    return LANGUAGE_NAMES.get((code or "").lower(), code)


def language_code(language: str) -> Optional[str]:
    """Return the code for a code or display name, or None."""
    if not language:
        return None
    lowered = language.strip().lower()
    if lowered in LANGUAGE_NAMES:
        return lowered
    for code, name in LANGUAGE_NAMES.items():
        if name.lower() == lowered:
            return code
    return None


@dataclass(frozen=True)
class ClassifierConfig:
    """Immutable tables driving label resolution and romanization policy.

    Attributes:
        label_priority: Script families in the order they win a label.
            Japanese is only chosen when kana is present; kanji-only text
            falls through to Chinese.
        romanized: Language names whose translations must carry a reading.
    """
    label_priority: tuple[Script, ...] = (
        Script.JAPANESE,
        Script.CHINESE,
        Script.KOREAN,
        Script.CYRILLIC,
        Script.ARABIC,
        Script.DEVANAGARI,
        Script.ESPERANTO,
        Script.ITALIAN,
        Script.TAGALOG,
        Script.FRENCH,
        Script.SPANISH,
        Script.PORTUGUESE,
        Script.GERMAN,
    )
    romanized: frozenset[str] = field(default_factory=lambda: frozenset({
        "Japanese", "Chinese", "Korean", "Russian", "Arabic", "Hindi",
    }))


DEFAULT_CLASSIFIER_CONFIG = ClassifierConfig()


def resolve_label(
    signature: ScriptSignature,
    config: ClassifierConfig | None = None,
) -> str:
    """Pick one display language from a signature.

    Used for titles only, never for validation.
    """
    config = config or DEFAULT_CLASSIFIER_CONFIG
    for script in config.label_priority:
        if script is Script.JAPANESE:
            hit = signature.has_kana
        else:
            hit = signature.has(script)
        if hit:
            return SCRIPT_LABELS[script]
    return UNKNOWN


def detect_language(text: str, config: ClassifierConfig | None = None) -> str:
    """Shortcut for ``resolve_label(classify(text))``."""
    return resolve_label(classify(text), config)


def _is_english(text: str, signature: ScriptSignature) -> bool:
    has_ascii_letters = any("a" <= ch.lower() <= "z" for ch in text)
    return has_ascii_letters and not any(signature.has(s) for s in NON_LATIN_SCRIPTS)


def validate_forced_language(text: str, constraint: str | None = AUTO) -> bool:
    """Check ``text`` against a forced language.

    Returns True for ``auto``; otherwise True iff the script test for the
    constraint holds. Never raises: unknown constraints return False.
    Callers must re-run this after every edit of the text.
    """
    if not constraint or constraint.strip().lower() == AUTO:
        return True

    code = language_code(constraint)
    if code is None:
        logger.warning("Unknown forced language '%s'", constraint)
        return False

    signature = classify(text)
    if code == "en":
        valid = _is_english(text, signature)
    else:
        valid = signature.has(CODE_SCRIPTS[code])

    logger.debug(
        "Forced language %s: %s (present: %s)",
        code, "ok" if valid else "mismatch",
        [s.value for s in signature.present()],
    )
    return valid


def needs_romanization(language: str, config: ClassifierConfig | None = None) -> bool:
    """Whether translations for ``language`` (name or code) need a reading."""
    config = config or DEFAULT_CLASSIFIER_CONFIG
    code = language_code(language)
    name = LANGUAGE_NAMES[code] if code else language
    return name in config.romanized


# ============================================================================
# OCR text normalization
# ============================================================================

_CJ_GAP = re.compile(r"([\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff])\s+(?=[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff])")


def clean_text(text: str) -> str:
    """Normalize OCR output before classification.

    Newlines become spaces and runs of whitespace collapse. For Chinese or
    Japanese text the spaces OCR inserts between characters are removed;
    Korean keeps its word spacing.
    """
    if not text:
        return ""
    cleaned = re.sub(r"\s+", " ", text.replace("\n", " ")).strip()
    if (contains_kana(cleaned) or contains_han(cleaned)) and not contains_hangul(cleaned):
        cleaned = _CJ_GAP.sub(r"\1", cleaned)
    return cleaned
