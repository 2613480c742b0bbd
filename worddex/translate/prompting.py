"""
Prompt construction for LLM translator backends.

Every backend asks for the same JSON reply:

    {"readingsText": "...", "translatedText": "..."}

``readingsText`` is the source text with a reading in parentheses right
after each word that needs one (see worddex.ruby). It is left empty for
languages that are not romanized.
"""

from __future__ import annotations

from typing import Optional

from worddex.script import AUTO, language_name, needs_romanization

RESPONSE_FORMAT = '{"readingsText": "...", "translatedText": "..."}'

OUTPUT_RULES = (
    "OUTPUT: Reply with ONLY the JSON object " + RESPONSE_FORMAT + ". "
    "No preamble, notes or commentary. translatedText contains only the translation."
)

VERIFY_LINE = "Before responding, verify that readingsText has a reading for every word that needs one."

# Reading convention per source language
READING_RULES = {
    "ja": (
        "Furigana: after every word containing kanji, add its hiragana reading in "
        "parentheses. Use dictionary readings for compounds. Format: 東京(とうきょう). "
        "Leave hiragana, katakana, numbers and punctuation as they are."
    ),
    "zh": (
        "Pinyin: Hanyu Pinyin with tone marks, in parentheses right after each word. "
        "Format: 中国(zhōngguó). No space before the opening parenthesis."
    ),
    "ko": (
        "Romanization: Revised Romanization in parentheses after each word. "
        "Format: 문법(mun-beop). No space before the opening parenthesis."
    ),
    "ru": (
        "Romanization: Latin transliteration in parentheses after each word. "
        "Format: Привет(privet)."
    ),
    "ar": (
        "Transliteration: Latin transliteration in parentheses after each word. "
        "Format: العربية(al-'arabiyyah)."
    ),
    "hi": (
        "Romanization: IAST in parentheses after each word. "
        "Format: हिन्दी(hindī)."
    ),
}


def build_system_prompt(source_language: Optional[str], target_language: str) -> str:
    """System prompt for one translation request.

    Args:
        source_language: Forced language code, or None/"auto" to let the
            model identify the source
        target_language: Target language code
    """
    target = language_name(target_language)
    parts = [
        "You are a translation expert for language learners.",
        f"Translate the user's text into natural, fluent {target}. Preserve meaning and tone.",
        "Do not put readings or romanization in the translation itself.",
        "",
    ]

    if source_language and source_language != AUTO:
        parts.append(f"The source text is {language_name(source_language)}.")
        rule = READING_RULES.get(source_language)
        if rule and needs_romanization(source_language):
            parts.append(rule)
            parts.append(VERIFY_LINE)
        else:
            parts.append('Set "readingsText" to an empty string.')
    else:
        parts.append(
            "If the source is Japanese, Chinese, Korean, Russian, Arabic or Hindi, "
            "fill readingsText with the source text and a reading in parentheses after "
            'each word. Otherwise set "readingsText" to an empty string.'
        )

    parts.extend(["", OUTPUT_RULES])
    return "\n".join(parts)


def build_user_prompt(text: str) -> str:
    return f"Translate the following text:\n\n{text}"
