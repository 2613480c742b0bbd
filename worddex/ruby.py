"""
Ruby (furigana / pinyin / romanization) text parsing.

Translators return the source text with a reading placed immediately after
each annotated word, e.g. ``東京(とうきょう)`` or ``中国（zhōngguó）``.
This module turns that string into an ordered sequence of AnnotatedWord
objects that the UI can render with the reading stacked above the base.

Supported delimiters:
- ASCII parentheses:      base(reading)
- Fullwidth parentheses:  base（reading）
- White parentheses:      base｟reading｠

Design:
- Parsing is lazy and restartable: ``parse()`` returns an AnnotatedText
  whose every iteration re-scans the source.
- Anything outside the delimiter convention is plain text (reading=None).
- Malformed input never raises; problems are reported as AnnotationIssue
  records (logged, and passed to an optional callback).

Example:
    >>> from worddex.ruby import parse
    >>> list(parse("漢字(かんじ)です"))
    [AnnotatedWord(base='漢字', reading='かんじ'), AnnotatedWord(base='です', reading=None)]
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnnotatedWord:
    """One render unit: a base with an optional reading above it."""
    base: str
    reading: Optional[str] = None

    def __post_init__(self):
        if not self.base:
            raise ValueError("AnnotatedWord base must not be empty")
        if self.reading is not None and not self.reading:
            raise ValueError("AnnotatedWord reading must be None or non-empty")

    @property
    def is_annotated(self) -> bool:
        return self.reading is not None

    def to_text(self) -> str:
        return f"{self.base}({self.reading})" if self.reading else self.base


@dataclass(frozen=True)
class AnnotationIssue:
    """A non-fatal data-quality finding (MalformedAnnotation).

    Kinds:
        truncated: reading shorter than half its base
        unterminated: opening delimiter never closed
        empty: delimiters with nothing inside
        missing: source characters that never received a reading
    """
    kind: str
    fragment: str
    position: int
    message: str


IssueCallback = Callable[[AnnotationIssue], None]


# ============================================================================
# Pattern Definitions
# ============================================================================

# Scripts that carry readings: Han, Hangul, Cyrillic, Arabic, Devanagari
ANNOTATABLE = (
    r"\u3400-\u4dbf\u4e00-\u9fff"
    r"\uac00-\ud7af\u1100-\u11ff\u3130-\u318f\uffa0-\uffdc"
    r"\u0400-\u04ff"
    r"\u0600-\u06ff\u0750-\u077f"
    r"\u0900-\u097f"
)

# Punctuation allowed between a base and its reading, e.g. 요청했다.(yo-cheong-haess-da)
TRAILING_PUNCT = r"»«\"'」』›‹.!?,;:。、"

RUBY_PATTERN = re.compile(
    rf"(?P<base>[{ANNOTATABLE}]+)"
    rf"(?P<punct>[{TRAILING_PUNCT}]+)?"
    r"(?:\((?P<ascii>[^()\n]*)\)"
    r"|（(?P<full>[^（）\n]*)）"
    r"|｟(?P<white>[^｟｠\n]*)｠)"
)

ANNOTATABLE_CHAR = re.compile(rf"[{ANNOTATABLE}]")

OPENERS = r"(（｟"
CLOSERS = r")）｠"

# Opening delimiter after a base with no closing delimiter before the next opening one
UNTERMINATED_PATTERN = re.compile(
    rf"[{ANNOTATABLE}][{TRAILING_PUNCT}]*[{OPENERS}](?![^{OPENERS}{CLOSERS}]*[{CLOSERS}])"
)

# Kana annotated with kana is an upstream error: それは(それは) -> それは
REDUNDANT_KANA_PATTERN = re.compile(
    r"([\u3040-\u30ff]+)[(\uff08]([\u3040-\u30ff\s]+)[)\uff09]"
)

# Reading whose closing paren slipped behind a quote: हूं(hūṃ" -> हूं(hūṃ)"
DANGLING_QUOTE_PATTERN = re.compile(
    r"\(([A-Za-z\u00c0-\u024f\u1e00-\u1eff\u0300-\u036f\-]+)([\"']+)(?=\s|$)"
)


def _repair(text: str) -> str:
    return DANGLING_QUOTE_PATTERN.sub(r"(\1)\2", text)


def _strip_redundant_kana(text: str) -> str:
    return REDUNDANT_KANA_PATTERN.sub(r"\1", text)


# ============================================================================
# Parsing
# ============================================================================

def _scan(text: str, on_issue: IssueCallback | None) -> Iterator[AnnotatedWord]:
    """Yield words for one pass over ``text``."""

    def report(issue: AnnotationIssue) -> None:
        logger.warning("Annotation %s at %d: %s", issue.kind, issue.position, issue.message)
        if on_issue is not None:
            on_issue(issue)

    source = _repair(text)
    plain: list[str] = []
    plain_start = 0

    def flush() -> Iterator[AnnotatedWord]:
        span = "".join(plain)
        plain.clear()
        if not span:
            return
        for m in UNTERMINATED_PATTERN.finditer(span):
            report(AnnotationIssue(
                kind="unterminated",
                fragment=span[m.start():],
                position=plain_start + m.start(),
                message="opening delimiter is never closed; kept as plain text",
            ))
        cleaned = _strip_redundant_kana(span)
        if cleaned:
            yield AnnotatedWord(cleaned)

    last = 0
    for match in RUBY_PATTERN.finditer(source):
        raw = next(g for g in (match.group("ascii"), match.group("full"), match.group("white")) if g is not None)
        reading = raw.strip()

        if not reading or ANNOTATABLE_CHAR.search(reading):
            # Not a reading (empty, or an aside written in the source script)
            if not reading:
                report(AnnotationIssue(
                    kind="empty",
                    fragment=match.group(0),
                    position=match.start(),
                    message="annotation has no reading; kept as plain text",
                ))
            continue

        if not plain:
            plain_start = last
        plain.append(source[last:match.start()])
        yield from flush()

        base = match.group("base")
        if len(reading) * 2 < len(base):
            report(AnnotationIssue(
                kind="truncated",
                fragment=match.group(0),
                position=match.start(),
                message=f"reading '{reading}' is shorter than half of '{base}'",
            ))
        yield AnnotatedWord(base, reading)

        last = match.end()
        punct = match.group("punct")
        if punct:
            plain_start = match.start("punct")
            plain.append(punct)

    if last < len(source):
        if not plain:
            plain_start = last
        plain.append(source[last:])
    yield from flush()


class AnnotatedText:
    """Lazy, restartable sequence of AnnotatedWord in reading order.

    Each iteration re-parses the source, so the same object can be walked
    several times (for example once for rendering and once for storage).
    """

    def __init__(self, source: str, on_issue: IssueCallback | None = None):
        self.source = source or ""
        self.on_issue = on_issue

    def __iter__(self) -> Iterator[AnnotatedWord]:
        return _scan(self.source, self.on_issue)

    def __bool__(self) -> bool:
        return bool(self.source)

    def __repr__(self) -> str:
        preview = self.source[:30] + "..." if len(self.source) > 30 else self.source
        return f"AnnotatedText({preview!r})"

    def words(self) -> list[AnnotatedWord]:
        return list(self)

    def plain_text(self) -> str:
        """Bases only, readings dropped."""
        return "".join(w.base for w in self)

    def readings_text(self) -> str:
        """Normalized ``base(reading)`` form, suitable for storage."""
        return to_readings_text(self)

    def issues(self) -> list[AnnotationIssue]:
        """Collect every issue found in one full pass."""
        found: list[AnnotationIssue] = []
        for _ in _scan(self.source, found.append):
            pass
        return found


def parse(text: str, on_issue: IssueCallback | None = None) -> AnnotatedText:
    """Parse annotated text into words.

    Args:
        text: Translator output such as ``"漢字(かんじ)です"``
        on_issue: Optional callback receiving AnnotationIssue records

    Returns:
        AnnotatedText; non-empty input always yields at least one word
    """
    return AnnotatedText(text, on_issue)


def to_readings_text(words: Iterable[AnnotatedWord]) -> str:
    """Serialize words back to ``base(reading)`` form."""
    return "".join(w.to_text() for w in words)


def has_annotations(text: str) -> bool:
    """True if the text contains at least one valid annotation."""
    return any(w.is_annotated for w in parse(text))


def count_annotations(text: str) -> int:
    return sum(1 for w in parse(text) if w.is_annotated)


def missing_readings(source: str, words: Iterable[AnnotatedWord]) -> Optional[AnnotationIssue]:
    """Check that every annotatable character of ``source`` got a reading.

    Counts Han, Hangul, Cyrillic, Arabic and Devanagari characters in the
    source text and in the annotated bases. Kana never needs a reading.

    Args:
        source: Text that was sent to the translator
        words: Parsed reading text for that source

    Returns:
        A ``missing`` AnnotationIssue, or None when coverage is complete
    """
    total = len(ANNOTATABLE_CHAR.findall(source or ""))
    if not total:
        return None

    covered = 0
    offset = 0
    first_gap = None
    for word in words:
        found = len(ANNOTATABLE_CHAR.findall(word.base))
        if word.is_annotated:
            covered += found
        elif found and first_gap is None:
            first_gap = offset + ANNOTATABLE_CHAR.search(word.base).start()
        offset += len(word.base)

    missing = max(0, total - covered)
    if not missing:
        return None

    issue = AnnotationIssue(
        kind="missing",
        fragment=source,
        position=first_gap if first_gap is not None else 0,
        message=f"{missing} of {total} characters have no reading",
    )
    logger.warning("Annotation %s at %d: %s", issue.kind, issue.position, issue.message)
    return issue
