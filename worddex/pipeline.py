"""
Translation orchestrator for WordDex.

This module runs one translation request through a small state machine:

    IDLE -> CLASSIFYING -> VALIDATING -> CALLING -> SUCCEEDED | FAILED

1. Classify the (OCR-cleaned) text into a script signature and label
2. Validate it against the forced language, failing fast on mismatch
3. Record one API call against the subscription gate, if one is set
4. Call the translator with a timeout
5. Parse the reading text into annotated words and score the translation

Design:
- The translator is the only external call; it is never made for text
  that fails validation.
- With a SubscriptionGate, each translator call is metered as an
  ``apiCall``; once the tier's daily ceiling is reached requests fail
  with QUOTA_EXCEEDED and the translator is not called.
- Every submit() takes a new request token. A response that arrives after
  a newer submit() is returned marked ``stale`` and is otherwise ignored.
- ``latest`` holds the most recent successful outcome. Failures never
  replace it, so a retry can fail without losing what is on screen.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from worddex.config import DEFAULT_FORCED_LANGUAGE, DEFAULT_TARGET_LANGUAGE, DEFAULT_TIMEOUT, MAX_TEXT_LENGTH
from worddex.errors import LanguageMismatchError, ProviderError
from worddex.quality import QualityAssessment, assess_translation_quality
from worddex.ruby import AnnotatedWord, missing_readings, parse
from worddex.script import (
    AUTO,
    DEFAULT_CLASSIFIER_CONFIG,
    ClassifierConfig,
    ScriptSignature,
    classify,
    clean_text,
    language_name,
    needs_romanization,
    resolve_label,
    validate_forced_language,
)
from worddex.subscription import SubscriptionGate
from worddex.translate.base import Translator, TranslatorResponse, create_translator
from worddex.usage import CounterKind

logger = logging.getLogger(__name__)

ROMANIZATION_UNAVAILABLE = "romanization unavailable"


class PipelineState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    VALIDATING = "validating"
    CALLING = "calling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    LANGUAGE_MISMATCH = "language_mismatch"
    PROVIDER_ERROR = "provider_error"
    INVALID_INPUT = "invalid_input"
    QUOTA_EXCEEDED = "quota_exceeded"


# Type alias for state-change callbacks: (request_id, new_state)
StateCallback = Callable[[int, PipelineState], None]


@dataclass
class PipelineConfig:
    """Configuration for the translation orchestrator."""
    # Translation settings
    target_language: str = DEFAULT_TARGET_LANGUAGE
    forced_language: str = DEFAULT_FORCED_LANGUAGE
    translator_backend: str = "dummy"
    translator_kwargs: dict = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT

    # Input handling
    max_text_length: int = MAX_TEXT_LENGTH
    clean_input: bool = True

    # Post-processing
    assess_quality: bool = True
    classifier: ClassifierConfig = DEFAULT_CLASSIFIER_CONFIG

    def to_dict(self) -> dict:
        """Serialize config for logging/debugging."""
        return {
            "target_language": self.target_language,
            "forced_language": self.forced_language,
            "translator_backend": self.translator_backend,
            "timeout": self.timeout,
            "max_text_length": self.max_text_length,
            "clean_input": self.clean_input,
            "assess_quality": self.assess_quality,
        }


@dataclass
class TranslationOutcome:
    """Final state of one request.

    Attributes:
        request_id: Token of the submit() call that produced this outcome
        state: SUCCEEDED or FAILED
        text: Text as classified (after OCR cleanup)
        detected_language: Display label from the classifier
        signature: Script signature of ``text``
        failure: Failure kind, for FAILED outcomes
        message: User-facing message, for FAILED outcomes
        warnings: Non-fatal notes (missing romanization, reading issues, quality)
        stale: True if a newer request was submitted before this one finished
    """
    request_id: int
    state: PipelineState
    text: str
    detected_language: str
    signature: ScriptSignature
    translated_text: Optional[str] = None
    reading_text: Optional[str] = None
    words: list[AnnotatedWord] = field(default_factory=list)
    failure: Optional[FailureKind] = None
    message: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    quality: Optional[QualityAssessment] = None
    stale: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.SUCCEEDED

    @property
    def retryable(self) -> bool:
        """Provider failures can be retried with the same input."""
        return self.failure is FailureKind.PROVIDER_ERROR


class TranslationOrchestrator:
    """Runs classification, validation and translation for each request.

    Usage:
        orchestrator = TranslationOrchestrator(PipelineConfig(translator_backend="anthropic"))
        outcome = await orchestrator.submit("東京に行きます", forced_language="ja")
        if outcome.succeeded:
            print(outcome.translated_text)
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        translator: Translator | None = None,
        on_state: StateCallback | None = None,
        gate: SubscriptionGate | None = None,
    ):
        self.config = config or PipelineConfig()
        self.translator = translator or create_translator(
            self.config.translator_backend,
            **self.config.translator_kwargs,
        )
        self.on_state = on_state or (lambda request_id, state: None)
        self.gate = gate
        self.state = PipelineState.IDLE
        self.latest: Optional[TranslationOutcome] = None
        self._token = 0

    @property
    def current_token(self) -> int:
        return self._token

    def _transition(self, request_id: int, state: PipelineState) -> None:
        if request_id != self._token:
            return
        logger.debug("Request %d: %s -> %s", request_id, self.state.value, state.value)
        self.state = state
        self.on_state(request_id, state)

    def _fail(
        self,
        outcome: TranslationOutcome,
        kind: FailureKind,
        message: str,
    ) -> TranslationOutcome:
        outcome.state = PipelineState.FAILED
        outcome.failure = kind
        outcome.message = message
        logger.info("Request %d failed (%s): %s", outcome.request_id, kind.value, message)
        self._transition(outcome.request_id, PipelineState.FAILED)
        return outcome

    async def submit(
        self,
        text: str,
        forced_language: Optional[str] = None,
        target_language: Optional[str] = None,
    ) -> TranslationOutcome:
        """Run one request through the pipeline.

        Args:
            text: Raw input (OCR output or typed text)
            forced_language: Language code or "auto"; defaults to the config
            target_language: Target code; defaults to the config

        Returns:
            TranslationOutcome (never raises for provider or validation errors)
        """
        self._token += 1
        request_id = self._token
        forced = forced_language or self.config.forced_language or AUTO
        target = target_language or self.config.target_language

        # Step 1: Classification
        self._transition(request_id, PipelineState.CLASSIFYING)
        source = clean_text(text) if self.config.clean_input else (text or "").strip()
        signature = classify(source)
        detected = resolve_label(signature, self.config.classifier)
        outcome = TranslationOutcome(
            request_id=request_id,
            state=PipelineState.CLASSIFYING,
            text=source,
            detected_language=detected,
            signature=signature,
        )

        if not source:
            return self._fail(outcome, FailureKind.INVALID_INPUT, "Enter some text to translate.")
        if len(source) > self.config.max_text_length:
            return self._fail(
                outcome,
                FailureKind.INVALID_INPUT,
                f"Text is too long ({len(source)} characters, limit {self.config.max_text_length}).",
            )

        # Step 2: Forced-language validation
        self._transition(request_id, PipelineState.VALIDATING)
        if not validate_forced_language(source, forced):
            error = LanguageMismatchError(language_name(forced), detected)
            return self._fail(outcome, FailureKind.LANGUAGE_MISMATCH, str(error))

        # Step 3: API call metering
        if self.gate is not None and not await self.gate.record(CounterKind.API_CALL):
            limit = self.gate.ceiling(CounterKind.API_CALL)
            return self._fail(
                outcome,
                FailureKind.QUOTA_EXCEEDED,
                f"Daily translation limit reached ({limit} per day). Try again tomorrow.",
            )

        # Step 4: Translator call
        self._transition(request_id, PipelineState.CALLING)
        try:
            response = await asyncio.wait_for(
                self.translator.translate(source, target, forced),
                timeout=self.config.timeout,
            )
            error_message = None
        except asyncio.TimeoutError:
            error_message = f"Translation timed out after {self.config.timeout:g}s. Please try again."
        except ProviderError as e:
            error_message = f"Translation failed: {e}. Please try again."
        except Exception as e:
            logger.exception("Translator %s raised", self.translator.name)
            error_message = f"Translation failed: {e}. Please try again."

        if request_id != self._token:
            logger.warning("Discarding stale response for request %d (latest is %d)", request_id, self._token)
            outcome.stale = True
            outcome.state = PipelineState.FAILED if error_message else PipelineState.SUCCEEDED
            return outcome

        if error_message is not None:
            return self._fail(outcome, FailureKind.PROVIDER_ERROR, error_message)

        # Step 5: Readings and quality
        self._finish(outcome, response, forced, target)
        self.latest = outcome
        self._transition(request_id, PipelineState.SUCCEEDED)
        return outcome

    def _finish(
        self,
        outcome: TranslationOutcome,
        response: TranslatorResponse,
        forced: str,
        target: str,
    ) -> None:
        outcome.state = PipelineState.SUCCEEDED
        outcome.translated_text = response.translated_text
        outcome.reading_text = response.reading_text

        language = forced if forced != AUTO else outcome.detected_language
        if response.reading_text:
            annotated = parse(response.reading_text, on_issue=lambda issue: outcome.warnings.append(issue.message))
            outcome.words = annotated.words()
            gap = missing_readings(outcome.text, outcome.words)
            if gap is not None:
                outcome.warnings.append(gap.message)
        elif needs_romanization(language, self.config.classifier):
            outcome.warnings.append(ROMANIZATION_UNAVAILABLE)

        if self.config.assess_quality:
            outcome.quality = assess_translation_quality(response.translated_text, target, len(outcome.text))
            if outcome.quality.needs_verification:
                outcome.warnings.append(
                    f"translation may be inaccurate ({'; '.join(outcome.quality.reasons)})"
                )
