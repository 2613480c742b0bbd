"""
Tests for the translation orchestrator.

Run with: pytest tests/test_pipeline.py -v
"""

import asyncio

import pytest

from worddex.errors import ProviderError
from worddex.pipeline import (
    ROMANIZATION_UNAVAILABLE,
    FailureKind,
    PipelineConfig,
    PipelineState,
    TranslationOrchestrator,
)
from worddex.ruby import AnnotatedWord
from worddex.storage import MemoryStore
from worddex.subscription import StaticSubscription, SubscriptionGate, Tier
from worddex.translate.base import DummyTranslator, Translator, TranslatorResponse
from worddex.usage import CounterKind, UsageCounter


class ScriptedTranslator(Translator):
    """Translator whose responses are released by the test."""

    def __init__(self):
        self.calls = []
        self.pending: list[asyncio.Future] = []

    @property
    def name(self):
        return "scripted"

    async def translate(self, text, target_language, forced_language="auto"):
        self.calls.append(text)
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


class RaisingTranslator(Translator):
    @property
    def name(self):
        return "raising"

    async def translate(self, text, target_language, forced_language="auto"):
        raise ProviderError("service unavailable", provider=self.name)


def make(translator, **config):
    states = []
    orchestrator = TranslationOrchestrator(
        PipelineConfig(**config),
        translator=translator,
        on_state=lambda request_id, state: states.append(state),
    )
    return orchestrator, states


def run(coro):
    return asyncio.run(coro)


class TestValidation:
    """Forced-language validation fails fast."""

    def test_mismatch_skips_translator(self):
        translator = DummyTranslator()
        orchestrator, states = make(translator)

        outcome = run(orchestrator.submit("Bonjour", forced_language="ja"))

        assert outcome.state is PipelineState.FAILED
        assert outcome.failure is FailureKind.LANGUAGE_MISMATCH
        assert translator.calls == []
        assert PipelineState.CALLING not in states
        assert states[-1] is PipelineState.FAILED

    def test_mismatch_message_names_language(self):
        orchestrator, _ = make(DummyTranslator())
        outcome = run(orchestrator.submit("Bonjour", forced_language="ja"))
        assert "Japanese" in outcome.message
        assert not outcome.retryable

    def test_forced_language_from_config(self):
        translator = DummyTranslator()
        orchestrator, _ = make(translator, forced_language="ru")
        outcome = run(orchestrator.submit("Hello"))
        assert outcome.failure is FailureKind.LANGUAGE_MISMATCH
        assert translator.calls == []

    def test_deterministic(self):
        orchestrator, _ = make(DummyTranslator())

        async def scenario():
            first = await orchestrator.submit("東京に行きます", forced_language="ko")
            second = await orchestrator.submit("東京に行きます", forced_language="ko")
            return first, second

        first, second = run(scenario())
        assert first.failure == second.failure == FailureKind.LANGUAGE_MISMATCH
        assert first.signature == second.signature
        assert first.detected_language == second.detected_language == "Japanese"

    @pytest.mark.parametrize("text", ["", "   \n  "])
    def test_empty_input(self, text):
        translator = DummyTranslator()
        orchestrator, _ = make(translator)
        outcome = run(orchestrator.submit(text))
        assert outcome.failure is FailureKind.INVALID_INPUT
        assert translator.calls == []

    def test_too_long(self):
        translator = DummyTranslator()
        orchestrator, _ = make(translator, max_text_length=10)
        outcome = run(orchestrator.submit("a" * 11))
        assert outcome.failure is FailureKind.INVALID_INPUT
        assert translator.calls == []


class TestSuccess:
    """Successful requests."""

    def test_state_sequence(self):
        orchestrator, states = make(DummyTranslator(reading="東京(とうきょう)に行(い)きます"))
        outcome = run(orchestrator.submit("東京に行きます", forced_language="ja"))

        assert outcome.succeeded
        assert states == [
            PipelineState.CLASSIFYING,
            PipelineState.VALIDATING,
            PipelineState.CALLING,
            PipelineState.SUCCEEDED,
        ]
        assert orchestrator.state is PipelineState.SUCCEEDED

    def test_readings_parsed(self):
        orchestrator, _ = make(DummyTranslator(reading="漢字(かんじ)です"))
        outcome = run(orchestrator.submit("漢字です"))

        assert outcome.words == [AnnotatedWord("漢字", "かんじ"), AnnotatedWord("です")]
        assert outcome.detected_language == "Japanese"
        assert orchestrator.latest is outcome

    def test_translator_receives_cleaned_text(self):
        translator = DummyTranslator()
        orchestrator, _ = make(translator, target_language="fr")
        run(orchestrator.submit("東 京 に\n行 き ま す"))
        assert translator.calls == [("東京に行きます", "fr", "auto")]

    def test_romanization_unavailable_warning(self):
        orchestrator, _ = make(DummyTranslator())
        outcome = run(orchestrator.submit("Привет"))

        assert outcome.succeeded
        assert ROMANIZATION_UNAVAILABLE in outcome.warnings
        assert outcome.words == []

    def test_no_warning_for_latin_languages(self):
        orchestrator, _ = make(DummyTranslator())
        outcome = run(orchestrator.submit("¿Dónde está la estación?"))
        assert ROMANIZATION_UNAVAILABLE not in outcome.warnings

    def test_malformed_reading_becomes_warning(self):
        orchestrator, _ = make(DummyTranslator(reading="漢字()です"))
        outcome = run(orchestrator.submit("漢字です"))

        assert outcome.succeeded
        assert any("no reading" in w for w in outcome.warnings)

    def test_unread_characters_become_warning(self):
        orchestrator, _ = make(DummyTranslator(reading="東京(とうきょう)に行きます"))
        outcome = run(orchestrator.submit("東京に行きます"))

        assert outcome.succeeded
        assert "1 of 3 characters have no reading" in outcome.warnings

    def test_full_readings_have_no_coverage_warning(self):
        orchestrator, _ = make(DummyTranslator(reading="東京(とうきょう)に行(い)きます"))
        outcome = run(orchestrator.submit("東京に行きます"))
        assert not any("have no reading" in w for w in outcome.warnings)

    def test_low_quality_warning(self):
        orchestrator, _ = make(DummyTranslator(mode="echo"), target_language="en")
        outcome = run(orchestrator.submit("rate limit error"))

        assert outcome.succeeded
        assert outcome.quality.needs_verification
        assert any("inaccurate" in w for w in outcome.warnings)

    def test_quality_can_be_disabled(self):
        orchestrator, _ = make(DummyTranslator(mode="echo"), assess_quality=False)
        outcome = run(orchestrator.submit("rate limit error"))
        assert outcome.quality is None


class TestProviderFailures:
    """Provider errors and timeouts."""

    def test_provider_error(self):
        orchestrator, _ = make(RaisingTranslator())
        outcome = run(orchestrator.submit("Hello"))

        assert outcome.failure is FailureKind.PROVIDER_ERROR
        assert outcome.retryable
        assert "service unavailable" in outcome.message

    def test_unexpected_exception(self):
        orchestrator, _ = make(DummyTranslator(fail="boom"))
        outcome = run(orchestrator.submit("Hello"))
        assert outcome.failure is FailureKind.PROVIDER_ERROR

    def test_timeout(self):
        orchestrator, _ = make(DummyTranslator(delay=1.0), timeout=0.01)
        outcome = run(orchestrator.submit("Hello"))

        assert outcome.failure is FailureKind.PROVIDER_ERROR
        assert "timed out" in outcome.message

    def test_failure_keeps_previous_result(self):
        translator = DummyTranslator()
        orchestrator, _ = make(translator)

        async def scenario():
            good = await orchestrator.submit("Hello")
            translator.fail = "down"
            bad = await orchestrator.submit("Hello again")
            return good, bad

        good, bad = run(scenario())
        assert not bad.succeeded
        assert orchestrator.latest is good

    def test_retry_after_failure(self):
        translator = DummyTranslator(fail="down")
        orchestrator, _ = make(translator)

        async def scenario():
            first = await orchestrator.submit("Hello")
            translator.fail = None
            return first, await orchestrator.submit("Hello")

        first, second = run(scenario())
        assert first.retryable
        assert second.succeeded
        assert orchestrator.latest is second


class TestStaleResponses:
    """Only the latest request may update the orchestrator."""

    def test_stale_response_discarded(self):
        translator = ScriptedTranslator()
        orchestrator, _ = make(translator)

        async def wait_for_calls(n):
            while len(translator.pending) < n:
                await asyncio.sleep(0)

        async def scenario():
            first = asyncio.create_task(orchestrator.submit("first"))
            await wait_for_calls(1)
            second = asyncio.create_task(orchestrator.submit("second"))
            await wait_for_calls(2)

            # Newer request finishes first, then the old one arrives
            translator.pending[1].set_result(TranslatorResponse("deuxième"))
            second_outcome = await second
            translator.pending[0].set_result(TranslatorResponse("premier"))
            first_outcome = await first
            return first_outcome, second_outcome

        first, second = run(scenario())
        assert first.stale
        assert not second.stale
        assert orchestrator.latest is second
        assert orchestrator.latest.translated_text == "deuxième"
        assert orchestrator.state is PipelineState.SUCCEEDED

    def test_request_tokens_increase(self):
        orchestrator, _ = make(DummyTranslator())

        async def scenario():
            a = await orchestrator.submit("one")
            b = await orchestrator.submit("two")
            return a.request_id, b.request_id

        first, second = run(scenario())
        assert second > first
        assert orchestrator.current_token == second


class TestApiMetering:
    """Translator calls are metered against the tier's daily API limit."""

    def make_metered(self, tier=Tier.FREE):
        translator = DummyTranslator()
        gate = SubscriptionGate(UsageCounter(MemoryStore()), StaticSubscription(tier))
        orchestrator = TranslationOrchestrator(PipelineConfig(), translator=translator, gate=gate)
        return orchestrator, translator, gate

    def test_free_tier_blocks_fifth_call(self):
        orchestrator, translator, gate = self.make_metered()

        async def scenario():
            outcomes = [await orchestrator.submit(f"Hello {i}") for i in range(5)]
            return outcomes, await gate.counter.count(CounterKind.API_CALL)

        outcomes, count = run(scenario())
        assert all(o.succeeded for o in outcomes[:4])
        assert outcomes[4].failure is FailureKind.QUOTA_EXCEEDED
        assert not outcomes[4].retryable
        assert "limit reached" in outcomes[4].message
        assert len(translator.calls) == 4
        assert count == 4
        assert orchestrator.latest is outcomes[3]

    def test_rejected_input_is_not_metered(self):
        orchestrator, translator, gate = self.make_metered()

        async def scenario():
            await orchestrator.submit("Bonjour", forced_language="ja")
            await orchestrator.submit("")
            return await gate.counter.count(CounterKind.API_CALL)

        assert run(scenario()) == 0
        assert translator.calls == []

    def test_premium_not_blocked(self):
        orchestrator, translator, _ = self.make_metered(Tier.PREMIUM)

        async def scenario():
            return [await orchestrator.submit("Hello") for _ in range(6)]

        assert all(o.succeeded for o in run(scenario()))
        assert len(translator.calls) == 6


class TestFactory:
    """Orchestrator builds its translator from config."""

    def test_default_backend_is_dummy(self):
        orchestrator = TranslationOrchestrator()
        assert orchestrator.translator.name.startswith("dummy")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            TranslationOrchestrator(PipelineConfig(translator_backend="nope"))
