"""
WordDex: script detection, ruby readings and usage limits for a
flashcard translation app.

Core components:
1. Script classification and forced-language validation
2. Parsing translator output into base/reading pairs
3. Rolling-window usage counters gated by subscription tier
4. A translation orchestrator tying them to an LLM translator
"""

__version__ = "0.1.0"

from worddex.pipeline import TranslationOrchestrator, PipelineConfig
from worddex.ruby import AnnotatedWord, parse
from worddex.script import classify, resolve_label, validate_forced_language
from worddex.subscription import SubscriptionGate, Tier
from worddex.usage import CounterKind, UsageCounter

__all__ = [
    "AnnotatedWord",
    "CounterKind",
    "PipelineConfig",
    "SubscriptionGate",
    "Tier",
    "TranslationOrchestrator",
    "UsageCounter",
    "classify",
    "parse",
    "resolve_label",
    "validate_forced_language",
]
