"""
Subscription tiers and usage gating.

The gate answers "may the user do this now?" by comparing a UsageCounter
count against the ceiling of the user's current tier. The tier itself
comes from a SubscriptionState collaborator; the gate never owns it.

Premium ceilings are ``sys.maxsize`` rather than a "no limit" sentinel so
``remaining()`` arithmetic stays well-defined.

Translator calls are metered as ``CounterKind.API_CALL`` against
``api_calls_per_day``; the orchestrator records one before each call.

Usage:
    gate = SubscriptionGate(counter, StaticSubscription(Tier.FREE))
    if await gate.record(CounterKind.OCR):
        ...  # scan allowed and counted
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from worddex.usage import CounterKind, UsageCounter

logger = logging.getLogger(__name__)

UNLIMITED = sys.maxsize


class Tier(str, Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"


@dataclass(frozen=True)
class SubscriptionTierLimits:
    """Daily ceilings for one tier."""
    tier: Tier
    ocr_ceiling: int
    flashcard_ceiling: int
    swipe_streak_threshold: int = 3
    max_decks: int = 3
    api_calls_per_day: int = 4

    def ceiling(self, kind: CounterKind | str) -> int:
        kind = CounterKind(kind)
        if kind is CounterKind.OCR:
            return self.ocr_ceiling
        elif kind is CounterKind.FLASHCARD:
            return self.flashcard_ceiling
        elif kind is CounterKind.API_CALL:
            return self.api_calls_per_day
        # Review swipes are counted for the streak, never capped
        return UNLIMITED


PLAN_LIMITS: Mapping[Tier, SubscriptionTierLimits] = MappingProxyType({
    Tier.FREE: SubscriptionTierLimits(
        tier=Tier.FREE,
        ocr_ceiling=30,
        flashcard_ceiling=5,
        swipe_streak_threshold=3,
        max_decks=3,
        api_calls_per_day=4,
    ),
    Tier.PREMIUM: SubscriptionTierLimits(
        tier=Tier.PREMIUM,
        ocr_ceiling=UNLIMITED,
        flashcard_ceiling=UNLIMITED,
        swipe_streak_threshold=3,
        max_decks=150,
        api_calls_per_day=1000,
    ),
})


class SubscriptionState(ABC):
    """Source of the user's current tier."""

    @abstractmethod
    def current_tier(self) -> Tier:
        pass


class StaticSubscription(SubscriptionState):
    """Fixed tier, for the CLI and tests."""

    def __init__(self, tier: Tier | str = Tier.FREE):
        self.tier = Tier(tier)

    def current_tier(self) -> Tier:
        return self.tier


class SubscriptionGate:
    """Checks and records metered actions against tier ceilings."""

    def __init__(
        self,
        counter: UsageCounter,
        subscription: SubscriptionState | None = None,
        plans: Mapping[Tier, SubscriptionTierLimits] = PLAN_LIMITS,
    ):
        self.counter = counter
        self.subscription = subscription or StaticSubscription()
        self.plans = plans

    def limits(self, tier: Tier | str | None = None) -> SubscriptionTierLimits:
        tier = Tier(tier) if tier is not None else self.subscription.current_tier()
        return self.plans[tier]

    def ceiling(self, kind: CounterKind | str, tier: Tier | str | None = None) -> int:
        return self.limits(tier).ceiling(kind)

    async def can_perform(self, kind: CounterKind | str, tier: Tier | str | None = None) -> bool:
        count = await self.counter.count(kind)
        return count < self.ceiling(kind, tier)

    async def remaining(self, kind: CounterKind | str, tier: Tier | str | None = None) -> int:
        return await self.counter.remaining(kind, self.ceiling(kind, tier))

    async def record(
        self,
        kind: CounterKind | str,
        dedup_id: Optional[str] = None,
        tier: Tier | str | None = None,
    ) -> bool:
        """Count the action if the tier allows it.

        The ceiling check and the increment are one step, so concurrent
        calls cannot overshoot the ceiling. Re-recording an item already
        counted in this window is allowed and changes nothing.

        Returns:
            True if the action was allowed, False if the ceiling was
            already reached.
        """
        count = await self.counter.increment_within(kind, self.ceiling(kind, tier), dedup_id)
        if count is None:
            logger.info("%s limit reached for %s tier", CounterKind(kind).value, self.limits(tier).tier.value)
            return False
        return True

    def can_create_deck(self, current_decks: int, tier: Tier | str | None = None) -> bool:
        return current_decks < self.limits(tier).max_decks
