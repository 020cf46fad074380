"""Review queue: random card selection, the reviewer window, and the flag gesture."""

from __future__ import annotations

import random
import time
from collections import deque
from enum import Enum
from typing import Callable, Deque, List, Optional

from errors import ValidationError
from models import ReviewCard
from storage import TermStore


class VoteDirection(str, Enum):
    RAISE = "raise"
    LOWER = "lower"

    @classmethod
    def parse(cls, value: str) -> "VoteDirection":
        key = (value or "").strip().lower()
        # The swipe UI calls these up/down.
        key = {"up": "raise", "down": "lower"}.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown vote direction: {value!r}") from None

    def delta(self, magnitude: float) -> float:
        return magnitude if self is VoteDirection.RAISE else -magnitude


class QueueSelector:
    """Draws review cards uniformly over every (term, candidate) pair in the store.

    The pool is rebuilt on every draw so new uploads are eligible immediately.
    That costs O(total candidates) per draw.
    """

    def __init__(self, store: TermStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def next_card(self) -> Optional[ReviewCard]:
        pool = self.store.pairs()
        if not pool:
            return None
        return pool[self.rng.randrange(len(pool))]

    def draw(self, count: int) -> List[ReviewCard]:
        cards: List[ReviewCard] = []
        for _ in range(max(0, count)):
            card = self.next_card()
            if card is None:
                break
            cards.append(card)
        return cards


class ReviewQueue:
    """Fixed-size window of pending cards for one reviewer."""

    def __init__(self, selector: QueueSelector, size: int = 3):
        self.selector = selector
        self.size = max(1, size)
        self._cards: Deque[ReviewCard] = deque()

    @property
    def cards(self) -> List[ReviewCard]:
        return list(self._cards)

    @property
    def current(self) -> Optional[ReviewCard]:
        return self._cards[0] if self._cards else None

    def fill(self) -> List[ReviewCard]:
        self._cards.extend(self.selector.draw(self.size - len(self._cards)))
        return self.cards

    def vote(
        self,
        direction: VoteDirection,
        apply: Callable[[str, VoteDirection], object],
    ) -> Optional[ReviewCard]:
        """Vote on the front card, then top the window up with one fresh draw.

        Returns the appended card, or None when the store is empty and the
        window shrinks instead.
        """
        if not self._cards:
            return None
        voted = self._cards.popleft()
        apply(voted.candidate.id, direction)
        replacement = self.selector.next_card()
        if replacement is not None:
            self._cards.append(replacement)
        return replacement

    def skip(self) -> Optional[ReviewCard]:
        """Drop the front card without voting, e.g. after it has been flagged."""
        if not self._cards:
            return None
        self._cards.popleft()
        replacement = self.selector.next_card()
        if replacement is not None:
            self._cards.append(replacement)
        return replacement


class GestureState(str, Enum):
    IDLE = "idle"
    HOLDING = "holding"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"


class FlagGesture:
    """Press-and-hold to flag, followed by an explicit confirmation.

    The prompt opens as soon as the hold reaches the threshold (`poll`), or at
    the latest on release. Releasing before the threshold or declining the
    prompt cancels the flag.
    """

    def __init__(self, threshold_ms: int = 1000, clock: Callable[[], float] = time.monotonic):
        self.threshold_ms = threshold_ms
        self.clock = clock
        self.state = GestureState.IDLE
        self._pressed_at: Optional[float] = None

    def press(self) -> None:
        self.state = GestureState.HOLDING
        self._pressed_at = self.clock()

    def held_ms(self) -> float:
        if self._pressed_at is None:
            return 0.0
        return (self.clock() - self._pressed_at) * 1000.0

    def poll(self) -> bool:
        """Open the confirmation prompt once the hold reaches the threshold.

        Called while the press is still held. Returns True when confirmation is needed.
        """
        if self.state is GestureState.HOLDING and self.held_ms() >= self.threshold_ms:
            self.state = GestureState.AWAITING_CONFIRMATION
            self._pressed_at = None
        return self.state is GestureState.AWAITING_CONFIRMATION

    def release(self) -> bool:
        """Returns True when the hold reached the threshold and confirmation is needed."""
        if self.poll():
            return True
        if self.state is GestureState.HOLDING:
            self.reset()
        return False

    def confirm(self) -> bool:
        if self.state is not GestureState.AWAITING_CONFIRMATION:
            return False
        self.state = GestureState.CONFIRMED
        return True

    def decline(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.state = GestureState.IDLE
        self._pressed_at = None
