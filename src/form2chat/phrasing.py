"""Built-in :class:`~form2chat.interfaces.Phrasing` implementations."""

from __future__ import annotations

import random
from typing import Sequence

from form2chat.constants import ACKNOWLEDGEMENTS, NAME_FIELD_IDS
from form2chat.interfaces import Phrasing
from form2chat.models.state import Record


def extract_name(draft: Record) -> str | None:
    """Return the first token of a name-like draft value, if any."""
    for key in NAME_FIELD_IDS:
        value = (draft or {}).get(key)
        if isinstance(value, str) and len(value.strip()) > 1:
            return value.strip().split()[0]
    return None


class RandomPhrasing(Phrasing):
    """Picks a random acknowledgement from a fixed list.

    Args:
        phrases: candidate phrases (defaults to ``ACKNOWLEDGEMENTS``)
        rng: optional ``random.Random`` for reproducible picks
    """

    def __init__(
        self,
        phrases: Sequence[str] = ACKNOWLEDGEMENTS,
        rng: random.Random | None = None,
    ) -> None:
        if not phrases:
            raise ValueError("RandomPhrasing needs at least one phrase")
        self._phrases = tuple(phrases)
        self._rng = rng or random.Random()

    def acknowledgement(self, name: str | None = None) -> str:
        ack = self._rng.choice(self._phrases)
        return f"{ack} {name}." if name else ack


class FixedPhrasing(Phrasing):
    """Always returns the same phrase (deterministic, for tests and demos)."""

    def __init__(self, phrase: str = "Got it.") -> None:
        self._phrase = phrase

    def acknowledgement(self, name: str | None = None) -> str:
        return f"{self._phrase} {name}." if name else self._phrase
