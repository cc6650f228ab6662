"""Credential rotation pool.

Each ``CredentialSlot`` wraps one API key and a transient cooldown. The pool
hands out slots round-robin, preferring slots that are not cooling down. State
lives on the pool instance, never at module level, and is never persisted.

Concurrent requests sharing a pool do not coordinate cooldowns: a slot may be
handed to one request while another has just put it into cooldown. A call on
such a slot simply fails fast into the next rotation.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import dataclasses
import logging
import time

from gemini_structured.core.exceptions import ConfigurationError

log = logging.getLogger(__name__)


@dataclasses.dataclass(slots=True)
class CredentialSlot:
    """One upstream credential in a rotation pool."""

    index: int
    key: str = dataclasses.field(repr=False)
    cooldown_until: float = 0.0
    quota_hits: int = 0

    def is_cooling(self, now: float) -> bool:
        return now < self.cooldown_until


class CredentialPool:
    """Round-robin pool of credential slots."""

    def __init__(
        self,
        slots: Iterable[CredentialSlot],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.slots: tuple[CredentialSlot, ...] = tuple(slots)
        if not self.slots:
            raise ConfigurationError(
                "Credential pool is empty. Set GEMINI_API_KEY (or GEMINI_API_KEY_1.."
                "GEMINI_API_KEY_10, or GEMINI_API_KEYS) or pass api_keys explicitly."
            )
        self._clock = clock
        self._cursor = 0

    @classmethod
    def from_keys(
        cls, keys: Iterable[str], *, clock: Callable[[], float] = time.monotonic
    ) -> CredentialPool:
        return cls(
            (CredentialSlot(index=i, key=k) for i, k in enumerate(keys)), clock=clock
        )

    def __len__(self) -> int:
        return len(self.slots)

    @property
    def size(self) -> int:
        return len(self.slots)

    def next_slot(self) -> CredentialSlot:
        """Return the next slot in rotation order.

        Slots in cooldown are skipped unless every slot is cooling down, in
        which case plain rotation order is used.
        """
        now = self._clock()
        n = len(self.slots)
        chosen: CredentialSlot | None = None
        for offset in range(n):
            candidate = self.slots[(self._cursor + offset) % n]
            if not candidate.is_cooling(now):
                chosen = candidate
                break
        if chosen is None:
            chosen = self.slots[self._cursor % n]
            log.debug("All %d credential slots are cooling down; using slot %d", n, chosen.index)
        self._cursor = (chosen.index + 1) % n
        return chosen

    def record_quota(self, slot: CredentialSlot, cooldown: float) -> None:
        """Put ``slot`` into cooldown after a quota failure."""
        now = self._clock()
        slot.quota_hits += 1
        slot.cooldown_until = max(slot.cooldown_until, now + max(0.0, cooldown))
        log.debug("Credential slot %d cooling down for %.1fs", slot.index, cooldown)
