"""Pending-change tracking: requested values wait for hardware confirmation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from razerctl.core.errors import InvalidArgumentError
from razerctl.core.model import DecodedEvent, DpiChanged, Field, PendingChange, PendingState

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIRM_TIMEOUT_S = 2.0


class PendingChangeTracker:
    """Armed -> Confirmed | Expired state machine, one slot per field.

    Success is only ever asserted from a decoded device event. Expiry is a
    deadline comparison made by whoever owns the tracker, so a replaced or
    cancelled change can never resolve later.
    """

    def __init__(
        self,
        clock: Callable[[], float],
        *,
        timeout_s: float = DEFAULT_CONFIRM_TIMEOUT_S,
        observed: dict[Field, int] | None = None,
    ) -> None:
        self._clock = clock
        self.timeout_s = timeout_s
        self._pending: dict[Field, PendingChange] = {}
        self._observed: dict[Field, int] = dict(observed or {})

    def arm(self, field: Field, value: int, legal_values: Iterable[int]) -> PendingChange:
        if value not in set(legal_values):
            raise InvalidArgumentError(f"{field.value} {value} is not a supported value")
        previous = self._pending.pop(field, None)
        if previous is not None and previous.armed:
            previous.state = PendingState.EXPIRED
            LOGGER.debug("Discarding pending %s=%s", field.value, previous.target_value)
        now = self._clock()
        change = PendingChange(
            field=field,
            target_value=value,
            requested_at=now,
            deadline=now + self.timeout_s,
        )
        self._pending[field] = change
        return change

    def observe(self, event: DecodedEvent) -> PendingChange | None:
        if not isinstance(event, DpiChanged):
            return None
        self._observed[Field.DPI] = event.value
        change = self._pending.get(Field.DPI)
        if change is None or not change.armed or change.target_value != event.value:
            return None
        change.state = PendingState.CONFIRMED
        del self._pending[Field.DPI]
        LOGGER.info("Pending dpi=%d confirmed by hardware", event.value)
        return change

    def expire_due(self) -> list[PendingChange]:
        now = self._clock()
        expired = [c for c in self._pending.values() if c.armed and now >= c.deadline]
        for change in expired:
            self._expire(change)
        return expired

    def cancel_all(self) -> list[PendingChange]:
        cancelled = [c for c in self._pending.values() if c.armed]
        for change in cancelled:
            self._expire(change)
        return cancelled

    def _expire(self, change: PendingChange) -> None:
        change.state = PendingState.EXPIRED
        del self._pending[change.field]
        LOGGER.info(
            "Pending %s=%d not confirmed by hardware",
            change.field.value,
            change.target_value,
        )

    def pending(self, field: Field) -> PendingChange | None:
        return self._pending.get(field)

    def all_pending(self) -> tuple[PendingChange, ...]:
        return tuple(self._pending.values())

    def next_deadline(self) -> float | None:
        deadlines = [c.deadline for c in self._pending.values() if c.armed]
        return min(deadlines) if deadlines else None

    def observed(self, field: Field) -> int | None:
        return self._observed.get(field)

    def set_observed(self, field: Field, value: int) -> None:
        self._observed[field] = value
