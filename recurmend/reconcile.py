"""Reconcile stored exclusions against generated occurrences.

Exclusions are stored separately from the rule and may be stale: the rule
could have changed since they were recorded. A single forward sweep walks the
occurrences and the sorted exclusions together:

- an exclusion equal to an occurrence is *matched* and flags that occurrence;
- an exclusion that sorts before the current occurrence without having
  matched anything is *unmatched*, the rule no longer produces that instant;
- exclusions left over when the horizon stops generation are unmatched if
  they are still within the date limit, otherwise *dropped*.

The sweep is resumable. Growing the horizon continues the same occurrence
iterator, so rows already produced keep their index and classification.
"""

import bisect
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from typing_extensions import override

from recurmend.errors import InvalidHorizonInput
from recurmend.horizon import HorizonSpec
from recurmend.instant import require_aware

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Occurrence:
    """One generated instant of a recurrence.

    Attributes:
        index: Zero-based position in the occurrence sequence
        instant: Aware datetime of the occurrence
        excluded: True if a stored exclusion matched this instant
    """

    index: int
    instant: datetime
    excluded: bool = False

    @override
    def __str__(self) -> str:
        flag = ", excluded" if self.excluded else ""
        return f"Occurrence(#{self.index}, {self.instant.isoformat()}{flag})"


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of reconciling exclusions against one horizon.

    Attributes:
        occurrences: Generated occurrences in index order
        matched: Exclusions that coincide with an occurrence
        unmatched: Exclusions with no coinciding occurrence inside the horizon
        dropped: Exclusions beyond the date limit, not reported to users
        horizon: The horizon the result was computed for
    """

    occurrences: tuple[Occurrence, ...]
    matched: tuple[datetime, ...]
    unmatched: tuple[datetime, ...]
    dropped: tuple[datetime, ...]
    horizon: HorizonSpec

    @property
    def excluded_instants(self) -> tuple[datetime, ...]:
        """Instants of the occurrences flagged as excluded, in index order."""
        return tuple(o.instant for o in self.occurrences if o.excluded)


class Sweep:
    """Resumable forward sweep over occurrences and sorted exclusions.

    The exclusions are sorted once into an immutable tuple; a cursor marks the
    first one not yet classified. Occurrences are pulled lazily and only as
    far as the current horizon allows.

    Example:
        >>> sweep = Sweep(rules.occurrences(), rules.exclusions)
        >>> first = sweep.advance(policy.compute(1))
        >>> more = sweep.advance(policy.compute(2))  # continues, no restart
    """

    def __init__(
        self, occurrences: Iterable[datetime], exclusions: Iterable[datetime]
    ) -> None:
        """
        Initialize a sweep over occurrences and exclusions.

        Args:
            occurrences: Strictly increasing aware instants, possibly infinite
            exclusions: Aware instants in any order; duplicates are kept
        """
        self._source: Iterator[datetime] = iter(occurrences)
        self._exclusions: tuple[datetime, ...] = tuple(
            sorted(require_aware(e, "exclusion") for e in exclusions)
        )
        self._cursor: int = 0
        # Occurrence that crossed the last horizon, replayed on the next advance
        self._pending: datetime | None = None
        self._exhausted: bool = False
        self._occurrences: list[Occurrence] = []
        self._matched: list[datetime] = []
        self._unmatched: list[datetime] = []
        self._horizon: HorizonSpec | None = None

    @property
    def horizon(self) -> HorizonSpec | None:
        return self._horizon

    def advance(self, horizon: HorizonSpec) -> ReconciliationResult:
        """Generate occurrences up to ``horizon`` and classify exclusions.

        Raises:
            InvalidHorizonInput: If ``horizon`` is smaller than the previous
                one on either limit
        """
        if self._horizon is not None and not horizon.covers(self._horizon):
            raise InvalidHorizonInput(
                f"Horizon cannot shrink during a sweep.\n"
                f"Previous: {self._horizon}\n"
                f"Requested: {horizon}"
            )
        self._horizon = horizon

        while not self._exhausted:
            instant = self._next_occurrence()
            if instant is None:
                break
            index = len(self._occurrences)
            if index > horizon.count_limit or instant > horizon.date_limit:
                self._pending = instant
                logger.debug(
                    "Sweep stopped at occurrence %d (%s): %s limit reached",
                    index,
                    instant.isoformat(),
                    "count" if index > horizon.count_limit else "date",
                )
                break
            self._occurrences.append(self._classify(index, instant))

        return self._snapshot(horizon)

    def _next_occurrence(self) -> datetime | None:
        if self._pending is not None:
            instant, self._pending = self._pending, None
            return instant
        instant = next(self._source, None)
        if instant is None:
            self._exhausted = True
            return None
        return require_aware(instant, "occurrence")

    def _classify(self, index: int, instant: datetime) -> Occurrence:
        """Consume every exclusion up to ``instant``, matching at most one."""
        exclusions = self._exclusions
        while self._cursor < len(exclusions):
            candidate = exclusions[self._cursor]
            if candidate > instant:
                break
            self._cursor += 1
            if candidate < instant:
                self._unmatched.append(candidate)
                continue
            self._matched.append(candidate)
            # Duplicates of this instant are left for the next occurrence
            return Occurrence(index=index, instant=instant, excluded=True)
        return Occurrence(index=index, instant=instant)

    def _snapshot(self, horizon: HorizonSpec) -> ReconciliationResult:
        # The tail is reclassified on every snapshot: a larger horizon may
        # still reach these exclusions.
        split = bisect.bisect_right(
            self._exclusions, horizon.date_limit, lo=self._cursor
        )
        tail_in_range = self._exclusions[self._cursor : split]
        dropped = self._exclusions[split:]
        if dropped:
            logger.debug(
                "Dropping %d exclusion(s) after %s",
                len(dropped),
                horizon.date_limit.isoformat(),
            )
        return ReconciliationResult(
            occurrences=tuple(self._occurrences),
            matched=tuple(self._matched),
            unmatched=(*self._unmatched, *tail_in_range),
            dropped=dropped,
            horizon=horizon,
        )


def reconcile(
    occurrences: Iterable[datetime],
    exclusions: Iterable[datetime],
    horizon: HorizonSpec,
) -> ReconciliationResult:
    """Classify ``exclusions`` against ``occurrences`` in one bounded sweep.

    Args:
        occurrences: Strictly increasing aware instants, possibly infinite
        exclusions: Aware instants in any order
        horizon: Count and date caps on generation

    Returns:
        ReconciliationResult with flagged occurrences and classified exclusions
    """
    return Sweep(occurrences, exclusions).advance(horizon)
