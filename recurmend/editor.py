"""Editing session for excluding individual occurrences of a recurrence.

An editor is created from the stored recurrence text, shows a bounded table of
occurrences (with stale exclusions reported separately), lets the caller
flip rows on and off, grows the table on request, and finally produces the
new stored text.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, tzinfo

from recurmend.errors import RuleParseError
from recurmend.horizon import DEFAULT_POLICY, HorizonPolicy, HorizonSpec
from recurmend.instant import to_utc
from recurmend.reconcile import Occurrence, ReconciliationResult, Sweep
from recurmend.rules import RuleSet
from recurmend.serialize import serialize

logger = logging.getLogger(__name__)


class ExclusionEditor:
    """One editing session over a stored recurrence.

    Selection state is keyed by occurrence instant rather than table position,
    so a row keeps its selection when "show more" extends the table.

    Attributes:
        rules: Parsed rules; empty if the stored text could not be parsed
        parse_error: The parse failure, if any
        policy: Horizon policy driving the table size
        multiplier: Current horizon multiplier, starting at 1
        result: Reconciliation for the current multiplier
    """

    def __init__(
        self,
        text: str | None,
        start: datetime | None = None,
        *,
        tz: str | tzinfo | None = None,
        policy: HorizonPolicy = DEFAULT_POLICY,
        now: datetime | None = None,
    ) -> None:
        """
        Initialize an editing session and run the first expansion.

        Args:
            text: Stored RRULE/EXDATE text, None if the field is empty
            start: Anchor instant of the recurrence; None means now
            tz: Zone for a naive ``start``
            policy: Horizon policy (fixed or growing)
            now: Clock used for the date limit; defaults to the current time
                in the start's zone, taken once for the whole session
        """
        self.policy: HorizonPolicy = policy
        self.parse_error: RuleParseError | None = None
        try:
            self.rules: RuleSet = RuleSet.parse(text, start, tz=tz)
        except RuleParseError as e:
            logger.warning(
                "Recurrence text could not be parsed, showing no occurrences: %s", e
            )
            self.parse_error = e
            self.rules = RuleSet.parse(None, start, tz=tz)

        self._now: datetime = now if now is not None else datetime.now(self.timezone)
        self.multiplier: int = 1
        self._sweep: Sweep = Sweep(self.rules.occurrences(), self.rules.exclusions)
        self.result: ReconciliationResult = self._sweep.advance(self._horizon())
        self._selected: set[datetime] = set(self.result.excluded_instants)

    @property
    def timezone(self) -> tzinfo:
        """Zone the occurrences are generated and displayed in."""
        return self.rules.zone

    @property
    def occurrences(self) -> tuple[Occurrence, ...]:
        return self.result.occurrences

    @property
    def unmatched(self) -> tuple[datetime, ...]:
        """Stored exclusions that will be removed on submit."""
        return self.result.unmatched

    def _horizon(self) -> HorizonSpec:
        return self.policy.compute(self.multiplier, now=self._now, tz=self.timezone)

    def show_more(self) -> ReconciliationResult:
        """Grow the horizon by one step and extend the occurrence table.

        Rows already shown keep their index and selection. Newly shown rows
        that match a stored exclusion start out selected.
        """
        shown = len(self.result.occurrences)
        self.multiplier += 1
        self.result = self._sweep.advance(self._horizon())
        for occurrence in self.result.occurrences[shown:]:
            if occurrence.excluded:
                self._selected.add(occurrence.instant)
        logger.debug(
            "Multiplier %d shows %d occurrence(s), %d new",
            self.multiplier,
            len(self.result.occurrences),
            len(self.result.occurrences) - shown,
        )
        return self.result

    def _row(self, index: int) -> Occurrence:
        occurrences = self.result.occurrences
        if not 0 <= index < len(occurrences):
            raise IndexError(
                f"No occurrence at index {index}; "
                f"{len(occurrences)} occurrence(s) are shown"
            )
        return occurrences[index]

    def is_excluded(self, index: int) -> bool:
        return self._row(index).instant in self._selected

    def set_excluded(self, index: int, excluded: bool) -> None:
        instant = self._row(index).instant
        if excluded:
            self._selected.add(instant)
        else:
            self._selected.discard(instant)

    def toggle(self, index: int) -> bool:
        """Flip the row at ``index``, returning its new excluded state."""
        excluded = not self.is_excluded(index)
        self.set_excluded(index, excluded)
        return excluded

    def select(self, indices: Iterable[int]) -> None:
        """Replace the selection with the rows at ``indices``.

        Raises:
            IndexError: If any index is not a shown row; the selection is
                left unchanged
        """
        instants = {self._row(index).instant for index in indices}
        self._selected = instants

    def select_instants(self, instants: Iterable[datetime]) -> None:
        """Replace the selection with the rows at the given instants.

        Raises:
            ValueError: If an instant is not one of the shown occurrences
        """
        # Keyed by UTC: instants on either side of a DST fold compare unequal
        # across zones even when they denote the same moment
        shown = {to_utc(o.instant): o.instant for o in self.result.occurrences}
        chosen = {to_utc(i) for i in instants}
        missing = chosen - shown.keys()
        if missing:
            listed = ", ".join(sorted(i.isoformat() for i in missing))
            raise ValueError(f"Not a shown occurrence: {listed}")
        self._selected = {shown[i] for i in chosen}

    def excluded_instants(self) -> tuple[datetime, ...]:
        """Selected instants in occurrence order."""
        return tuple(
            o.instant for o in self.result.occurrences if o.instant in self._selected
        )

    def submit(self) -> str:
        """Stored text for the base rules plus the selected exclusions."""
        text = serialize(self.rules, self.excluded_instants())
        logger.debug(
            "Submitting %d rule(s) with %d exclusion(s), %d stale exclusion(s) removed",
            len(self.rules.rules),
            len(self.excluded_instants()),
            len(self.result.unmatched),
        )
        return text
