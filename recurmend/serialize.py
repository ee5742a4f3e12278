"""Render rules and selected exclusions back into stored recurrence text.

Output is the canonical form read back by ``RuleSet.parse``::

    RRULE:FREQ=WEEKLY;BYDAY=MO,WE
    EXDATE:20150414T010000Z,20150415T010000Z

The anchor (DTSTART) is carried separately and never written here.
"""

import re
from collections.abc import Iterable
from datetime import datetime

from dateutil.rrule import rrule

from recurmend.instant import format_utc, to_utc
from recurmend.rules import RuleSet

# dateutil writes UNTIL as local wall time without a zone designator
_UNTIL_PATTERN = re.compile(r"UNTIL=\d{8}T\d{6}")


def rule_line(rule: rrule) -> str:
    """Canonical ``RRULE:`` line for one dateutil rule, without DTSTART."""
    lines = [
        line for line in str(rule).splitlines() if line.startswith("RRULE:")
    ]
    line = lines[0]

    until: datetime | None = getattr(rule, "_until", None)
    if until is not None and until.tzinfo is not None:
        # Aware rules only accept UTC UNTIL values when parsed back
        line = _UNTIL_PATTERN.sub(f"UNTIL={format_utc(until)}", line)
    return line


def exdate_line(instants: Iterable[datetime]) -> str | None:
    """Single ``EXDATE:`` line listing unique instants in ascending UTC order.

    Returns None when there is nothing to exclude.
    """
    values = sorted({to_utc(instant) for instant in instants})
    if not values:
        return None
    return "EXDATE:" + ",".join(format_utc(value) for value in values)


def serialize(
    rules: RuleSet | Iterable[rrule], excluded: Iterable[datetime] = ()
) -> str:
    """Build stored recurrence text from rules and the exclusions to keep.

    Args:
        rules: RuleSet (or bare dateutil rules) whose RRULE lines are emitted
            in order
        excluded: Instants to exclude; only occurrences picked from the
            current reconciliation should be passed, stale exclusions are
            meant to disappear here

    Returns:
        Newline joined RRULE lines followed by at most one EXDATE line;
        empty string if there is neither
    """
    base = rules.rules if isinstance(rules, RuleSet) else tuple(rules)
    lines = [rule_line(rule) for rule in base]
    exdates = exdate_line(excluded)
    if exdates is not None:
        lines.append(exdates)
    return "\n".join(lines)
