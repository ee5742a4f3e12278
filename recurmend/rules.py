"""Parsed recurrence rules and the occurrences they generate.

Rule grammar (FREQ, BYDAY, BYSETPOS, UNTIL, ...) is handled by
python-dateutil's ``rrulestr``. This module only splits the stored text into
content lines, keeps the RRULE lines as parsed rules and pulls the EXDATE
values out separately, so the exclusions can be reconciled against the raw
rule output instead of being silently applied by dateutil.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from dateutil.rrule import rrule, rrulestr, rruleset

from recurmend.errors import RuleParseError
from recurmend.instant import localize, parse_instant_values, resolve_zone

logger = logging.getLogger(__name__)

# Properties that are valid in stored text but not carried through an edit
_IGNORED_PROPERTIES = frozenset({"DTSTART", "RDATE", "EXRULE"})


def _unfold(text: str) -> list[str]:
    """Split text into content lines, joining RFC 5545 folded continuations."""
    lines: list[str] = []
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
            continue
        raw = raw.strip()
        if raw:
            lines.append(raw)
    return lines


def _split_property(line: str) -> tuple[str, dict[str, str], str]:
    """Split a content line into (NAME, params, value).

    A line without a colon is a bare rule body such as ``FREQ=DAILY;COUNT=3``.
    """
    if ":" not in line:
        return "RRULE", {}, line
    head, value = line.split(":", 1)
    name, *raw_params = head.split(";")
    params: dict[str, str] = {}
    for raw_param in raw_params:
        key, _, param_value = raw_param.partition("=")
        params[key.strip().upper()] = param_value.strip().strip('"')
    return name.strip().upper(), params, value


def _parse_rule(line: str, start: datetime) -> rrule:
    try:
        parsed = rrulestr(line, dtstart=start)
    except (ValueError, TypeError, KeyError) as e:
        raise RuleParseError(f"Invalid recurrence rule {line!r}: {e}", line) from e
    if not isinstance(parsed, rrule):
        raise RuleParseError(f"Expected a single RRULE, got {line!r}", line)
    return parsed


def _parse_exdate(
    params: dict[str, str], value: str, line: str, zone: tzinfo
) -> list[datetime]:
    try:
        value_zone = resolve_zone(params["TZID"]) if "TZID" in params else zone
        assert value_zone is not None
        return parse_instant_values(
            value, value_zone, is_date=params.get("VALUE", "").upper() == "DATE"
        )
    except (ValueError, KeyError) as e:
        # ZoneInfoNotFoundError is a KeyError
        raise RuleParseError(f"Invalid EXDATE {line!r}: {e}", line) from e


def _resolve_start(
    start: datetime | None, tz: str | tzinfo | None
) -> datetime:
    zone = resolve_zone(tz)
    if start is None:
        return datetime.now(zone or timezone.utc).replace(microsecond=0)
    return localize(start, zone)


@dataclass(frozen=True)
class RuleSet:
    """An immutable set of recurrence rules anchored at one start instant.

    Attributes:
        rules: Parsed dateutil rules, in the order they appeared in the text
        start: Aware anchor instant (DTSTART) shared by every rule
        exclusions: EXDATE instants found in the text, unsorted, duplicates kept
    """

    rules: tuple[rrule, ...]
    start: datetime
    exclusions: tuple[datetime, ...] = ()

    @classmethod
    def parse(
        cls,
        text: str | None,
        start: datetime | None = None,
        *,
        tz: str | tzinfo | None = None,
    ) -> "RuleSet":
        """Parse stored recurrence text.

        Args:
            text: RRULE/EXDATE content lines; None or blank means no rule
            start: Anchor instant. Naive values are localized to ``tz``;
                None means the current time
            tz: Zone for a naive ``start`` (IANA name or tzinfo)

        Returns:
            RuleSet holding the parsed rules and the stored exclusions

        Raises:
            RuleParseError: If dateutil rejects a rule, an EXDATE value is
                malformed, or the text carries an unsupported property
            TypeError: If ``start`` is naive and no ``tz`` was given
        """
        anchor = _resolve_start(start, tz)
        zone = anchor.tzinfo
        assert zone is not None

        rules: list[rrule] = []
        exclusions: list[datetime] = []
        for line in _unfold(text or ""):
            name, params, value = _split_property(line)
            if name == "RRULE":
                rules.append(_parse_rule(line, anchor))
            elif name == "EXDATE":
                exclusions.extend(_parse_exdate(params, value, line, zone))
            elif name in _IGNORED_PROPERTIES:
                logger.debug("Ignoring %s line in recurrence text: %r", name, line)
            else:
                raise RuleParseError(
                    f"Unsupported property {name!r} in recurrence text: {line!r}",
                    line,
                )

        return cls(rules=tuple(rules), start=anchor, exclusions=tuple(exclusions))

    @property
    def is_empty(self) -> bool:
        return not self.rules

    @property
    def zone(self) -> tzinfo:
        """Zone occurrences are generated in (the start instant's zone)."""
        assert self.start.tzinfo is not None
        return self.start.tzinfo

    def occurrences(self) -> Iterator[datetime]:
        """Lazily generate occurrences of every rule, ignoring exclusions.

        Each call builds a fresh ``rruleset`` so iteration always restarts
        from the anchor. Instants are strictly increasing; an instant
        produced by more than one rule is yielded once.
        """
        combined = rruleset()
        for rule in self.rules:
            combined.rrule(rule)
        return iter(combined)
