"""How far occurrence expansion may go.

A rule without COUNT or UNTIL never ends, so every expansion is capped by an
occurrence count and a date. Both caps grow with a caller supplied
multiplier, which starts at 1 and goes up by one for each "show more".
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from dateutil.relativedelta import relativedelta

from recurmend.errors import InvalidHorizonInput
from recurmend.instant import require_aware, resolve_zone

logger = logging.getLogger(__name__)

_MAX_YEAR = datetime.max.year


@dataclass(frozen=True)
class HorizonSpec:
    """Count and date caps for one expansion.

    Attributes:
        count_limit: Largest occurrence index that may be emitted
        date_limit: Latest occurrence instant that may be emitted (inclusive)
    """

    count_limit: int
    date_limit: datetime

    def __post_init__(self) -> None:
        require_aware(self.date_limit, "date_limit")

    def covers(self, other: "HorizonSpec") -> bool:
        """True if this horizon reaches at least as far as ``other`` on both caps."""
        return (
            self.count_limit >= other.count_limit
            and self.date_limit >= other.date_limit
        )


def check_multiplier(multiplier: object) -> int:
    """Validate a horizon multiplier, returning it unchanged."""
    # bool is an int subclass but True/False are not multipliers
    if not isinstance(multiplier, int) or isinstance(multiplier, bool):
        raise InvalidHorizonInput(
            f"multiplier must be an integer >= 1, "
            f"got {type(multiplier).__name__!r}: {multiplier!r}"
        )
    if multiplier < 1:
        raise InvalidHorizonInput(
            f"multiplier must be >= 1, got {multiplier}.\n"
            f"The first expansion uses multiplier=1; each 'show more' adds 1."
        )
    return multiplier


@dataclass(frozen=True, kw_only=True)
class HorizonPolicy:
    """Derives a HorizonSpec from a multiplier.

    The defaults allow 1024 occurrences up to the end of the current year,
    then 128 more occurrences and 4 more months per step, never more than
    64000 occurrences. Use ``count_step=0, months_step=0`` for a fixed horizon.

    Attributes:
        base_count: Count limit at multiplier 1
        count_step: Count limit added per multiplier step
        max_count: Absolute ceiling on the count limit
        months_step: Months the date limit advances per multiplier step
    """

    base_count: int = 1024
    count_step: int = 128
    max_count: int = 64000
    months_step: int = 4

    def __post_init__(self) -> None:
        if self.base_count < 0 or self.count_step < 0 or self.months_step < 0:
            raise ValueError(
                f"HorizonPolicy values must be non-negative, got {self!r}"
            )
        if self.max_count < self.base_count:
            raise ValueError(
                f"max_count ({self.max_count}) must be >= "
                f"base_count ({self.base_count})"
            )

    def count_limit(self, multiplier: int) -> int:
        check_multiplier(multiplier)
        return min(self.base_count + self.count_step * (multiplier - 1), self.max_count)

    def date_limit(
        self,
        multiplier: int,
        *,
        now: datetime | None = None,
        tz: str | tzinfo | None = None,
    ) -> datetime:
        """Last second of the current year, pushed forward by whole months.

        Args:
            multiplier: Horizon multiplier (>= 1)
            now: Current time; defaults to the wall clock
            tz: Zone the year boundary is taken in; defaults to the zone of
                ``now``, or UTC

        Returns:
            Aware datetime; month overflow clamps to the month's last day and
            the limit never passes December 31st of year 9999
        """
        check_multiplier(multiplier)
        zone = resolve_zone(tz)
        if now is None:
            now = datetime.now(zone or timezone.utc)
        else:
            require_aware(now, "now")
            if zone is not None:
                now = now.astimezone(zone)

        year_end = now.replace(
            month=12, day=31, hour=23, minute=59, second=59, microsecond=0
        )
        # Growth stops on the last day of year 9999, the datetime ceiling
        months = min(
            self.months_step * (multiplier - 1), (_MAX_YEAR - year_end.year) * 12
        )
        return year_end + relativedelta(months=months)

    def compute(
        self,
        multiplier: int,
        *,
        now: datetime | None = None,
        tz: str | tzinfo | None = None,
    ) -> HorizonSpec:
        """Build the HorizonSpec for ``multiplier``.

        Raises:
            InvalidHorizonInput: If multiplier is not an integer >= 1
        """
        horizon = HorizonSpec(
            count_limit=self.count_limit(multiplier),
            date_limit=self.date_limit(multiplier, now=now, tz=tz),
        )
        logger.debug(
            "Horizon for multiplier %d: count_limit=%d date_limit=%s",
            multiplier,
            horizon.count_limit,
            horizon.date_limit.isoformat(),
        )
        return horizon


DEFAULT_POLICY = HorizonPolicy()
