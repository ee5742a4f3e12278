"""Tests for rendering rules and exclusions back to stored text."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from dateutil.rrule import DAILY, rrule

from recurmend import RuleSet, exdate_line, format_utc, rule_line, serialize

UTC = timezone.utc
SINGAPORE = ZoneInfo("Asia/Singapore")


def day(d: int, hour: int = 0) -> datetime:
    return datetime(2015, 4, d, hour, tzinfo=UTC)


def test_rule_only():
    """Test no EXDATE line is written without exclusions."""
    rules = RuleSet.parse("RRULE:FREQ=DAILY;COUNT=3", day(14))

    assert serialize(rules) == "RRULE:FREQ=DAILY;COUNT=3"
    assert serialize(rules, []) == "RRULE:FREQ=DAILY;COUNT=3"


def test_rule_with_exclusions():
    """Test exclusions follow the rule on a single EXDATE line."""
    rules = RuleSet.parse("RRULE:FREQ=DAILY;COUNT=3", day(14))

    text = serialize(rules, [day(15), day(16)])

    assert text == "RRULE:FREQ=DAILY;COUNT=3\nEXDATE:20150415T000000Z,20150416T000000Z"


def test_exclusions_are_written_in_utc():
    """Test zoned exclusions are converted to UTC."""
    excluded = datetime(2015, 4, 14, 9, 0, tzinfo=SINGAPORE)

    assert exdate_line([excluded]) == "EXDATE:20150414T010000Z"
    assert format_utc(excluded) == "20150414T010000Z"


def test_exclusions_are_sorted_and_unique():
    """Test the same instant given twice, in any zone, is written once."""
    same_as_15th = datetime(2015, 4, 15, 8, tzinfo=SINGAPORE)

    line = exdate_line([day(16), day(15), same_as_15th])

    assert line == "EXDATE:20150415T000000Z,20150416T000000Z"


def test_no_exclusions_gives_no_line():
    """Test exdate_line returns None for an empty selection."""
    assert exdate_line([]) is None


def test_stored_exdates_are_not_carried_over():
    """Test only the exclusions passed in are written, not the stored ones."""
    rules = RuleSet.parse(
        "RRULE:FREQ=DAILY;COUNT=3\nEXDATE:20150415T000000Z", day(14)
    )

    assert serialize(rules, [day(16)]) == (
        "RRULE:FREQ=DAILY;COUNT=3\nEXDATE:20150416T000000Z"
    )


def test_multiple_rules_keep_their_order():
    """Test one RRULE line is written per rule."""
    rules = RuleSet.parse(
        "RRULE:FREQ=WEEKLY;BYDAY=WE;COUNT=2\nRRULE:FREQ=WEEKLY;BYDAY=MO;COUNT=2",
        datetime(2015, 4, 13, tzinfo=UTC),
    )

    assert serialize(rules).splitlines() == [
        "RRULE:FREQ=WEEKLY;COUNT=2;BYDAY=WE",
        "RRULE:FREQ=WEEKLY;COUNT=2;BYDAY=MO",
    ]


def test_rule_text_is_normalized():
    """Test redundant parts are dropped and parts are put in canonical order."""
    rules = RuleSet.parse("rrule:interval=1;count=3;freq=daily", day(14))

    assert rule_line(rules.rules[0]) == "RRULE:FREQ=DAILY;COUNT=3"


def test_positional_weekdays():
    """Test BYDAY ordinals and BYSETPOS survive serialization."""
    rules = RuleSet.parse(
        "RRULE:FREQ=MONTHLY;BYDAY=-1FR;COUNT=4\n"
        "RRULE:FREQ=MONTHLY;BYDAY=MO,TU,WE,TH,FR;BYSETPOS=1",
        day(14),
    )

    assert serialize(rules).splitlines() == [
        "RRULE:FREQ=MONTHLY;COUNT=4;BYDAY=-1FR",
        "RRULE:FREQ=MONTHLY;BYSETPOS=1;BYDAY=MO,TU,WE,TH,FR",
    ]


def test_start_anchor_is_not_written():
    """Test DTSTART is carried outside the stored rule text."""
    rules = RuleSet.parse("RRULE:FREQ=DAILY;COUNT=3", day(14))

    assert "DTSTART" not in serialize(rules, [day(15)])


def test_until_is_written_in_utc():
    """Test UNTIL keeps its UTC designator so the text parses back."""
    start = datetime(2015, 4, 14, 9, tzinfo=SINGAPORE)
    rules = RuleSet.parse("RRULE:FREQ=DAILY;UNTIL=20150416T010000Z", start)

    text = serialize(rules)

    assert text == "RRULE:FREQ=DAILY;UNTIL=20150416T010000Z"
    reparsed = RuleSet.parse(text, start)
    assert list(reparsed.occurrences()) == list(rules.occurrences())


def test_bare_dateutil_rules():
    """Test plain dateutil rules can be serialized without a RuleSet."""
    rule = rrule(DAILY, count=2, dtstart=day(14))

    assert serialize([rule], [day(14)]) == (
        "RRULE:FREQ=DAILY;COUNT=2\nEXDATE:20150414T000000Z"
    )


def test_empty_rule_set():
    """Test nothing to write gives an empty string."""
    rules = RuleSet.parse("", day(14))

    assert serialize(rules) == ""
    assert serialize(rules, [day(15)]) == "EXDATE:20150415T000000Z"
