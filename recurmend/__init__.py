"""Reconcile recurrence rules with stored exclusion dates.

Typical use::

    editor = ExclusionEditor(stored_text, start)
    editor.result.unmatched        # stale exclusions, removed on submit
    editor.toggle(3)
    editor.show_more()
    stored_text = editor.submit()
"""

from .editor import ExclusionEditor
from .errors import InvalidHorizonInput, RuleParseError
from .horizon import DEFAULT_POLICY, HorizonPolicy, HorizonSpec
from .instant import UTC_FORMAT, format_utc
from .reconcile import Occurrence, ReconciliationResult, Sweep, reconcile
from .rules import RuleSet
from .serialize import exdate_line, rule_line, serialize

__all__ = [
    "ExclusionEditor",
    "RuleSet",
    "Occurrence",
    "ReconciliationResult",
    "Sweep",
    "reconcile",
    "HorizonPolicy",
    "HorizonSpec",
    "DEFAULT_POLICY",
    "serialize",
    "rule_line",
    "exdate_line",
    "format_utc",
    "UTC_FORMAT",
    "RuleParseError",
    "InvalidHorizonInput",
]
