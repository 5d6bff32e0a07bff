"""Month recognition for folder names and spreadsheet headers (en/fr/es)."""

from __future__ import annotations

import datetime as _dt
import re
import unicodedata
from dataclasses import dataclass


@dataclass(frozen=True)
class MonthRule:
    index: int
    en: tuple[str, ...]
    fr: tuple[str, ...]
    es: tuple[str, ...]

    @property
    def name(self) -> str:
        return self.en[0]

    def spellings(self) -> list[str]:
        seen: list[str] = []
        for word in (*self.en, *self.fr, *self.es):
            word = strip_accents(word)
            if word not in seen:
                seen.append(word)
        return seen


@dataclass(frozen=True)
class MonthMatch:
    index: int
    name: str


MONTH_RULES: tuple[MonthRule, ...] = (
    MonthRule(0, ("january", "jan"), ("janvier", "janv"), ("enero", "ene")),
    MonthRule(1, ("february", "feb"), ("février", "févr"), ("febrero", "feb")),
    MonthRule(2, ("march", "mar"), ("mars",), ("marzo", "mar")),
    MonthRule(3, ("april", "apr"), ("avril", "avr"), ("abril", "abr")),
    MonthRule(4, ("may",), ("mai",), ("mayo",)),
    MonthRule(5, ("june", "jun"), ("juin",), ("junio", "jun")),
    MonthRule(6, ("july", "jul"), ("juillet", "juil"), ("julio", "jul")),
    MonthRule(7, ("august", "aug"), ("août",), ("agosto", "ago")),
    MonthRule(8, ("september", "sep", "sept"), ("septembre", "sept"), ("septiembre", "sep", "sept")),
    MonthRule(9, ("october", "oct"), ("octobre", "oct"), ("octubre", "oct")),
    MonthRule(10, ("november", "nov"), ("novembre", "nov"), ("noviembre", "nov")),
    MonthRule(11, ("december", "dec"), ("décembre", "déc"), ("diciembre", "dic")),
)

MONTH_NAMES: tuple[str, ...] = tuple(rule.name for rule in MONTH_RULES)


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _compile(rule: MonthRule) -> re.Pattern[str]:
    # Longest spellings first so "sept" is not shadowed by "sep"
    words = sorted(rule.spellings(), key=len, reverse=True)
    return re.compile(r"(?:^|[^a-z])(?:" + "|".join(map(re.escape, words)) + r")(?:[^a-z]|$)")


_PATTERNS = [(rule, _compile(rule)) for rule in MONTH_RULES]


def identify_month(name: str) -> MonthMatch | None:
    """Return the month a folder name refers to, e.g. "01 - Janvier 2026" -> january."""
    normalized = strip_accents(name.lower())
    for rule, pattern in _PATTERNS:
        if pattern.search(normalized):
            return MonthMatch(rule.index, rule.name)
    return None


def month_from_cell_value(value: object) -> MonthMatch | None:
    """Identify a month in a spreadsheet header cell (text or date)."""
    if value is None:
        return None
    if isinstance(value, (_dt.date, _dt.datetime)):
        rule = MONTH_RULES[value.month - 1]
        return MonthMatch(rule.index, rule.name)
    return identify_month(str(value))
