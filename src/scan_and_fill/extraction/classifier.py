"""Pick one defensible total out of a document's text.

Lines are sorted into keyword tiers, numbers near qualifying lines become
candidates, and only the highest tier observed is kept. When several amounts
survive, a fixed chain of tie-breaks runs before giving up with an
``ambiguous`` result for the operator.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal

from scan_and_fill.config import (
    LARGE_AMOUNT,
    MAX_RATIO,
    MIN_RATIO,
    SMALL_AMOUNT,
    SUM_TOLERANCE,
)
from scan_and_fill.extraction.keywords import DEFAULT_KEYWORDS, KeywordTable
from scan_and_fill.extraction.numbers import extract_numbers, parse_amount
from scan_and_fill.models.extraction import Candidate, ExtractionResult

logger = logging.getLogger(__name__)

FALLBACK_CANDIDATES = 5
CURRENCY_PRIORITY = 2
SAME_LINE_BONUS = 2


@dataclass(frozen=True)
class TieBreakRules:
    """Thresholds of the empirical tie-breaks; tune through config, not code."""

    sum_tolerance: Decimal = SUM_TOLERANCE
    small_amount: Decimal = SMALL_AMOUNT
    large_amount: Decimal = LARGE_AMOUNT
    min_ratio: Decimal = MIN_RATIO
    max_ratio: Decimal = MAX_RATIO


@dataclass(frozen=True)
class ClassifierRules:
    keywords: KeywordTable = DEFAULT_KEYWORDS
    tie_break: TieBreakRules = field(default_factory=TieBreakRules)


DEFAULT_RULES = ClassifierRules()


def _match_custom_pattern(text: str, pattern: str) -> ExtractionResult | None:
    try:
        m = re.search(pattern, text, re.IGNORECASE)
    except re.error as exc:
        logger.warning("Invalid custom amount pattern %r: %s", pattern, exc)
        return None
    if not m or m.lastindex is None or not m.group(1):
        return None
    amount = parse_amount(m.group(1).replace(",", ".", 1))
    if amount is None:
        logger.debug("Custom pattern matched non-numeric %r", m.group(1))
        return None
    return ExtractionResult.success(amount, [Candidate(
        amount=amount,
        context=m.group(0),
        start=m.start(1),
        length=len(m.group(1)),
    )])


def _line_offsets(lines: list[str]) -> list[int]:
    offsets, pos = [], 0
    for line in lines:
        offsets.append(pos)
        pos += len(line) + 1
    return offsets


def collect_candidates(text: str, keywords: KeywordTable = DEFAULT_KEYWORDS) -> list[Candidate]:
    """Candidates near keyword lines, each tagged with its tier and priority."""
    lines = text.split("\n")
    offsets = _line_offsets(lines)
    candidates: list[Candidate] = []

    for i, line in enumerate(lines):
        tier = keywords.classify(line)
        if tier == 0 or keywords.is_ignored(line):
            continue

        last = min(len(lines) - 1, i + keywords.lookahead_for(tier))
        for j in range(i, last + 1):
            scan_line = lines[j]
            if j > i and keywords.is_ignored(scan_line):
                continue
            for c in extract_numbers(scan_line, offset=offsets[j]):
                c.tier = tier
                c.priority = CURRENCY_PRIORITY if c.currency else 1
                if j == i:
                    c.priority += SAME_LINE_BONUS
                candidates.append(c)
    return candidates


def _dedupe(candidates: list[Candidate]) -> list[Candidate]:
    """One candidate per amount, keeping the highest priority (first seen on ties)."""
    best: dict[Decimal, Candidate] = {}
    for c in candidates:
        existing = best.get(c.amount)
        if existing is None or c.priority > existing.priority:
            best[c.amount] = c
    return list(best.values())


def _break_tie(unique: list[Candidate], rules: TieBreakRules) -> ExtractionResult:
    # Amounts seen next to a currency symbol beat bare numbers
    flagged = [c for c in unique if c.currency]
    pool = flagged or unique
    if len(pool) == 1:
        return ExtractionResult.success(pool[0].amount, pool)

    max_priority = max(c.priority for c in pool)
    best = [c for c in pool if c.priority == max_priority]
    if len(best) == 1:
        return ExtractionResult.success(best[0].amount, best)

    ranked = sorted(best, key=lambda c: c.amount, reverse=True)

    # Net + tax = gross
    if len(ranked) >= 3:
        if abs(ranked[0].amount - (ranked[1].amount + ranked[2].amount)) < rules.sum_tolerance:
            return ExtractionResult.success(ranked[0].amount, [ranked[0]])

    # Small counts next to real amounts are noise
    if ranked[0].amount > rules.large_amount and ranked[-1].amount < rules.small_amount:
        significant = [c for c in best if c.amount >= rules.small_amount]
        if len(significant) == 1:
            return ExtractionResult.success(significant[0].amount, significant)

    if len(ranked) == 2:
        larger, smaller = ranked[0].amount, ranked[1].amount
        if smaller * rules.min_ratio < larger < smaller * rules.max_ratio:
            return ExtractionResult.success(larger, ranked)

    return ExtractionResult.ambiguous(unique)


def find_amount_in_text(
    text: str,
    pattern: str | None = None,
    rules: ClassifierRules = DEFAULT_RULES,
) -> ExtractionResult:
    """Classify document text into success / ambiguous / failed.

    Pure function of ``text``, ``pattern`` and ``rules``.
    """
    if pattern:
        result = _match_custom_pattern(text, pattern)
        if result is not None:
            return result

    candidates = collect_candidates(text, rules.keywords)

    if not candidates:
        # No keyword line qualified: offer the last numbers of the document
        numbers = extract_numbers(text)
        if numbers:
            return ExtractionResult.ambiguous(
                numbers[-FALLBACK_CANDIDATES:],
                message="No total keyword found",
            )
        return ExtractionResult.failed("No amount found in document")

    top_tier = max(c.tier for c in candidates)
    unique = _dedupe([c for c in candidates if c.tier == top_tier])

    if len(unique) == 1:
        return ExtractionResult.success(unique[0].amount, unique)
    return _break_tie(unique, rules.tie_break)
