"""Find currency-like numbers in text and filter out identifiers, dates and codes."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from scan_and_fill.extraction.keywords import CURRENCY_SYMBOLS, IDENTIFIER_WORDS
from scan_and_fill.models.extraction import Candidate

# 1.234,56 / 1 234.56 / 236,50 / 236 (horizontal whitespace only as separator)
NUMBER_RE = re.compile(r"\d+(?:[^\S\n][0-9]{3}|\.[0-9]{3})*(?:[.,]\d{1,2})?")

_LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_PAGE_RE = re.compile(r"\d+\s*/\s*\d+|--\s*\d+\s*--")
_PHONE_RE = re.compile(r"0[1-9](?:\s?\d{2}){4}")
_PHONE_WORDS_RE = re.compile(r"tél|tel|phone")
_YEAR_RE = re.compile(r"202[0-9]")
_DATE_PART_RE = re.compile(r"\d+/\d+|/\d+")
_ADJACENT_RE = re.compile(r"[a-zA-Z\-]")

MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000")
MAX_DIGITS = 12

# Chars on each side used to judge a number / to show it to the operator
FILTER_WINDOW = 30
DISPLAY_WINDOW = 50


def parse_amount(raw: str) -> Decimal | None:
    """Normalise a matched token to a Decimal.

    A token with both '.' and ',' uses dots for thousands and a decimal comma;
    a token with only ',' has a decimal comma. The leading numeric prefix is
    read, so "1.234" (no comma) parses as 1.234.
    """
    raw = re.sub(r"\s", "", raw)
    if "." in raw and "," in raw:
        raw = raw.replace(".", "").replace(",", ".", 1)
    elif "," in raw:
        raw = raw.replace(",", ".", 1)
    m = _LEADING_NUMBER_RE.match(raw)
    if not m:
        return None
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        return None


def _rejected(text: str, start: int, token: str) -> bool:
    end = start + len(token)
    prev_char = text[start - 1] if start > 0 else ""
    next_char = text[end] if end < len(text) else ""
    # Glued to letters: an identifier or a reference code
    if _ADJACENT_RE.match(prev_char) or _ADJACENT_RE.match(next_char):
        return True

    context = text[max(0, start - FILTER_WINDOW):end + FILTER_WINDOW].lower()
    undecorated = "," not in token and "." not in token
    digits = re.sub(r"[\s.]", "", token)

    if any(word in context for word in IDENTIFIER_WORDS):
        return True
    if _PAGE_RE.search(context):
        return True
    if undecorated and _YEAR_RE.search(token):
        return True
    if _PHONE_RE.search(context) or _PHONE_WORDS_RE.search(context):
        return True
    # Postal code
    if undecorated and len(token) == 5 and token.isdigit():
        return True
    # Barcodes, bank details
    if len(digits) > MAX_DIGITS:
        return True
    if next_char == "%" or "%" in context:
        return True
    if _DATE_PART_RE.search(context) and len(token) <= 4:
        return True
    return False


def display_context(text: str, start: int, length: int, width: int = DISPLAY_WINDOW) -> str:
    lo = max(0, start - width)
    hi = min(len(text), start + length + width)
    snippet = re.sub(r"\s+", " ", text[lo:hi].replace("\n", " ")).strip()
    return f"...{snippet}..."


def extract_numbers(text: str, offset: int = 0) -> list[Candidate]:
    """All accepted amounts in ``text``, in order of appearance.

    ``offset`` is added to the candidates' ``start`` so that numbers found in a
    single line point into the whole document.
    """
    results: list[Candidate] = []
    for m in NUMBER_RE.finditer(text):
        token = m.group(0)
        if _rejected(text, m.start(), token):
            continue
        amount = parse_amount(token)
        if amount is None or not (MIN_AMOUNT < amount < MAX_AMOUNT):
            continue
        context = display_context(text, m.start(), len(token))
        results.append(Candidate(
            amount=amount,
            context=context,
            currency=any(s in context.lower() for s in CURRENCY_SYMBOLS),
            start=offset + m.start(),
            length=len(token),
        ))
    return results
