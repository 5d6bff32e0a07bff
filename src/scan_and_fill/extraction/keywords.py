"""Keyword tables driving the amount classifier.

Kept as data so phrases can be added or removed without touching the
classification logic. Tier phrases are compared on a canonical form of the
line (lower case, no accents, no whitespace, no dots); ignore and identifier
words are compared as raw lower-case substrings.
"""

from __future__ import annotations

from dataclasses import dataclass

from scan_and_fill.scanner.months import strip_accents


@dataclass(frozen=True)
class TierRule:
    tier: int
    name: str
    phrases: tuple[str, ...]


SUPREME = TierRule(3, "supreme", (
    "total ttc", "ttc", "net a payer", "net à payer", "total à payer", "total a payer",
    "net à régler", "net a régler", "à payer", "a payer", "total à régler", "total a régler",
    "net a payer en €", "net à payer en €", "montant ttc", "total eur ttc", "total eur",
    "a votre debit", "total net a payer", "total net ttc", "net a payer ttc",
    "net a payer ttc en euros", "net à payer ttc en euros",
))

STRONG = TierRule(2, "strong", (
    "total due", "amount due", "balance due", "total facturado", "total factura",
    "total general", "amount", "montant", "importe", "sum", "total:",
    "payer", "regler",
))

SECONDARY = TierRule(1, "secondary", (
    "total ht", "net ht", "hors taxe", "total net ht", "ht", "total ht net", "total marchandise",
))

GENERIC = TierRule(1, "generic", ("total", "net"))

# Evaluated top-down, first match wins
TIER_RULES: tuple[TierRule, ...] = (SUPREME, STRONG, SECONDARY, GENERIC)

# Subtotal language demotes any higher tier back to 1
SUBTOTAL_PHRASES: tuple[str, ...] = SECONDARY.phrases

# Lines following a keyword line that are searched for its amount
LOOKAHEAD: dict[int, int] = {3: 20, 2: 5, 1: 1}

# A line containing any of these is never a monetary total
IGNORE_WORDS: tuple[str, ...] = (
    "poids", "weight", "kg", "volume", "qty", "quantité", "quantity", "qte", "quantite",
    "articles", "items", "unité", "unités", "indemnité", "pénalité",
    "intérêt", "intérêts", "penalite", "indemnite", "interet",
    "iban", "siret", "siren", "ean", "bic", "swift", "rib", "account", "compte", "no.", "ref",
    "colis", "nb colis", "livraison", "capital", "social", "société", "page", "of", "sur",
    "bord", "bordereau", "commande", "réf", "noël", "noel", "échéance", "echeance",
    "escompte", "remise", "p.u.", "taux", "tva", "tél", "tel", "route", "rue", "avenue", "adresse",
)

# Context words that mark a number as an identifier, not an amount
IDENTIFIER_WORDS: tuple[str, ...] = (
    "iban", "siret", "siren", "ean", "bic", "swift", "rib", "compte", "account",
    "ref", "n°", "page", "of", "sur", "bord", "commande", "réf",
)

CURRENCY_SYMBOLS: tuple[str, ...] = ("€", "$", "£", "chf")


def canonical(value: str) -> str:
    """Lower case, accents stripped, whitespace and dots removed."""
    value = strip_accents(value.lower())
    return "".join(ch for ch in value if not ch.isspace() and ch != ".")


@dataclass(frozen=True)
class KeywordTable:
    tiers: tuple[TierRule, ...] = TIER_RULES
    subtotal_phrases: tuple[str, ...] = SUBTOTAL_PHRASES
    ignore_words: tuple[str, ...] = IGNORE_WORDS
    lookahead: tuple[tuple[int, int], ...] = tuple(LOOKAHEAD.items())

    def __post_init__(self) -> None:
        # Canonical forms are computed once per table
        object.__setattr__(self, "_tiers", tuple(
            (rule.tier, tuple(canonical(p) for p in rule.phrases)) for rule in self.tiers
        ))
        object.__setattr__(self, "_subtotal", tuple(canonical(p) for p in self.subtotal_phrases))

    def classify(self, line: str) -> int:
        """Tier of a line, 0 when it carries no total keyword."""
        line = canonical(line)
        tier = 0
        for rule_tier, phrases in self._tiers:
            if any(p in line for p in phrases):
                tier = rule_tier
                break
        if tier > 1 and any(p in line for p in self._subtotal):
            tier = 1
        return tier

    def is_ignored(self, line: str) -> bool:
        lowered = line.lower()
        return any(w in lowered for w in self.ignore_words)

    def lookahead_for(self, tier: int) -> int:
        return dict(self.lookahead).get(tier, 1)


DEFAULT_KEYWORDS = KeywordTable()
