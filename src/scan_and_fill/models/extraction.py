"""Pydantic models for a single document's extraction outcome."""

from __future__ import annotations

import hashlib
import re
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class ExtractionStatus(str, Enum):
    SUCCESS = "success"
    AMBIGUOUS = "ambiguous"
    FAILED = "failed"


class Candidate(BaseModel):
    """A numeric value found near a qualifying keyword."""

    amount: Decimal
    context: str = ""
    tier: int = 0
    priority: int = 1
    currency: bool = False
    # Offsets of the number inside the classified text
    start: Optional[int] = None
    length: Optional[int] = None

    def render_context(self, text: str, width: int = 50) -> str:
        """Re-render the snippet around the number with ``width`` chars on each side."""
        if self.start is None or self.length is None:
            return self.context
        lo = max(0, self.start - width)
        hi = min(len(text), self.start + self.length + width)
        snippet = re.sub(r"\s+", " ", text[lo:hi].replace("\n", " ")).strip()
        return f"...{snippet}..."


class ExtractionResult(BaseModel):
    status: ExtractionStatus
    amount: Decimal = Decimal("0")
    candidates: list[Candidate] = Field(default_factory=list)
    message: Optional[str] = None

    @classmethod
    def success(cls, amount: Decimal, candidates: list[Candidate]) -> "ExtractionResult":
        return cls(status=ExtractionStatus.SUCCESS, amount=amount, candidates=candidates)

    @classmethod
    def ambiguous(cls, candidates: list[Candidate], message: str | None = None) -> "ExtractionResult":
        return cls(status=ExtractionStatus.AMBIGUOUS, candidates=candidates, message=message)

    @classmethod
    def failed(cls, message: str | None = None) -> "ExtractionResult":
        return cls(status=ExtractionStatus.FAILED, message=message)

    @property
    def is_success(self) -> bool:
        return self.status == ExtractionStatus.SUCCESS


def file_hash(path: str | Path) -> str:
    """SHA-256 hash of a file's bytes, the key of the content-addressed caches."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()
