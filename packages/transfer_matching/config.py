"""Matching configuration: transfer gazetteer and score thresholds.

The keyword list that marks a payee as "looks like a transfer" is data, not
code. Defaults mirror the phrasing seen in Australian bank exports; a JSON file
(``--config`` on the CLI or ``TM_MATCHING_CONFIG``) can replace or localize it
without touching the scorer.

Example file::

    {
      "transfer_keywords": ["internal transfer", "tfr", "from linked account"],
      "min_score": 45
    }
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

CONFIG_ENV = "TM_MATCHING_CONFIG"

DEFAULT_TRANSFER_KEYWORDS: tuple[str, ...] = (
    "internal transfer",
    "transfer",
    "from macbank",
    "to macbank",
    "from linked account",
    "to linked account",
    "internet transfer",
    "tfr",
)


class MatchingSettings(BaseModel):
    """Validated, immutable settings shared by extractor, scorer and solver."""

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    transfer_keywords: tuple[str, ...] = DEFAULT_TRANSFER_KEYWORDS
    # Placeholder category names that mark an entry as an unresolved transfer
    transfer_category_names: tuple[str, ...] = ("uncategorized",)
    transfer_category_substring: str = "transfer"
    min_score: int = 40
    exact_threshold: int = 80
    probable_threshold: int = 60
    date_padding_days: int = 1

    @field_validator("transfer_keywords", "transfer_category_names")
    @classmethod
    def _normalize_phrases(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        items = tuple(dict.fromkeys(s.strip().lower() for s in v if s and s.strip()))
        if not items:
            raise ValueError("at least one non-empty phrase is required")
        return items

    @field_validator("transfer_category_substring")
    @classmethod
    def _lower_substring(cls, v: str) -> str:
        return v.lower()

    @field_validator("date_padding_days")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("date_padding_days must be >= 0")
        return v

    @model_validator(mode="after")
    def _thresholds_ordered(self) -> MatchingSettings:
        if not (0 <= self.min_score <= self.probable_threshold <= self.exact_threshold <= 100):
            raise ValueError(
                "thresholds must satisfy 0 <= min_score <= probable_threshold "
                "<= exact_threshold <= 100"
            )
        return self

    # ---- Gazetteer lookups -------------------------------------------------

    def payee_has_keyword(self, payee: str | None) -> bool:
        text = (payee or "").lower()
        return any(kw in text for kw in self.transfer_keywords)

    def category_looks_like_transfer(self, name: str | None) -> bool:
        n = (name or "").strip().lower()
        if n in self.transfer_category_names:
            return True
        return bool(self.transfer_category_substring) and self.transfer_category_substring in n

    def is_transfer_likely(self, category_name: str | None, payee: str | None) -> bool:
        return self.category_looks_like_transfer(category_name) or self.payee_has_keyword(payee)


DEFAULT_SETTINGS = MatchingSettings()


def load_settings(path: str | os.PathLike[str] | None = None) -> MatchingSettings:
    """Load settings from ``path`` or ``$TM_MATCHING_CONFIG``; defaults otherwise.

    Raises ``FileNotFoundError`` for a missing file and ``pydantic.ValidationError``
    for malformed content.
    """

    raw = path if path is not None else os.getenv(CONFIG_ENV)
    if not raw:
        return DEFAULT_SETTINGS
    text = Path(raw).expanduser().read_text(encoding="utf-8")
    return MatchingSettings.model_validate_json(text)


__all__ = [
    "CONFIG_ENV",
    "DEFAULT_TRANSFER_KEYWORDS",
    "DEFAULT_SETTINGS",
    "MatchingSettings",
    "load_settings",
]
