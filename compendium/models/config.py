"""
compendium/models/config.py -- Filter configuration model.

A filter configuration selects the source books to emit and lists
canonical keys (or key patterns) to leave out.  It can arrive from the
command line or from a JSON file passed alongside the data files::

    {
      "from": ["PHB", "DMG", "SCAG"],
      "exclude": ["background|sage|phb"],
      "excludePattern": ["race|.*|dmg"]
    }

Keys for ``exclude`` are taken from the generated index files.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

#: Top-level keys that mark a JSON document as a filter configuration.
CONFIG_KEYS = frozenset({"from", "exclude", "excludePattern"})


def compile_key_pattern(pattern: str) -> re.Pattern:
    """Compile an exclusion pattern written in key syntax.

    ``|`` is the key separator, not regex alternation, so every pipe is
    escaped before compiling.  Matching ignores case.
    """
    escaped = r"\|".join(pattern.strip().split("|"))
    return re.compile(escaped, re.IGNORECASE)


class FilterConfig(BaseModel):
    """Source selection plus literal and pattern exclusions."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sources: list[str] = Field(default_factory=list, alias="from")
    exclude: list[str] = Field(default_factory=list)
    exclude_pattern: list[str] = Field(default_factory=list, alias="excludePattern")

    @field_validator("sources", mode="before")
    @classmethod
    def _split_sources(cls, value):
        # "PHB,DMG" and ["PHB,DMG"] are both accepted
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            split = []
            for item in value:
                if isinstance(item, str):
                    split.extend(s.strip() for s in item.split(",") if s.strip())
                else:
                    split.append(item)
            return split
        return value

    @field_validator("exclude_pattern")
    @classmethod
    def _check_patterns(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                compile_key_pattern(pattern)
            except re.error as exc:
                raise ValueError(f"invalid exclusion pattern '{pattern}': {exc}") from exc
        return value

    @classmethod
    def is_config_document(cls, document) -> bool:
        """True when a parsed JSON document looks like a filter configuration."""
        return isinstance(document, dict) and bool(CONFIG_KEYS & document.keys())

    def merge(self, other: "FilterConfig") -> "FilterConfig":
        """Return a new configuration holding the entries of both, in order."""
        return FilterConfig(
            sources=_ordered_union(self.sources, other.sources),
            exclude=_ordered_union(self.exclude, other.exclude),
            exclude_pattern=_ordered_union(self.exclude_pattern, other.exclude_pattern),
        )


def _ordered_union(first: list[str], second: list[str]) -> list[str]:
    seen = dict.fromkeys(first)
    seen.update(dict.fromkeys(second))
    return list(seen)
