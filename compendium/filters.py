"""
compendium/filters.py -- Inclusion and exclusion rules.

A record is emitted when its source is selected and its key is not
excluded::

    is_included(record) = selector.matches(record) and not exclusions.matches(key)

The two checks are independent conditions.  A record can be in scope by
source and still be excluded by key; exclusion never removes a record
from the index, only from the emitted set.

Usage:
    from compendium.filters import InclusionFilter

    rules = InclusionFilter.from_config(FilterConfig(sources=["PHB"]))
    rules.is_included(record)
"""

from __future__ import annotations

import logging
import re

from compendium.keys import compute_key
from compendium.models.base import Record
from compendium.models.config import FilterConfig, compile_key_pattern

logger = logging.getLogger(__name__)

WILDCARD = "*"
REFERENCE_SOURCE = "SRD"


class SourceSelector:
    """Either every source (``*``) or an explicit set of source codes.

    An empty selection means the reference document only.  Codes compare
    case-insensitively.  The reference document also matches records
    flagged ``srd`` in the data, whatever book they are printed in.
    """

    def __init__(self, sources=None):
        codes = {s.strip().casefold() for s in (sources or []) if s and s.strip()}
        if "all" in codes:
            codes = {WILDCARD}
        self._universal = WILDCARD in codes
        self._codes = frozenset(codes or {REFERENCE_SOURCE.casefold()})

    @property
    def universal(self) -> bool:
        return self._universal

    @property
    def codes(self) -> frozenset:
        return self._codes

    def matches_source(self, source: str) -> bool:
        if self._universal:
            return True
        return isinstance(source, str) and source.strip().casefold() in self._codes

    def matches(self, record: Record) -> bool:
        if self.matches_source(record.source):
            return True
        return REFERENCE_SOURCE.casefold() in self._codes and record.srd

    def __repr__(self) -> str:
        return f"SourceSelector({sorted(self._codes)})"


class ExclusionSet:
    """Literal keys plus key patterns that leave records out of the output."""

    def __init__(self, keys=(), patterns=()):
        self._keys: set[str] = set()
        self._patterns: list[tuple[str, re.Pattern]] = []
        for key in keys:
            self.add_key(key)
        for pattern in patterns:
            self.add_pattern(pattern)

    def add_key(self, key: str) -> None:
        self._keys.add(key.strip().casefold())

    def add_pattern(self, pattern: str) -> None:
        """Add a pattern in key syntax; raises ``re.error`` if it does not compile."""
        self._patterns.append((pattern, compile_key_pattern(pattern)))

    @property
    def keys(self) -> frozenset:
        return frozenset(self._keys)

    @property
    def patterns(self) -> list[str]:
        return [text for text, _ in self._patterns]

    def reason(self, key: str) -> str | None:
        """Return the rule that excludes *key*, or ``None``.

        Literal keys are checked first, then patterns in the order they
        were added.  Patterns must match the whole key.
        """
        key = key.strip().casefold()
        if key in self._keys:
            return f"exclude: {key}"
        for text, compiled in self._patterns:
            if compiled.fullmatch(key):
                return f"excludePattern: {text}"
        return None

    def matches(self, key: str) -> bool:
        return self.reason(key) is not None

    def __len__(self) -> int:
        return len(self._keys) + len(self._patterns)


class InclusionFilter:
    """Combines a :class:`SourceSelector` and an :class:`ExclusionSet`."""

    def __init__(self, selector: SourceSelector | None = None,
                 exclusions: ExclusionSet | None = None):
        self.selector = selector or SourceSelector()
        self.exclusions = exclusions or ExclusionSet()

    @classmethod
    def from_config(cls, config: FilterConfig) -> "InclusionFilter":
        return cls(
            SourceSelector(config.sources),
            ExclusionSet(config.exclude, config.exclude_pattern),
        )

    def is_excluded(self, key: str) -> bool:
        return self.exclusions.matches(key)

    def is_included(self, record: Record, key: str | None = None) -> bool:
        key = key or compute_key(record)
        if not self.selector.matches(record):
            return False
        reason = self.exclusions.reason(key)
        if reason:
            logger.debug("%s is excluded (%s)", key, reason)
            return False
        return True
