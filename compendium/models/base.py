"""
compendium/models/base.py -- Value models shared by the engine.

``Record`` wraps one imported JSON object together with the identity
metadata the index needs (type, display name, source).  The payload stays
opaque: document builders read it, the index never interprets it beyond
the identity fields.

``ReferenceTag`` is the parsed form of an inline ``{@category body}``
marker found inside free text.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """One imported corpus record.

    Attributes
    ----------
    type : str
        Category tag, lower-case (``"monster"``, ``"spell"``, ...).
    name : str
        Display name.  For subordinate types this is the qualified name
        used in the canonical key (see :mod:`compendium.keys`).
    source : str
        Source book code exactly as found in the data (``"MM"``).
    data : dict
        The raw JSON object.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    name: str
    source: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        """The human-readable name.

        ``name`` itself, except for pipe-qualified feature names, which
        display the payload's own ``name``.
        """
        value = self.data.get("name")
        if "|" in self.name and isinstance(value, str) and value.strip():
            return value.strip()
        return self.name

    @property
    def srd(self) -> bool:
        """True when the data marks this record as reference-document content."""
        return bool(self.data.get("srd"))

    def get(self, field: str, default: Any = None) -> Any:
        return self.data.get(field, default)


class ReferenceTag(BaseModel):
    """A parsed ``{@category name|source|extra...}`` marker."""

    model_config = ConfigDict(frozen=True)

    category: str
    name: str
    source: Optional[str] = None
    extra: tuple[str, ...] = ()
    raw: str = ""

    @classmethod
    def parse(cls, category: str, body: str, raw: str = "") -> "ReferenceTag":
        """Split a marker body on ``|`` into its segments.

        An empty source segment (``{@creature goblin||goblins}``) counts as
        omitted.
        """
        parts = body.split("|")
        name = parts[0].strip()
        source = parts[1].strip() if len(parts) > 1 and parts[1].strip() else None
        extra = tuple(p.strip() for p in parts[2:])
        return cls(
            category=category.strip().lower(),
            name=name,
            source=source,
            extra=extra,
            raw=raw or f"{{@{category} {body}}}",
        )

    @property
    def alias(self) -> str | None:
        """Alternate display text, the first non-empty extra segment."""
        if self.extra and self.extra[0]:
            return self.extra[0]
        return None
