"""
compendium/keys.py -- Canonical keys and known sources.

Every record is addressed by one canonical key, ``type|name|source``,
case-folded and trimmed.  Cross-reference tokens found in text are parsed
into the same form by :func:`get_data_key`, so a stored key and a
reference to it always compare equal.

Class features and subclass features reuse names across classes and
levels ("Ability Score Improvement" appears at several levels of every
class).  Their identity name is qualified with the owning class, subclass
and level, using the same pipe layout as their reference tags::

    classfeature|extra attack|fighter|phb|5|phb
    subclassfeature|improved critical|fighter|phb|champion|phb|7|phb
"""

from __future__ import annotations

import logging

from compendium.index_types import IndexType, default_source_for, type_for_tag
from compendium.models.base import Record

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


def make_key(record_type: str, name: str, source: str) -> str:
    """Join and normalize identity parts into a canonical key."""
    return KEY_SEPARATOR.join(
        part.strip().casefold() for part in (record_type, name, source)
    )


def compute_key(record: Record) -> str:
    """Return the canonical key of *record*.

    A pure function of ``(record.type, record.name, record.source)``.
    """
    return make_key(record.type, record.name, record.source)


def identity_name(record_type: str, data: dict) -> str | None:
    """Return the name that identifies a raw element of *record_type*.

    Plain records use their ``name`` field.  Subraces are named after their
    race (``"Elf (High)"``); features are qualified as described in the
    module docstring.  Returns ``None`` when the element has no usable name.
    """
    name = data.get("name")
    name = name.strip() if isinstance(name, str) else ""

    if record_type == IndexType.SUBRACE.value:
        race = str(data.get("raceName") or "").strip()
        if race and name:
            return f"{race} ({name})"
        return race or name or None

    if not name:
        return None

    if record_type == IndexType.CLASSFEATURE.value:
        return KEY_SEPARATOR.join([
            name,
            str(data.get("className", "")),
            str(data.get("classSource", "")),
            str(data.get("level", "")),
        ])
    if record_type == IndexType.SUBCLASSFEATURE.value:
        return KEY_SEPARATOR.join([
            name,
            str(data.get("className", "")),
            str(data.get("classSource", "")),
            str(data.get("subclassShortName", "")),
            str(data.get("subclassSource", "")),
            str(data.get("level", "")),
        ])
    return name


# Number of name segments (before the trailing source) per qualified type
_QUALIFIED_SEGMENTS = {
    IndexType.CLASSFEATURE.value: 4,
    IndexType.SUBCLASSFEATURE.value: 6,
}


def get_data_key(raw_reference: str, default_source: str | None = None) -> str:
    """Parse a ``category|name[|source]`` token into a canonical key.

    The category may be a tag name (``creature``) or a record type
    (``monster``).  When the token carries no source, *default_source* is
    used, then the category's conventional source.

    Examples::

        get_data_key("creature|Goblin|MM")        -> "monster|goblin|mm"
        get_data_key("spell|Fireball", "XGE")     -> "spell|fireball|xge"
        get_data_key("spell|Fireball")            -> "spell|fireball|phb"
    """
    parts = [p.strip() for p in raw_reference.split(KEY_SEPARATOR)]
    if len(parts) < 2 or not parts[1]:
        raise ValueError(f"Reference '{raw_reference}' has no name segment")
    record_type = type_for_tag(parts[0])
    segments = _QUALIFIED_SEGMENTS.get(record_type, 1)

    name_parts = parts[1:1 + segments]
    rest = parts[1 + segments:]
    source = rest[0] if rest and rest[0] else None
    if source is None:
        source = default_source or default_source_for(record_type) or ""
    # Qualified names default their class source the same way
    name_parts = [p or source for p in name_parts]
    return make_key(record_type, KEY_SEPARATOR.join(name_parts), source)


# ---------------------------------------------------------------------------
# Known sources
# ---------------------------------------------------------------------------

class SourceRegistry:
    """The set of source-book codes seen while importing.

    Membership is case-insensitive; the first spelling seen is kept for
    display.
    """

    def __init__(self):
        self._codes: dict[str, str] = {}

    def add(self, code: str) -> None:
        if not isinstance(code, str) or not code.strip():
            return
        self._codes.setdefault(code.strip().casefold(), code.strip())

    def __contains__(self, code) -> bool:
        return isinstance(code, str) and code.strip().casefold() in self._codes

    def __len__(self) -> int:
        return len(self._codes)

    def __iter__(self):
        return iter(sorted(self._codes.values(), key=str.lower))
