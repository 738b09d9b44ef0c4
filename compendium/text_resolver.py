"""
compendium/text_resolver.py -- Inline reference resolution.

Free-text fields embed markers such as::

    "The {@creature goblin|MM|goblins} cast {@spell fireball}."
    "{@atk mw} {@hit 4} to hit. {@h}5 ({@damage 1d6 + 2}) slashing damage."

Record markers (``creature``, ``spell``, ``condition``, ...) are looked up
in the corpus index with :meth:`CorpusIndex.get_origin`, so records that
are not emitted still resolve.  A found record renders as a Markdown link
when its document is emitted and as plain text otherwise.  A missing
record renders as the marker's own display name and is recorded as a
:class:`~compendium.errors.Diagnostic`; it never fails the conversion.

Formatting markers (``b``, ``dc``, ``hit``, ``dice``, ...) render without
any lookup.

Markers nest (``{@b {@spell shield}}``); the innermost ones are replaced
first and the text is rescanned until no marker remains, which also makes
:meth:`TextResolver.replace_text` idempotent.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator

from compendium.errors import Diagnostic
from compendium.index_types import (
    IndexType,
    default_source_for,
    is_reference_category,
    output_folder_for,
    type_for_tag,
)
from compendium.keys import get_data_key
from compendium.models.base import Record, ReferenceTag
from compendium.utils import slugify

logger = logging.getLogger(__name__)

# Innermost marker: no braces inside the body
TAG_RE = re.compile(r"\{@(\w+)(?:\s+([^{}]*?))?\s*\}")

# Types that share a tag with another type
_ALTERNATE_TYPES: dict[str, tuple[str, ...]] = {
    IndexType.RACE.value: (IndexType.SUBRACE.value,),
    IndexType.ITEM.value: (IndexType.BASEITEM.value,),
    IndexType.TRAP.value: (IndexType.HAZARD.value,),
    IndexType.HAZARD.value: (IndexType.TRAP.value,),
}

# Tags whose body segments are a qualified identity, not name|source|alias
_QUALIFIED_TYPES = frozenset({
    IndexType.CLASSFEATURE.value,
    IndexType.SUBCLASSFEATURE.value,
})


def iter_reference_tags(text: str) -> Iterator[ReferenceTag]:
    """Yield a :class:`ReferenceTag` for each innermost marker in *text*.

    A fresh generator is returned on every call, so the scan can be
    restarted at will.
    """
    for match in TAG_RE.finditer(text or ""):
        yield ReferenceTag.parse(match.group(1), match.group(2) or "", match.group(0))


# ---------------------------------------------------------------------------
# Formatting tags
# ---------------------------------------------------------------------------

def _segments(body: str) -> list[str]:
    return [p.strip() for p in body.split("|")]


def _first(body: str) -> str:
    return _segments(body)[0]


def _signed(body: str) -> str:
    value = _first(body)
    return value if value[:1] in "+-" else f"+{value}"


def _dice(body: str) -> str:
    parts = _segments(body)
    # {@dice 1d20+2|display text}
    return parts[1] if len(parts) > 1 and parts[1] else parts[0]


def _scaled(body: str) -> str:
    # {@scaledice 2d6|3-9|1d6}: the increment is the visible part
    return _segments(body)[-1]


def _chance(body: str) -> str:
    parts = _segments(body)
    if len(parts) > 1 and parts[1]:
        return parts[1]
    return f"{parts[0]} percent"


def _recharge(body: str) -> str:
    value = _first(body)
    if not value or value == "6":
        return "(Recharge 6)"
    return f"(Recharge {value}-6)"


_ATTACKS = {
    "mw": "Melee Weapon Attack:",
    "rw": "Ranged Weapon Attack:",
    "mw,rw": "Melee or Ranged Weapon Attack:",
    "ms": "Melee Spell Attack:",
    "rs": "Ranged Spell Attack:",
    "ms,rs": "Melee or Ranged Spell Attack:",
}


def _attack(body: str) -> str:
    kind = _first(body).replace(" ", "").lower()
    return _ATTACKS.get(kind, "Attack:")


def _link(body: str) -> str:
    parts = _segments(body)
    if len(parts) > 1 and parts[1]:
        return f"[{parts[0]}]({parts[1]})"
    return parts[0]


_FORMATTERS = {
    "b": lambda body: f"**{_first(body)}**",
    "bold": lambda body: f"**{_first(body)}**",
    "i": lambda body: f"*{_first(body)}*",
    "italic": lambda body: f"*{_first(body)}*",
    "s": lambda body: f"~~{_first(body)}~~",
    "strike": lambda body: f"~~{_first(body)}~~",
    "u": _first,
    "underline": _first,
    "code": lambda body: f"`{_first(body)}`",
    "note": _first,
    "dc": lambda body: f"DC {_first(body)}",
    "hit": _signed,
    "d20": _signed,
    "dice": _dice,
    "damage": _first,
    "scaledice": _scaled,
    "scaledamage": _scaled,
    "chance": _chance,
    "recharge": _recharge,
    "atk": _attack,
    "h": lambda body: "Hit: ",
    "filter": _first,
    "book": _first,
    "adventure": _first,
    "5etools": _first,
    "link": _link,
}


# ---------------------------------------------------------------------------
# TextResolver
# ---------------------------------------------------------------------------

class TextResolver:
    """Rewrites reference markers using a :class:`CorpusIndex`.

    Parameters
    ----------
    index : CorpusIndex
        The index used for lookups.  Links are produced only once it has
        been prepared (the included view decides what is emitted).
    """

    def __init__(self, index):
        self.index = index
        self.diagnostics: list[Diagnostic] = []
        self._reported: set[str] = set()

    @property
    def unresolved_keys(self) -> list[str]:
        return sorted({d.key for d in self.diagnostics})

    def replace_text(self, raw: str, source: str | None = None) -> str:
        """Return *raw* with every marker replaced.

        Parameters
        ----------
        raw : str
            Text that may contain ``{@...}`` markers.
        source : str, optional
            Source of the record the text belongs to; references that name
            no source try it first.
        """
        if not raw:
            return raw or ""
        text = raw
        # replacements never contain braces, so every effective pass
        # removes at least one "{"
        for _ in range(text.count("{") + 1):
            replaced = TAG_RE.sub(lambda m: self._render(m, source), text)
            if replaced == text:
                break
            text = replaced
        return text

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, tag: ReferenceTag, source: str | None = None) -> tuple[str, Record | None]:
        """Find the record a tag points at.

        Returns ``(key, record)``; on a miss ``record`` is ``None`` and
        ``key`` is the first key that was tried.
        """
        record_type = type_for_tag(tag.category)
        body = "|".join([tag.name, tag.source or "", *tag.extra])
        # an explicit source in the tag wins over both defaults; with neither
        # default, each candidate type is still tried once
        defaults = list(dict.fromkeys(
            d for d in (source, default_source_for(record_type)) if d
        )) or [None]

        first_key = None
        for candidate_type in (record_type, *_ALTERNATE_TYPES.get(record_type, ())):
            for default in defaults:
                key = get_data_key(f"{candidate_type}|{body}", default)
                first_key = first_key or key
                record = self.index.get_origin(key)
                if record is not None:
                    return key, record
        return first_key, None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render(self, match: re.Match, source: str | None) -> str:
        category = match.group(1).lower()
        body = match.group(2) or ""

        formatter = _FORMATTERS.get(category)
        if formatter is not None:
            return formatter(body)

        if not is_reference_category(category):
            logger.debug("Unknown tag %s; keeping its text", match.group(0))
            return _first(body)

        tag = ReferenceTag.parse(category, body, match.group(0))
        if not tag.name:
            return ""
        return self._render_reference(tag, source)

    def _render_reference(self, tag: ReferenceTag, source: str | None) -> str:
        record_type = type_for_tag(tag.category)
        alias = None if record_type in _QUALIFIED_TYPES else tag.alias
        key, record = self.lookup(tag, source)

        if record is None:
            display = alias or tag.name
            self._report_miss(key, display, tag)
            return display

        display = alias or record.display_name
        folder = output_folder_for(record.type)
        if folder and not self.index.not_prepared() and self.index.is_included(key):
            return f"[{display}]({folder}/{slugify(record.display_name)}.md)"
        return display

    def _report_miss(self, key: str, display: str, tag: ReferenceTag) -> None:
        message = f"Unresolved reference {tag.raw} ({key})"
        self.diagnostics.append(Diagnostic(key=key, display=display, message=message))
        if key in self._reported:
            logger.debug(message)
        else:
            self._reported.add(key)
            logger.warning(message)
