"""
compendium/converter.py -- Hands included records to document builders.

The converter walks :meth:`CorpusIndex.included_entries`, picks the
builder registered for each record type and collects the resulting
:class:`Note` objects for a writer.  Builders and writers live outside
the engine; a plain entries builder and a Markdown file writer are
provided for the command line.

Asking for a type that has no builder is a programming error and raises
:class:`~compendium.errors.UnsupportedTypeError`.

Usage:
    from compendium.converter import Converter, DEFAULT_BUILDERS, write_notes

    notes = Converter(index, DEFAULT_BUILDERS).build(["monster", "spell"])
    write_notes("out", notes)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional

from compendium.errors import IndexStateError, UnsupportedTypeError
from compendium.index_types import IndexType, output_folder_for
from compendium.models.base import Record
from compendium.utils import slugify

logger = logging.getLogger(__name__)


@dataclass
class Note:
    """One rendered document."""
    name: str
    source: str
    text: str
    folder: str = "."
    tags: list[str] = field(default_factory=list)

    @property
    def target_file(self) -> str:
        return f"{slugify(self.name)}.md"


Builder = Callable[..., Optional[Note]]

# Subordinate types emitted together with their parent type
_RIDE_ALONG = {
    IndexType.RACE.value: (IndexType.SUBRACE.value,),
    IndexType.CLASS.value: (IndexType.SUBCLASS.value,),
}


class Converter:
    """Dispatches included records to builders by record type.

    Parameters
    ----------
    index : CorpusIndex
        A prepared index.
    builders : dict
        Record type -> builder callable ``(index, key, record) -> Note``.
    """

    def __init__(self, index, builders: dict[str, Builder]):
        self.index = index
        self.builders = dict(builders)

    def build(self, types) -> list[Note]:
        if self.index.not_prepared():
            raise IndexStateError("Index must be prepared before building documents")

        wanted = set()
        for record_type in types:
            record_type = str(getattr(record_type, "value", record_type)).lower()
            wanted.add(record_type)
            wanted.update(_RIDE_ALONG.get(record_type, ()))

        missing = sorted(t for t in wanted if t not in self.builders)
        if missing:
            raise UnsupportedTypeError(f"Unsupported type(s): {', '.join(missing)}")

        notes = []
        for key, record in self.index.included_entries():
            if record.type not in wanted:
                continue
            note = self.builders[record.type](self.index, key, record)
            if note is not None:
                notes.append(note)
        logger.info("Built %d documents for %s", len(notes), ", ".join(sorted(wanted)))
        return notes


# ---------------------------------------------------------------------------
# Plain entries builder
# ---------------------------------------------------------------------------

def render_entries(index, entries, source: str | None = None) -> list[str]:
    """Flatten a nested ``entries`` array into resolved paragraphs."""
    result: list[str] = []
    for entry in entries or []:
        if isinstance(entry, str):
            result.append(index.replace_text(entry, source))
        elif isinstance(entry, dict):
            entry_type = entry.get("type", "")
            name = entry.get("name", "")
            if entry_type == "list":
                for item in entry.get("items", []):
                    for line in render_entries(index, [item], source):
                        result.append(f"- {line}")
                continue
            if entry_type == "table":
                caption = entry.get("caption", "")
                if caption:
                    result.append(f"[Table: {index.replace_text(caption, source)}]")
                continue
            sub = render_entries(index, entry.get("entries", []), source)
            if name and sub:
                result.append(f"**{index.replace_text(name, source)}.** {sub[0]}")
                result.extend(sub[1:])
            elif name:
                result.append(f"**{index.replace_text(name, source)}.**")
            else:
                result.extend(sub)
    return result


def entries_builder(index, key: str, record: Record) -> Note:
    """Title plus the record's resolved ``entries``."""
    title = index.replace_text(record.display_name, record.source)
    lines = [f"# {title}", "", f"*Source: {record.source}*", ""]
    lines.extend(p + "\n" for p in render_entries(index, record.get("entries"), record.source))
    parent = index.parent(key)
    if parent and index.get_origin(parent) is not None:
        lines.append(f"Part of {index.get_origin(parent).display_name}.")
    return Note(
        name=record.display_name,
        source=record.source,
        text="\n".join(lines).rstrip() + "\n",
        folder=output_folder_for(record.type) or ".",
        tags=[f"compendium/{record.type}", f"source/{record.source.lower()}"],
    )


DEFAULT_BUILDERS: dict[str, Builder] = {
    t: entries_builder for t in (
        IndexType.BACKGROUND.value,
        IndexType.CLASS.value,
        IndexType.SUBCLASS.value,
        IndexType.DEITY.value,
        IndexType.FEAT.value,
        IndexType.ITEM.value,
        IndexType.MONSTER.value,
        IndexType.RACE.value,
        IndexType.SUBRACE.value,
        IndexType.SPELL.value,
    )
}


def write_notes(root, notes: list[Note]) -> int:
    """Write each note to ``root/<folder>/<slug>.md``; returns the count."""
    count = 0
    for note in notes:
        folder = os.path.join(str(root), note.folder)
        os.makedirs(folder, exist_ok=True)
        with open(os.path.join(folder, note.target_file), "w", encoding="utf-8") as fh:
            fh.write(note.text)
        count += 1
    logger.info("Wrote %d files to %s", count, root)
    return count
