"""
compendium/importer.py -- Turns JSON data files into typed records.

A data file is a JSON object whose top-level keys name categories and
whose values are arrays of elements::

    {
      "_meta": {"sources": [{"json": "HBX", "full": "Homebrew Extras"}]},
      "monster": [{"name": "Goblin", "source": "MM", ...}],
      "spell": [{"name": "Fireball", "source": "PHB", ...}]
    }

Each named element becomes one :class:`~compendium.models.base.Record`
whose type is the container key.  Elements without a ``source`` inherit
the file's book-level default (the first ``_meta.sources`` entry).
Elements without a name and non-array sections are auxiliary and skipped.

A file carrying ``from`` / ``exclude`` / ``excludePattern`` is a filter
configuration instead and is returned as a
:class:`~compendium.models.config.FilterConfig`.

Usage:
    from compendium.importer import RecordImporter

    importer = RecordImporter()
    batch = importer.load_file("data/bestiary/bestiary-mm.json")
    for record in batch.records:
        ...
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import jsonschema
from pydantic import ValidationError

from compendium.index_types import IndexType
from compendium.keys import SourceRegistry, identity_name
from compendium.models.base import Record
from compendium.models.config import FilterConfig
from compendium.utils import read_json

logger = logging.getLogger(__name__)

# Shape checks only; element contents stay opaque
DATA_FILE_SCHEMA = {
    "type": "object",
    "properties": {
        "_meta": {
            "type": "object",
            "properties": {
                "sources": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {"json": {"type": "string"}},
                    },
                },
            },
        },
    },
}

# Sections that never hold records
_SKIPPED_SECTIONS = frozenset({"_meta", "$schema"})


@dataclass
class ImportBatch:
    """Everything read from one file."""
    path: str
    records: list[Record] = field(default_factory=list)
    config: FilterConfig | None = None
    skipped: int = 0


class RecordImporter:
    """Reads data files into :class:`ImportBatch` objects.

    Parameters
    ----------
    sources : SourceRegistry, optional
        Registry that collects every source code seen.  A fresh one is
        created when omitted.
    """

    def __init__(self, sources: SourceRegistry | None = None):
        self.sources = sources if sources is not None else SourceRegistry()
        self._validator = jsonschema.Draft202012Validator(DATA_FILE_SCHEMA)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_file(self, path) -> ImportBatch:
        """Parse one JSON file.

        Raises
        ------
        OSError
            The file cannot be read.
        ValueError
            The file is not valid JSON, has the wrong shape, or is an
            invalid filter configuration.
        """
        path = Path(path)
        document = read_json(path)
        if FilterConfig.is_config_document(document):
            return ImportBatch(path=str(path), config=self._load_config(document, path))
        self._check_shape(document, path)
        return self.load_document(document, origin=str(path))

    def load_document(self, document: dict, origin: str = "<memory>") -> ImportBatch:
        """Build records from an already parsed data document."""
        batch = ImportBatch(path=origin)
        book_source = self._book_source(document)

        for section, value in document.items():
            if section in _SKIPPED_SECTIONS:
                continue
            if not isinstance(value, list):
                logger.debug("%s: skipping auxiliary section '%s'", origin, section)
                continue
            record_type = section.strip().lower()
            for element in value:
                for record in self._records_for(record_type, element, book_source, origin):
                    if record is None:
                        batch.skipped += 1
                    else:
                        batch.records.append(record)

        logger.info("%s: %d records (%d skipped)", origin, len(batch.records), batch.skipped)
        return batch

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_shape(self, document, path: Path) -> None:
        errors = list(self._validator.iter_errors(document))
        if errors:
            raise ValueError(
                f"{path} is not a data file: " + "; ".join(_humanize_error(e) for e in errors)
            )

    @staticmethod
    def _load_config(document: dict, path: Path) -> FilterConfig:
        try:
            config = FilterConfig.model_validate(document)
        except ValidationError as exc:
            raise ValueError(f"{path} has an invalid filter configuration: {exc}") from exc
        logger.info(
            "%s: filter configuration (%d sources, %d exclusions, %d patterns)",
            path, len(config.sources), len(config.exclude), len(config.exclude_pattern),
        )
        return config

    def _book_source(self, document: dict) -> str | None:
        """Register ``_meta.sources`` and return the first one as the default."""
        default = None
        for entry in document.get("_meta", {}).get("sources", []):
            code = entry.get("json")
            if code:
                self.sources.add(code)
                default = default or code
        top_level = document.get("source")
        if default is None and isinstance(top_level, str) and top_level:
            default = top_level
        return default

    def _records_for(self, record_type: str, element, book_source, origin):
        """Yield the record(s) an element produces; ``None`` marks a skip."""
        if not isinstance(element, dict):
            yield None
            return

        record = self._make_record(record_type, element, book_source, origin)
        yield record

        # Older race files nest their subraces
        if record is not None and record_type == IndexType.RACE.value:
            for sub in element.get("subraces", []) or []:
                if not isinstance(sub, dict):
                    continue
                sub = dict(sub)
                sub.setdefault("raceName", record.display_name)
                sub.setdefault("raceSource", record.source)
                yield self._make_record(IndexType.SUBRACE.value, sub, record.source, origin)

    def _make_record(self, record_type, element, book_source, origin) -> Record | None:
        name = identity_name(record_type, element)
        if not name:
            logger.debug("%s: %s element without a name", origin, record_type)
            return None

        source = element.get("source")
        if not isinstance(source, str) or not source.strip():
            source = book_source
            if not source:
                logger.warning("%s: %s '%s' has no source; skipped", origin, record_type, name)
                return None
            element = {**element, "source": source}

        self.sources.add(source)
        return Record(type=record_type, name=name, source=source, data=element)


def _humanize_error(error) -> str:
    """Convert a ``jsonschema.ValidationError`` into plain English."""
    path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "(root)"
    if error.validator == "type":
        return f"wrong data type at '{path}': {error.message}"
    return f"issue at '{path}': {error.message}"


def describe_failure(exc: BaseException) -> str:
    """One-line reason for an import failure."""
    if isinstance(exc, json.JSONDecodeError):
        return f"invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}"
    return str(exc) or exc.__class__.__name__
