"""
compendium/corpus_index.py -- The corpus index.

Owns every imported record, keyed by canonical key, and decides which of
them are emitted.  The index has two phases:

    building   import_file() / import_tree() / configure() may be called
               any number of times; a later record with the same key
               replaces the earlier one.
    prepared   prepare() has run: the included view and the record
               relationships are final and the index is read-only.

Records outside the included view stay resolvable through get_origin(),
because excluded records are still legitimate cross-reference targets.

Relationships between records (a subclass and its class, a subrace and
its race, ...) are resolved once, at prepare() time, into a NetworkX
directed graph.  Edges point from the record holding the reference to
the record it names.

Usage:
    from compendium.corpus_index import CorpusIndex

    index = CorpusIndex(["PHB", "MM"])
    index.import_tree("5etools/data")
    index.prepare()
    for key, record in index.included_entries():
        text = index.replace_text(record.get("entries", [""])[0], record.source)
"""

from __future__ import annotations

import logging
from pathlib import Path

import networkx as nx

from compendium.errors import ImportFailure, IndexStateError
from compendium.filters import InclusionFilter
from compendium.index_types import IndexType
from compendium.importer import RecordImporter, describe_failure
from compendium.keys import SourceRegistry, compute_key, get_data_key, make_key
from compendium.models.base import Record
from compendium.models.config import FilterConfig
from compendium.utils import iter_json_files, safe_write_json

logger = logging.getLogger(__name__)

# Relations that make the referring record subordinate to its target
PARENT_RELATIONS = frozenset({"subclass_of", "subrace_of", "feature_of"})


class CorpusIndex:
    """Canonical-key store for the whole corpus.

    Parameters
    ----------
    sources : iterable of str, optional
        Source codes to emit.  ``"*"`` (or ``"ALL"``) selects every
        source; an empty selection means the reference document only.
    config : FilterConfig, optional
        Additional exclusion rules.
    """

    def __init__(self, sources=None, config: FilterConfig | None = None):
        self._records: dict[str, Record] = {}
        self.known_sources = SourceRegistry()
        self._importer = RecordImporter(self.known_sources)

        self._config = FilterConfig(sources=list(sources or []))
        if config is not None:
            self._config = self._config.merge(config)
        self._filter: InclusionFilter | None = None

        self.import_failures: list[ImportFailure] = []
        self.graph: nx.DiGraph = nx.DiGraph()

        self._prepared = False
        self._included: tuple[tuple[str, Record], ...] = ()
        self._included_keys: frozenset[str] = frozenset()
        self._resolver = None

    # ------------------------------------------------------------------
    # Building phase
    # ------------------------------------------------------------------

    def configure(self, config: FilterConfig) -> "CorpusIndex":
        """Merge more sources and exclusion rules into the filter."""
        self._require_building("configure")
        self._config = self._config.merge(config)
        self._filter = None
        return self

    def import_file(self, path) -> "CorpusIndex":
        """Import one JSON file.

        A file that cannot be read or parsed is recorded in
        :attr:`import_failures` and skipped; the index stays usable.
        """
        self._require_building("import_file")
        try:
            batch = self._importer.load_file(path)
        except (OSError, ValueError) as exc:
            reason = describe_failure(exc)
            logger.error("Unable to import %s: %s", path, reason)
            self.import_failures.append(ImportFailure(str(path), reason))
            return self

        if batch.config is not None:
            self.configure(batch.config)
        for record in batch.records:
            self.add_record(record)
        return self

    def import_tree(self, path) -> "CorpusIndex":
        """Import every JSON file below *path* (or *path* itself if a file)."""
        self._require_building("import_tree")
        path = Path(path)
        if path.is_file():
            return self.import_file(path)
        if not path.is_dir():
            reason = "no such file or directory"
            logger.error("Unable to import %s: %s", path, reason)
            self.import_failures.append(ImportFailure(str(path), reason))
            return self
        for json_path in iter_json_files(path):
            self.import_file(json_path)
        return self

    def add_record(self, record: Record) -> str:
        """Store *record* under its canonical key and return the key."""
        self._require_building("add_record")
        key = compute_key(record)
        if key in self._records:
            logger.debug("%s redefined; keeping the later record", key)
        self._records[key] = record
        self.known_sources.add(record.source)
        return key

    # ------------------------------------------------------------------
    # Prepare
    # ------------------------------------------------------------------

    def prepare(self) -> "CorpusIndex":
        """Finalize the index.

        Freezes the index, computes the included view and resolves record
        relationships.  May only be called once.
        """
        self._require_building("prepare")
        self._prepared = True

        rules = self.filter
        included = []
        for key, record in self._records.items():
            if rules.is_included(record, key):
                included.append((key, record))
        self._included = tuple(included)
        self._included_keys = frozenset(k for k, _ in included)

        self._build_relationships()
        logger.info(
            "Index prepared: %d records, %d included, %d relationships, %d sources",
            len(self._records), len(self._included),
            self.graph.number_of_edges(), len(self.known_sources),
        )
        return self

    def not_prepared(self) -> bool:
        return not self._prepared

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def filter(self) -> InclusionFilter:
        """The inclusion filter built from the accumulated configuration."""
        if self._filter is None:
            self._filter = InclusionFilter.from_config(self._config)
        return self._filter

    @property
    def config(self) -> FilterConfig:
        return self._config

    @property
    def all_ok(self) -> bool:
        """False if any input failed to import."""
        return not self.import_failures

    def included_entries(self) -> tuple[tuple[str, Record], ...]:
        """The emitted ``(key, record)`` pairs in insertion order.

        The result is a materialized tuple, so any number of consumers can
        iterate it independently.
        """
        self._require_prepared("included_entries")
        return self._included

    def is_included(self, key: str) -> bool:
        self._require_prepared("is_included")
        return _normalize(key) in self._included_keys

    def get_origin(self, key: str) -> Record | None:
        """Return the record stored under *key*, included or not."""
        return self._records.get(_normalize(key))

    def is_excluded(self, key: str) -> bool:
        """True if an exclusion rule matches *key* (source selection ignored)."""
        return self.filter.is_excluded(_normalize(key))

    def get_data_key(self, raw_reference: str, default_source: str | None = None) -> str:
        return get_data_key(raw_reference, default_source)

    def keys(self):
        return self._records.keys()

    def __contains__(self, key) -> bool:
        return isinstance(key, str) and _normalize(key) in self._records

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def parent(self, key: str) -> str | None:
        """The key a subordinate record belongs to, e.g. a subclass's class."""
        self._require_prepared("parent")
        key = _normalize(key)
        if key not in self.graph:
            return None
        for _, target, relation in self.graph.out_edges(key, data="relation"):
            if relation in PARENT_RELATIONS:
                return target
        return None

    def children(self, key: str, relation: str | None = None,
                 included_only: bool = False) -> list[str]:
        """Keys of the records that refer to *key*, in insertion order."""
        self._require_prepared("children")
        key = _normalize(key)
        if key not in self.graph:
            return []
        result = []
        for source_key, _, rel in self.graph.in_edges(key, data="relation"):
            if relation is not None and rel != relation:
                continue
            if relation is None and rel not in PARENT_RELATIONS:
                continue
            if included_only and source_key not in self._included_keys:
                continue
            result.append(source_key)
        return result

    def related(self, key: str, relation: str) -> str | None:
        """The target of *key*'s outgoing *relation* edge, if resolved."""
        self._require_prepared("related")
        key = _normalize(key)
        if key not in self.graph:
            return None
        for _, target, rel in self.graph.out_edges(key, data="relation"):
            if rel == relation:
                return target
        return None

    def _build_relationships(self) -> None:
        self.graph.clear()
        self.graph.add_nodes_from(
            (key, {"type": record.type}) for key, record in self._records.items()
        )

        # subclass features name their subclass by short name
        subclass_by_short = {}
        for key, record in self._records.items():
            if record.type == IndexType.SUBCLASS.value:
                short = record.get("shortName") or record.display_name
                subclass_by_short[(
                    _lower(record.get("className")),
                    _lower(record.get("classSource") or record.source),
                    _lower(short),
                    _lower(record.source),
                )] = key

        dangling = 0
        for key, record in self._records.items():
            for target, relation in self._references_of(record, subclass_by_short):
                if target is None:
                    continue
                if target in self._records:
                    self.graph.add_edge(key, target, relation=relation)
                else:
                    dangling += 1
                    logger.debug("%s: %s target %s is not in the corpus", key, relation, target)
        if dangling:
            logger.info("%d relationships point outside the corpus", dangling)

    @staticmethod
    def _references_of(record: Record, subclass_by_short: dict):
        """Yield ``(target_key, relation)`` pairs for one record."""
        rtype = record.type
        data = record.data

        if rtype == IndexType.SUBCLASS.value and data.get("className"):
            yield make_key(
                IndexType.CLASS.value, data["className"], data.get("classSource") or record.source,
            ), "subclass_of"

        elif rtype == IndexType.SUBRACE.value and data.get("raceName"):
            yield make_key(
                IndexType.RACE.value, data["raceName"], data.get("raceSource") or record.source,
            ), "subrace_of"

        elif rtype == IndexType.CLASSFEATURE.value and data.get("className"):
            yield make_key(
                IndexType.CLASS.value, data["className"], data.get("classSource") or record.source,
            ), "feature_of"

        elif rtype == IndexType.SUBCLASSFEATURE.value and data.get("className"):
            yield subclass_by_short.get((
                _lower(data.get("className")),
                _lower(data.get("classSource") or record.source),
                _lower(data.get("subclassShortName")),
                _lower(data.get("subclassSource") or record.source),
            )), "feature_of"

        elif rtype == IndexType.MONSTER.value:
            group = data.get("legendaryGroup")
            if isinstance(group, dict) and group.get("name"):
                yield make_key(
                    IndexType.LEGENDARYGROUP.value, group["name"], group.get("source") or record.source,
                ), "legendary_group"

        elif rtype == IndexType.ITEM.value:
            base = data.get("baseItem")
            if isinstance(base, str) and base.strip():
                yield get_data_key(f"{IndexType.BASEITEM.value}|{base}"), "base_item"

    # ------------------------------------------------------------------
    # Text resolution
    # ------------------------------------------------------------------

    @property
    def resolver(self):
        """The :class:`~compendium.text_resolver.TextResolver` bound to this index."""
        if self._resolver is None:
            from compendium.text_resolver import TextResolver
            self._resolver = TextResolver(self)
        return self._resolver

    def replace_text(self, text: str, source: str | None = None) -> str:
        """Resolve every reference marker in *text*; see :class:`TextResolver`."""
        return self.resolver.replace_text(text, source)

    # ------------------------------------------------------------------
    # Index export
    # ------------------------------------------------------------------

    def write_index(self, path) -> None:
        """Write every known canonical key, sorted, as a JSON array."""
        self._require_prepared("write_index")
        safe_write_json(path, sorted(self._records))
        logger.info("Wrote %d keys to %s", len(self._records), path)

    def write_source_index(self, path) -> None:
        """Write a JSON object mapping every canonical key to its source code."""
        self._require_prepared("write_source_index")
        mapping = {key: self._records[key].source for key in sorted(self._records)}
        safe_write_json(path, mapping)
        logger.info("Wrote source index (%d keys) to %s", len(mapping), path)

    # ------------------------------------------------------------------
    # Lifecycle guards
    # ------------------------------------------------------------------

    def _require_prepared(self, operation: str) -> None:
        if not self._prepared:
            raise IndexStateError(
                f"{operation}() needs a prepared index; call prepare() first"
            )

    def _require_building(self, operation: str) -> None:
        if self._prepared:
            raise IndexStateError(
                f"{operation}() is not allowed after prepare(); the index is read-only"
            )


def _normalize(key: str) -> str:
    return key.strip().casefold()


def _lower(value) -> str:
    return str(value or "").strip().casefold()
