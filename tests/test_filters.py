"""
Tests for compendium/filters.py and compendium/models/config.py.

Validates:
    - SourceSelector defaults, wildcard and case handling
    - ExclusionSet literal keys and anchored key patterns
    - InclusionFilter combining both conditions
    - FilterConfig parsing, validation and merging
"""

import pytest
from pydantic import ValidationError

from compendium.filters import ExclusionSet, InclusionFilter, SourceSelector
from compendium.keys import compute_key
from compendium.models.base import Record
from compendium.models.config import FilterConfig, compile_key_pattern


def _record(record_type, name, source, **data):
    return Record(type=record_type, name=name, source=source, data={"name": name, **data})


# ---------------------------------------------------------------------------
# SourceSelector
# ---------------------------------------------------------------------------

class TestSourceSelector:
    """Tests for SourceSelector."""

    def test_default_is_reference_document(self):
        """An empty selection matches only SRD content."""
        selector = SourceSelector()
        assert selector.codes == frozenset({"srd"})
        assert not selector.universal
        assert not selector.matches(_record("spell", "Shield", "PHB"))

    def test_srd_flag_matches_default_selection(self):
        """Records flagged srd are reference-document content."""
        selector = SourceSelector([])
        assert selector.matches(_record("spell", "Fireball", "PHB", srd=True))

    def test_srd_flag_ignored_for_explicit_sources(self):
        selector = SourceSelector(["MM"])
        assert not selector.matches(_record("spell", "Fireball", "PHB", srd=True))

    def test_wildcard(self):
        selector = SourceSelector(["*"])
        assert selector.universal
        assert selector.matches(_record("monster", "Goblin", "HBX"))

    def test_all_keyword_is_wildcard(self):
        assert SourceSelector(["ALL"]).universal
        assert SourceSelector(["all", "PHB"]).universal

    def test_case_insensitive(self):
        """PHB and phb select the same records."""
        upper = SourceSelector(["PHB"])
        lower = SourceSelector(["phb"])
        record = _record("background", "Sage", "Phb")
        assert upper.matches(record)
        assert lower.matches(record)

    def test_blank_codes_ignored(self):
        assert SourceSelector(["", "  "]).codes == frozenset({"srd"})


# ---------------------------------------------------------------------------
# ExclusionSet
# ---------------------------------------------------------------------------

class TestExclusionSet:
    """Tests for ExclusionSet literal keys and patterns."""

    def test_literal_key(self):
        exclusions = ExclusionSet(keys=["Background|Sage|PHB"])
        assert exclusions.matches("background|sage|phb")
        assert not exclusions.matches("background|acolyte|phb")

    def test_pattern_matches_whole_key(self):
        exclusions = ExclusionSet(patterns=["race|.*|dmg"])
        assert exclusions.matches("race|aasimar|dmg")
        assert not exclusions.matches("race|elf|phb")
        assert not exclusions.matches("subrace|aasimar|dmg")

    def test_pipe_is_not_alternation(self):
        """Without escaping, 'race|.*|dmg' would match any key at all."""
        exclusions = ExclusionSet(patterns=["race|.*|dmg"])
        assert not exclusions.matches("race")
        assert not exclusions.matches("spell|fireball|phb")

    def test_pattern_ignores_case(self):
        exclusions = ExclusionSet(patterns=["spell|fire.*|PHB"])
        assert exclusions.matches("Spell|Fireball|phb")

    def test_literal_reason_reported_first(self):
        exclusions = ExclusionSet(keys=["race|aasimar|dmg"], patterns=["race|.*|dmg"])
        assert exclusions.reason("race|aasimar|dmg") == "exclude: race|aasimar|dmg"
        assert exclusions.reason("race|genasi|dmg") == "excludePattern: race|.*|dmg"
        assert exclusions.reason("race|elf|phb") is None

    def test_len_and_accessors(self):
        exclusions = ExclusionSet(keys=["a|b|c"], patterns=["x|.*|y"])
        assert len(exclusions) == 2
        assert exclusions.keys == frozenset({"a|b|c"})
        assert exclusions.patterns == ["x|.*|y"]

    def test_compile_key_pattern_escapes_pipes(self):
        compiled = compile_key_pattern("monster|goblin.*|mm")
        assert compiled.pattern == r"monster\|goblin.*\|mm"


# ---------------------------------------------------------------------------
# InclusionFilter
# ---------------------------------------------------------------------------

class TestInclusionFilter:
    """Tests for InclusionFilter."""

    def test_selected_and_not_excluded(self):
        rules = InclusionFilter(SourceSelector(["PHB"]), ExclusionSet(keys=["background|sage|phb"]))
        assert rules.is_included(_record("background", "Acolyte", "PHB"))
        assert not rules.is_included(_record("background", "Sage", "PHB"))

    def test_unselected_source_never_included(self):
        """No exclusion configuration can bring in an unselected source."""
        records = [
            _record("monster", "Goblin", "MM"),
            _record("spell", "Toll the Dead", "XGE"),
            _record("race", "Aasimar", "DMG"),
        ]
        for exclusions in (ExclusionSet(), ExclusionSet(keys=["monster|goblin|mm"]),
                           ExclusionSet(patterns=[".*"])):
            rules = InclusionFilter(SourceSelector(["PHB"]), exclusions)
            assert not any(rules.is_included(r) for r in records)

    def test_excluded_independent_of_source(self):
        rules = InclusionFilter(SourceSelector(["MM"]), ExclusionSet(keys=["background|sage|phb"]))
        assert rules.is_excluded("background|sage|phb")
        assert not rules.is_included(_record("background", "Sage", "PHB"))

    def test_precomputed_key_is_used(self):
        record = _record("monster", "Goblin", "MM")
        rules = InclusionFilter(SourceSelector(["MM"]), ExclusionSet(keys=[compute_key(record)]))
        assert not rules.is_included(record, compute_key(record))

    def test_from_config(self):
        config = FilterConfig(sources=["PHB"], exclude_pattern=["race|.*|dmg"])
        rules = InclusionFilter.from_config(config)
        assert rules.is_included(_record("race", "Elf", "PHB"))
        assert not rules.is_included(_record("race", "Aasimar", "DMG"))


# ---------------------------------------------------------------------------
# FilterConfig
# ---------------------------------------------------------------------------

class TestFilterConfig:
    """Tests for the FilterConfig pydantic model."""

    def test_json_aliases(self):
        config = FilterConfig.model_validate({
            "from": ["PHB", "DMG"],
            "exclude": ["background|sage|phb"],
            "excludePattern": ["race|.*|dmg"],
        })
        assert config.sources == ["PHB", "DMG"]
        assert config.exclude == ["background|sage|phb"]
        assert config.exclude_pattern == ["race|.*|dmg"]

    def test_comma_separated_sources(self):
        assert FilterConfig(sources="PHB, DMG").sources == ["PHB", "DMG"]
        assert FilterConfig(sources=["PHB,DMG", "MM"]).sources == ["PHB", "DMG", "MM"]

    def test_unknown_keys_ignored(self):
        config = FilterConfig.model_validate({"from": ["PHB"], "paths": {"x": "y"}})
        assert config.sources == ["PHB"]

    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValidationError):
            FilterConfig(exclude_pattern=["race|(unclosed"])

    def test_is_config_document(self):
        assert FilterConfig.is_config_document({"exclude": []})
        assert not FilterConfig.is_config_document({"monster": []})
        assert not FilterConfig.is_config_document(["exclude"])

    def test_merge_keeps_order_without_duplicates(self):
        first = FilterConfig(sources=["PHB"], exclude=["a|b|c"])
        second = FilterConfig(sources=["MM", "PHB"], exclude=["d|e|f"], exclude_pattern=["x|.*|y"])
        merged = first.merge(second)
        assert merged.sources == ["PHB", "MM"]
        assert merged.exclude == ["a|b|c", "d|e|f"]
        assert merged.exclude_pattern == ["x|.*|y"]
