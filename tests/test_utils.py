"""
Tests for compendium/utils.py -- JSON helpers, file discovery, slugs.
"""

import json

import pytest

from compendium.utils import iter_json_files, read_json, safe_write_json, slugify


class TestJsonIO:
    """Tests for read_json and safe_write_json."""

    def test_round_trip_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b" / "index.json"
        safe_write_json(target, ["monster|goblin|mm"])
        assert read_json(target) == ["monster|goblin|mm"]
        assert not list(target.parent.glob("*.tmp"))

    def test_overwrite_replaces_content(self, tmp_path):
        target = tmp_path / "index.json"
        safe_write_json(target, {"old": 1})
        safe_write_json(target, {"new": 2})
        assert json.loads(target.read_text(encoding="utf-8")) == {"new": 2}

    def test_unserialisable_data_leaves_no_temp_file(self, tmp_path):
        target = tmp_path / "index.json"
        with pytest.raises(TypeError):
            safe_write_json(target, {"bad": object()})
        assert not target.exists()
        assert list(tmp_path.iterdir()) == []

    def test_read_json_propagates_errors(self, write_json, tmp_path):
        with pytest.raises(json.JSONDecodeError):
            read_json(write_json("bad.json", "{"))
        with pytest.raises(FileNotFoundError):
            read_json(tmp_path / "missing.json")


class TestIterJsonFiles:
    """Tests for iter_json_files."""

    def test_sorted_and_recursive(self, write_json, tmp_path):
        write_json("data/b.json", {})
        write_json("data/a/z.json", {})
        write_json("data/notes.txt", "x")
        names = [p.relative_to(tmp_path / "data").as_posix() for p in iter_json_files(tmp_path / "data")]
        assert names == ["a/z.json", "b.json"]


class TestSlugify:
    """Tests for slugify."""

    @pytest.mark.parametrize("text, expected", [
        ("Goblin", "goblin"),
        ("Bigby's Hand", "bigby-s-hand"),
        ("Elf (High)", "elf-high"),
        ("+1 Longsword", "1-longsword"),
        ("Mêlée", "melee"),
    ])
    def test_slugs(self, text, expected):
        assert slugify(text) == expected
