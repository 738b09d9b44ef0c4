"""
Shared pytest fixtures for the compendium test suite.

Provides:
    - corpus_documents: the sample data files as parsed JSON documents
    - corpus_dir: a temporary data tree holding those files
    - write_json: helper fixture that writes a JSON file under tmp_path
    - index_for: factory building and preparing a CorpusIndex over corpus_dir
"""

import json
import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure compendium/ is importable regardless of where pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from compendium.corpus_index import CorpusIndex  # noqa: E402


# ---------------------------------------------------------------------------
# Sample corpus
# ---------------------------------------------------------------------------

BESTIARY_MM = {
    "monster": [
        {
            "name": "Goblin",
            "source": "MM",
            "srd": True,
            "entries": ["Goblins knock foes {@condition prone} and flee."],
        },
        {
            "name": "Adult Red Dragon",
            "source": "MM",
            "legendaryGroup": {"name": "Red Dragon", "source": "MM"},
            "entries": ["It breathes {@damage 18d6} fire."],
        },
    ],
    "legendaryGroup": [
        {"name": "Red Dragon", "source": "MM"},
    ],
}

SPELLS_PHB = {
    "spell": [
        {
            "name": "Fireball",
            "source": "PHB",
            "srd": True,
            "entries": ["Each creature in a 20-foot radius makes a {@dc 15} save."],
        },
        {"name": "Shield", "source": "PHB", "entries": ["An invisible barrier."]},
    ],
}

SPELLS_XGE = {
    "spell": [
        {"name": "Toll the Dead", "source": "XGE", "entries": ["A sad bell."]},
    ],
}

BACKGROUNDS = {
    "background": [
        {"name": "Sage", "source": "PHB", "entries": ["You spent years learning."]},
        {"name": "Acolyte", "source": "PHB", "srd": True, "entries": ["You serve a temple."]},
    ],
}

CLASS_FIGHTER = {
    "class": [
        {"name": "Fighter", "source": "PHB", "srd": True},
    ],
    "subclass": [
        {
            "name": "Champion",
            "shortName": "Champion",
            "source": "PHB",
            "className": "Fighter",
            "classSource": "PHB",
        },
    ],
    "classFeature": [
        {"name": "Ability Score Improvement", "source": "PHB",
         "className": "Fighter", "classSource": "PHB", "level": 4},
        {"name": "Ability Score Improvement", "source": "PHB",
         "className": "Fighter", "classSource": "PHB", "level": 6},
        {"name": "Extra Attack", "source": "PHB",
         "className": "Fighter", "classSource": "PHB", "level": 5},
    ],
    "subclassFeature": [
        {"name": "Improved Critical", "source": "PHB",
         "className": "Fighter", "classSource": "PHB",
         "subclassShortName": "Champion", "subclassSource": "PHB", "level": 3},
    ],
}

RACES = {
    "race": [
        {"name": "Elf", "source": "PHB", "subraces": [{"name": "High", "source": "PHB"}]},
        {"name": "Dwarf", "source": "PHB"},
        {"name": "Aasimar", "source": "DMG"},
    ],
    "subrace": [
        {"name": "Hill", "source": "PHB", "raceName": "Dwarf", "raceSource": "PHB"},
    ],
}

CONDITIONS = {
    "condition": [
        {"name": "Prone", "source": "PHB", "srd": True},
        {"name": "Blinded", "source": "PHB", "srd": True},
    ],
}

ITEMS = {
    "baseitem": [
        {"name": "Longsword", "source": "PHB"},
    ],
    "item": [
        {"name": "+1 Longsword", "source": "DMG", "baseItem": "longsword|phb"},
    ],
}

CORPUS = {
    "bestiary/bestiary-mm.json": BESTIARY_MM,
    "spells/spells-phb.json": SPELLS_PHB,
    "spells/spells-xge.json": SPELLS_XGE,
    "backgrounds.json": BACKGROUNDS,
    "class/class-fighter.json": CLASS_FIGHTER,
    "races.json": RACES,
    "conditionsdiseases.json": CONDITIONS,
    "items.json": ITEMS,
}


def _write(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        if isinstance(data, str):
            fh.write(data)
        else:
            json.dump(data, fh, indent=2)
    return path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def corpus_documents():
    """Return the sample data files as ``{relative path: document}``."""
    return json.loads(json.dumps(CORPUS))


@pytest.fixture
def corpus_dir(tmp_path, corpus_documents):
    """Write the sample corpus to ``tmp_path/data`` and return that path."""
    root = tmp_path / "data"
    for rel_path, document in corpus_documents.items():
        _write(root / rel_path, document)
    return root


@pytest.fixture
def write_json(tmp_path):
    """Return a helper ``write_json(relative_path, data) -> Path``.

    *data* may be a JSON-serialisable object or a raw string (to write
    malformed files).
    """
    def _writer(rel_path, data):
        return _write(tmp_path / rel_path, data)
    return _writer


@pytest.fixture
def index_for(corpus_dir):
    """Return a factory ``index_for(sources, prepare=True, **config)``.

    Builds a CorpusIndex over the sample corpus with the given source
    selection and optional FilterConfig fields.
    """
    from compendium.models.config import FilterConfig

    def _factory(sources=None, prepare=True, **config):
        index = CorpusIndex(sources, config=FilterConfig(**config) if config else None)
        index.import_tree(corpus_dir)
        if prepare:
            index.prepare()
        return index
    return _factory
