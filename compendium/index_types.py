"""
compendium/index_types.py -- Record categories and their conventions.

Maps the category names used by reference tags (``{@creature ...}``) to
the record types used as container keys in the data files
(``"monster": [...]``), and records per-type conventions: the source a
tag assumes when it names none, and the folder a type's documents are
written to.
"""

from __future__ import annotations

from enum import Enum


class IndexType(str, Enum):
    ACTION = "action"
    ADVENTURE = "adventure"
    BACKGROUND = "background"
    BASEITEM = "baseitem"
    BOOK = "book"
    BOON = "boon"
    CLASS = "class"
    CLASSFEATURE = "classfeature"
    CONDITION = "condition"
    CULT = "cult"
    DEITY = "deity"
    DISEASE = "disease"
    FEAT = "feat"
    HAZARD = "hazard"
    ITEM = "item"
    LANGUAGE = "language"
    LEGENDARYGROUP = "legendarygroup"
    MONSTER = "monster"
    OBJECT = "object"
    OPTIONALFEATURE = "optionalfeature"
    PSIONIC = "psionic"
    RACE = "race"
    REWARD = "reward"
    SENSE = "sense"
    SKILL = "skill"
    SPELL = "spell"
    STATUS = "status"
    SUBCLASS = "subclass"
    SUBCLASSFEATURE = "subclassfeature"
    SUBRACE = "subrace"
    TABLE = "table"
    TRAP = "trap"
    VARIANTRULE = "variantrule"
    VEHICLE = "vehicle"

    @classmethod
    def lookup(cls, value: str) -> "IndexType | None":
        """Return the member for *value* (case-insensitive), or ``None``."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


# Reference tag name -> record type, where the two differ
_TAG_TO_TYPE: dict[str, str] = {
    "creature": IndexType.MONSTER.value,
    "optfeature": IndexType.OPTIONALFEATURE.value,
    "legroup": IndexType.LEGENDARYGROUP.value,
}

# Source a reference assumes when neither the tag nor the enclosing
# record supplies one
_DEFAULT_SOURCES: dict[str, str] = {
    IndexType.ACTION.value: "PHB",
    IndexType.BACKGROUND.value: "PHB",
    IndexType.BASEITEM.value: "PHB",
    IndexType.BOON.value: "MTF",
    IndexType.CLASS.value: "PHB",
    IndexType.CLASSFEATURE.value: "PHB",
    IndexType.CONDITION.value: "PHB",
    IndexType.CULT.value: "MTF",
    IndexType.DEITY.value: "PHB",
    IndexType.DISEASE.value: "DMG",
    IndexType.FEAT.value: "PHB",
    IndexType.HAZARD.value: "DMG",
    IndexType.ITEM.value: "DMG",
    IndexType.LANGUAGE.value: "PHB",
    IndexType.LEGENDARYGROUP.value: "MM",
    IndexType.MONSTER.value: "MM",
    IndexType.OBJECT.value: "DMG",
    IndexType.OPTIONALFEATURE.value: "PHB",
    IndexType.RACE.value: "PHB",
    IndexType.REWARD.value: "DMG",
    IndexType.SENSE.value: "PHB",
    IndexType.SKILL.value: "PHB",
    IndexType.SPELL.value: "PHB",
    IndexType.STATUS.value: "PHB",
    IndexType.SUBCLASS.value: "PHB",
    IndexType.SUBCLASSFEATURE.value: "PHB",
    IndexType.SUBRACE.value: "PHB",
    IndexType.TABLE.value: "DMG",
    IndexType.TRAP.value: "DMG",
    IndexType.VARIANTRULE.value: "DMG",
    IndexType.VEHICLE.value: "GoS",
}

# Folder (relative to the output root) holding a type's documents
_OUTPUT_FOLDERS: dict[str, str] = {
    IndexType.BACKGROUND.value: "compendium/backgrounds",
    IndexType.CLASS.value: "compendium/classes",
    IndexType.SUBCLASS.value: "compendium/classes",
    IndexType.DEITY.value: "compendium/deities",
    IndexType.FEAT.value: "compendium/feats",
    IndexType.ITEM.value: "compendium/items",
    IndexType.BASEITEM.value: "compendium/items",
    IndexType.MONSTER.value: "compendium/bestiary",
    IndexType.RACE.value: "compendium/races",
    IndexType.SUBRACE.value: "compendium/races",
    IndexType.SPELL.value: "compendium/spells",
    IndexType.TABLE.value: "compendium/tables",
    IndexType.VARIANTRULE.value: "rules/variant-rules",
}


def type_for_tag(category: str) -> str:
    """Return the record type a reference category points at.

    Record type names are accepted unchanged, so ``type_for_tag("monster")``
    and ``type_for_tag("creature")`` agree.  Unknown categories map to
    themselves (lower-cased).
    """
    category = category.strip().lower()
    return _TAG_TO_TYPE.get(category, category)


def default_source_for(record_type: str) -> str | None:
    """The source a reference to *record_type* assumes by convention."""
    return _DEFAULT_SOURCES.get(record_type)


def output_folder_for(record_type: str) -> str | None:
    """The folder a record type is written to, or ``None`` if it has none."""
    return _OUTPUT_FOLDERS.get(record_type)


def is_reference_category(category: str) -> bool:
    """True when a tag category names a record type (as opposed to formatting)."""
    return IndexType.lookup(type_for_tag(category)) is not None
