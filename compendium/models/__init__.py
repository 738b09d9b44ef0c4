"""
compendium/models/ -- Pydantic v2 models for the compendium engine.

Submodules:
    base        Record and ReferenceTag value models.
    config      FilterConfig, the source selection and exclusion settings.
"""

from compendium.models.base import Record, ReferenceTag
from compendium.models.config import FilterConfig

__all__ = ["Record", "ReferenceTag", "FilterConfig"]
