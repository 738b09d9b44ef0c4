"""
compendium -- Indexing and reference resolution for game reference data.

Modules:
    importer        JSON data files -> records
    keys            canonical keys, reference-token parsing, known sources
    filters         source selection and exclusion rules
    corpus_index    the two-phase corpus index
    text_resolver   inline {@tag ...} reference resolution
    converter       dispatch of included records to document builders
    cli             command-line driver
"""

from compendium.corpus_index import CorpusIndex
from compendium.errors import Diagnostic, ImportFailure, IndexStateError, UnsupportedTypeError
from compendium.keys import compute_key, get_data_key
from compendium.text_resolver import TextResolver

__all__ = [
    "CorpusIndex",
    "Diagnostic",
    "ImportFailure",
    "IndexStateError",
    "TextResolver",
    "UnsupportedTypeError",
    "compute_key",
    "get_data_key",
]
