"""
Data models and input helpers for the Binding Lookup clients.

Pydantic records for compound and structure lookups, plus pure normalization
and validation functions for SMILES strings, sequences and PDB codes.
"""

from .entities import (
    CompoundProperties,
    CompoundRecord,
    StructureInfo,
    SearchMatch,
    BestMatch,
    SequenceSearchOptions,
)
from .validation import (
    normalize_smiles,
    clean_sequence,
    validate_structure_code,
    normalize_structure_code,
    extract_structure_code,
)

__all__ = [
    # Entity models
    "CompoundProperties",
    "CompoundRecord",
    "StructureInfo",
    "SearchMatch",
    "BestMatch",
    "SequenceSearchOptions",

    # Helpers
    "normalize_smiles",
    "clean_sequence",
    "validate_structure_code",
    "normalize_structure_code",
    "extract_structure_code",
]
