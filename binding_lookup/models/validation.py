"""
Normalization and validation helpers for lookup inputs.

All functions here are pure and perform no network access.
"""

import re
from typing import Optional


# A digit 1-9 followed by three alphanumerics, e.g. 4HHB
STRUCTURE_CODE_PATTERN = re.compile(r"^[1-9][A-Z0-9]{3}$")
_STRUCTURE_CODE_SEARCH = re.compile(r"[1-9][A-Z0-9]{3}", re.IGNORECASE)

_WHITESPACE = re.compile(r"\s+")


def normalize_smiles(smiles: str) -> str:
    """Strip a SMILES string and remove any embedded whitespace."""
    return _WHITESPACE.sub("", smiles.strip())


def clean_sequence(sequence: str) -> str:
    """
    Reduce FASTA or free text to a bare residue string.

    Header lines (starting with '>') are dropped and all whitespace is removed.

    Args:
        sequence: Raw sequence text, optionally FASTA formatted

    Returns:
        Residues only
    """
    body = [line for line in sequence.splitlines() if not line.lstrip().startswith(">")]
    return _WHITESPACE.sub("", "".join(body))


def validate_structure_code(code: str) -> bool:
    """
    Check whether ``code`` is a well-formed PDB code.

    Matching is case-insensitive; surrounding whitespace is not tolerated.
    """
    return bool(STRUCTURE_CODE_PATTERN.fullmatch(code.upper()))


def normalize_structure_code(code: str) -> str:
    """Uppercase and strip a PDB code for use in a request."""
    return code.strip().upper()


def extract_structure_code(entity_id: str) -> Optional[str]:
    """
    Pull the PDB code out of a polymer entity identifier such as ``4HHB_1``.

    Returns:
        The first code-shaped run, uppercased, or None
    """
    match = _STRUCTURE_CODE_SEARCH.search(entity_id)
    return match.group(0).upper() if match else None
