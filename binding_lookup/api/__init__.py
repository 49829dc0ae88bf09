"""
API integration layer for external database access.

This package contains the PubChem and RCSB PDB clients, the shared HTTP base
client, and the REST API that relays them.
"""

from .base import BaseAPIClient, FetchResult

from .pubchem_client import (
    PubChemClient,
    build_2d_image_url,
    get_compound_record
)

from .rcsb_client import (
    RCSBClient,
    get_best_match
)

__all__ = [
    'BaseAPIClient',
    'FetchResult',
    'PubChemClient',
    'RCSBClient',
    'build_2d_image_url',
    'get_compound_record',
    'get_best_match'
]
