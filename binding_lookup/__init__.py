"""
Binding Lookup - compound and protein structure metadata for binding affinity tools.

This package provides async clients that fetch small-molecule data from PubChem
and protein structure data from the RCSB PDB, normalized into typed records.
Failures never raise to the caller; they come back as empty results.
"""

__version__ = "0.1.0"
__author__ = "Binding Lookup Team"
