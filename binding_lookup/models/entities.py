"""
Pydantic models for compound and structure lookup results.

These are transient value records: created per call from an upstream payload
and never mutated afterwards.
"""

from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, ConfigDict, field_validator


class CompoundProperties(BaseModel):
    """Physicochemical properties of a PubChem compound."""

    model_config = ConfigDict(frozen=True)

    cid: str = Field(..., min_length=1, description="PubChem compound identifier")
    molecular_weight: float = Field(0.0, description="Molecular weight in g/mol")
    molecular_formula: str = Field("", description="Molecular formula")
    canonical_smiles: str = Field("", description="Canonical SMILES (no stereochemistry)")
    isomeric_smiles: str = Field("", description="Isomeric SMILES (with stereochemistry)")

    # Present only when PubChem supplies them; None is distinct from zero
    log_p: Optional[float] = Field(None, description="Partition coefficient")
    topological_polar_surface_area: Optional[float] = Field(None, description="TPSA in square angstroms")
    h_bond_donor: Optional[int] = Field(None, description="Hydrogen bond donor count")
    h_bond_acceptor: Optional[int] = Field(None, description="Hydrogen bond acceptor count")
    rotatable_bond_count: Optional[int] = Field(None, description="Rotatable bond count")
    complexity: Optional[float] = Field(None, description="Molecular complexity")
    x_log_p3: Optional[float] = Field(None, description="Computed XLogP3")
    exact_mass: Optional[float] = Field(None, description="Exact mass")
    monoisotopic_mass: Optional[float] = Field(None, description="Monoisotopic mass")
    iupac_name: Optional[str] = Field(None, description="IUPAC name")
    inchi: Optional[str] = Field(None, description="InChI string")
    inchi_key: Optional[str] = Field(None, description="InChIKey hash")


class CompoundRecord(BaseModel):
    """Properties plus descriptive text for a compound."""

    model_config = ConfigDict(frozen=True)

    properties: CompoundProperties
    description: Optional[str] = None
    synonyms: Optional[List[str]] = None


class StructureInfo(BaseModel):
    """Summary metadata for an RCSB PDB entry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=4, max_length=4, description="Four-character PDB code")
    title: str = Field("Unknown", description="Structure title")
    description: Optional[str] = Field(None, description="Molecule descriptor")
    method: Optional[str] = Field(None, description="Experimental method")
    resolution: Optional[float] = Field(None, description="Resolution in angstroms")
    deposition_date: Optional[str] = Field(None, description="Deposition date")
    release_date: Optional[str] = Field(None, description="Initial release date")
    chain_ids: List[str] = Field(default_factory=list, description="Polymer entity identifiers")

    @field_validator('id')
    @classmethod
    def uppercase_id(cls, v):
        """PDB codes are always carried uppercase."""
        return v.upper()


class SearchMatch(BaseModel):
    """One ranked hit from the RCSB sequence search; other keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    identifier: str
    score: float = 0.0


class BestMatch(BaseModel):
    """Top-ranked structure for a sequence, with its summary when available."""

    pdb_id: str = Field(..., description="Four-character PDB code extracted from the entity id")
    entity_id: str = Field(..., description="Polymer entity identifier of the hit")
    score: float = 0.0
    info: Optional[StructureInfo] = None


class SequenceSearchOptions(BaseModel):
    """Cutoffs for an RCSB sequence similarity search."""

    evalue_cutoff: float = Field(0.01, gt=0, description="Maximum E-value of accepted hits")
    identity_cutoff: float = Field(30.0, ge=0, le=100, description="Minimum sequence identity in percent")
    sequence_type: str = Field("protein", pattern="^(protein|dna|rna)$", description="Molecule type")

    def to_query_parameters(self) -> Dict[str, Any]:
        """Parameters for the search service's sequence terminal node."""
        return {
            "evalue_cutoff": self.evalue_cutoff,
            # the search service takes identity as a fraction
            "identity_cutoff": self.identity_cutoff / 100.0,
            "sequence_type": self.sequence_type,
        }
