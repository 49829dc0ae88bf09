"""
PubChem PUG REST client for small-molecule lookups.

Resolves a SMILES string to a compound identifier, then to a property record,
a textual description and optionally a 3D SDF file. Every operation returns
None on failure; the ``*_result`` variants expose the classified cause.

References:
    - PUG REST: https://pubchem.ncbi.nlm.nih.gov/docs/pug-rest
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

from ..errors import DataError, NotFoundError, UpstreamSoftFailure, ValidationError
from ..models.entities import CompoundProperties, CompoundRecord
from ..models.validation import normalize_smiles
from .base import BaseAPIClient, FetchResult

DEFAULT_IMAGE_URL = "https://pubchem.ncbi.nlm.nih.gov/image/imagefly.cgi"
SDF_MEDIA_TYPE = "chemical/x-sdf"

# PubChem encodes some errors as a plain-text body containing this token
SOFT_FAILURE_MARKER = "Status"

# Requested in a single batch call
# See: https://pubchem.ncbi.nlm.nih.gov/docs/pug-rest#section=Compound-Property-Tables
COMPOUND_PROPERTIES = [
    "MolecularWeight",
    "MolecularFormula",
    "CanonicalSMILES",
    "IsomericSMILES",
    "XLogP",
    "TPSA",
    "HBondDonorCount",
    "HBondAcceptorCount",
    "RotatableBondCount",
    "Complexity",
    "ExactMass",
    "MonoisotopicMass",
    "IUPACName",
    "InChI",
    "InChIKey",
]

# Model field -> response keys, first present wins. Older and newer PubChem
# releases name some columns differently.
_REQUIRED_FIELDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("molecular_weight", ("MolecularWeight",)),
    ("molecular_formula", ("MolecularFormula",)),
    ("canonical_smiles", ("CanonicalSMILES", "ConnectivitySMILES")),
    ("isomeric_smiles", ("IsomericSMILES", "SMILES")),
]

_OPTIONAL_FIELDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("log_p", ("LogP", "XLogP")),
    ("topological_polar_surface_area", ("TPSA", "TopologicalPolarSurfaceArea")),
    ("h_bond_donor", ("HBondDonorCount", "HydrogenBondDonorCount")),
    ("h_bond_acceptor", ("HBondAcceptorCount", "HydrogenBondAcceptorCount")),
    ("rotatable_bond_count", ("RotatableBondCount",)),
    ("complexity", ("Complexity",)),
    ("x_log_p3", ("XLogP3", "XLogP")),
    ("exact_mass", ("ExactMass",)),
    ("monoisotopic_mass", ("MonoisotopicMass",)),
    ("iupac_name", ("IUPACName", "IUPAC_Name")),
    ("inchi", ("InChI",)),
    ("inchi_key", ("InChIKey",)),
]


def build_2d_image_url(
    cid: str,
    width: int = 300,
    height: int = 300,
    base_url: str = DEFAULT_IMAGE_URL
) -> str:
    """
    Build the URL of a PubChem 2D depiction.

    Pure string construction; the image is not fetched.
    """
    return f"{base_url}?{urlencode({'cid': cid, 'width': width, 'height': height})}"


def _pick(props: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if props.get(key) is not None:
            return props[key]
    return None


def parse_compound_properties(cid: str, props: Dict[str, Any]) -> CompoundProperties:
    """
    Build CompoundProperties from one PropertyTable row.

    Missing required fields fall back to zero or the empty string; missing
    optional fields stay unset.
    """
    values: Dict[str, Any] = {"cid": cid}
    for field_name, keys in _REQUIRED_FIELDS:
        value = _pick(props, keys)
        if value is not None:
            values[field_name] = value
    for field_name, keys in _OPTIONAL_FIELDS:
        value = _pick(props, keys)
        if value is not None:
            values[field_name] = value
    return CompoundProperties(**values)


class PubChemClient(BaseAPIClient):
    """Async client for the PubChem PUG REST API."""

    service_name = "PubChem"

    def _compound_url(self, endpoint: str) -> str:
        return self._build_url(self.config.pubchem_base_url, f"compound/{endpoint}")

    async def _resolve_cid(self, smiles: str) -> str:
        normalized = normalize_smiles(smiles)
        if not normalized:
            raise ValidationError("Empty SMILES string")

        data = await self._get_json(self._compound_url(f"smiles/{quote(normalized, safe='')}/cids/JSON"))

        cids = (data.get("IdentifierList") or {}).get("CID") or []
        # PubChem answers unknown structures with CID 0
        if not cids or not cids[0]:
            raise NotFoundError(f"No PubChem compound for SMILES {normalized}")
        return str(cids[0])

    async def resolve_cid_result(self, smiles: str) -> FetchResult[str]:
        return await self._run("resolve_cid", self._resolve_cid, smiles, entity_id=smiles)

    async def resolve_cid(self, smiles: str) -> Optional[str]:
        """
        Resolve a SMILES string to a PubChem compound identifier.

        Args:
            smiles: SMILES notation; surrounding and embedded whitespace is removed

        Returns:
            CID as a string, or None when resolution fails
        """
        return (await self.resolve_cid_result(smiles)).value

    async def _fetch_properties_for_cid(self, cid: str) -> CompoundProperties:
        url = self._compound_url(f"cid/{cid}/property/{','.join(COMPOUND_PROPERTIES)}/JSON")
        data = await self._get_json(url)

        rows = (data.get("PropertyTable") or {}).get("Properties") or []
        if not rows:
            raise DataError(f"PubChem returned no property row for CID {cid}")
        return parse_compound_properties(cid, rows[0])

    async def fetch_properties_result(self, smiles: str) -> FetchResult[CompoundProperties]:
        cid_result = await self.resolve_cid_result(smiles)
        if not cid_result.ok:
            return FetchResult.failure(cid_result.error)
        return await self._run(
            "fetch_properties", self._fetch_properties_for_cid, cid_result.value, entity_id=cid_result.value
        )

    async def fetch_properties(self, smiles: str) -> Optional[CompoundProperties]:
        """
        Fetch the property record for a SMILES string.

        Resolves the CID first; the property request is only issued when
        resolution succeeds. All properties come back in one round trip.
        """
        return (await self.fetch_properties_result(smiles)).value

    async def _fetch_3d_structure(self, cid: str) -> str:
        sdf = await self._get_text(
            self._compound_url(f"cid/{cid}/record/SDF/"),
            accept=SDF_MEDIA_TYPE,
            params={
                "record_type": "3d",
                "response_type": "save",
                "response_basename": "Structure3D",
            }
        )
        if not sdf:
            raise UpstreamSoftFailure(f"Empty 3D record for CID {cid}")
        if SOFT_FAILURE_MARKER in sdf:
            raise UpstreamSoftFailure(f"PubChem reported a status message instead of a 3D record for CID {cid}")
        return sdf

    async def fetch_3d_structure_result(self, cid: str) -> FetchResult[str]:
        return await self._run("fetch_3d_structure", self._fetch_3d_structure, cid, entity_id=cid)

    async def fetch_3d_structure(self, cid: str) -> Optional[str]:
        """Fetch the 3D conformer SDF for a CID, or None."""
        return (await self.fetch_3d_structure_result(cid)).value

    async def _fetch_description(self, cid: str) -> str:
        data = await self._get_json(self._compound_url(f"cid/{cid}/description/JSON"))

        information = (data.get("InformationList") or {}).get("Information") or []
        # The first entry usually carries only the title
        for entry in information:
            if entry.get("Description"):
                return entry["Description"]
        raise NotFoundError(f"No description for CID {cid}")

    async def fetch_description_result(self, cid: str) -> FetchResult[str]:
        return await self._run("fetch_description", self._fetch_description, cid, entity_id=cid)

    async def fetch_description(self, cid: str) -> Optional[str]:
        """Fetch the descriptive text for a CID, or None."""
        return (await self.fetch_description_result(cid)).value

    def build_2d_image_url(self, cid: str, width: int = 300, height: int = 300) -> str:
        """2D depiction URL against the configured image endpoint."""
        return build_2d_image_url(cid, width, height, base_url=self.config.pubchem_image_url)

    async def fetch_full_record_result(self, smiles: str) -> FetchResult[CompoundRecord]:
        properties_result = await self.fetch_properties_result(smiles)
        if not properties_result.ok:
            return FetchResult.failure(properties_result.error)

        properties = properties_result.value
        description = await self.fetch_description(properties.cid)
        return FetchResult.success(CompoundRecord(properties=properties, description=description))

    async def fetch_full_record(self, smiles: str) -> Optional[CompoundRecord]:
        """
        Fetch properties and description for a SMILES string.

        The description request is skipped when properties cannot be resolved.
        Synonyms are never populated.
        """
        return (await self.fetch_full_record_result(smiles)).value


async def get_compound_record(smiles: str, client: Optional[PubChemClient] = None) -> Optional[CompoundRecord]:
    """
    Fetch a full compound record, creating a short-lived client if none is given.

    Args:
        smiles: SMILES notation
        client: PubChem client, creates new one if not provided

    Returns:
        CompoundRecord or None
    """
    if client is None:
        async with PubChemClient() as client:
            return await get_compound_record(smiles, client)
    return await client.fetch_full_record(smiles)
