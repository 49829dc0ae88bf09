"""
RCSB PDB client for protein structure lookups.

Covers the Data API (entry summaries, polymer entities, sequences), the Search
API (sequence similarity) and the Files service (raw PDB downloads).

References:
    - Data API: https://data.rcsb.org/redoc/index.html
    - Search API: https://search.rcsb.org/index.html
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..config import APIConfig, SearchConfig, get_config
from ..errors import DataError, ErrorHandler, NotFoundError, UpstreamSoftFailure, ValidationError
from ..models.entities import BestMatch, SearchMatch, SequenceSearchOptions, StructureInfo
from ..models.validation import (
    clean_sequence, extract_structure_code, normalize_structure_code, validate_structure_code
)
from .base import BaseAPIClient, FetchResult


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def parse_structure_info(code: str, data: Dict[str, Any]) -> StructureInfo:
    """
    Build StructureInfo from an entry document.

    Every field is optional in the document; the title falls back to "Unknown".
    """
    if not isinstance(data, dict):
        raise DataError(f"Entry document for {code} is not an object")

    struct = data.get("struct") or {}
    exptl = _first(data.get("exptl")) or {}
    entry_info = data.get("rcsb_entry_info") or {}
    accession = data.get("rcsb_accession_info") or {}
    containers = data.get("rcsb_entry_container_identifiers") or {}

    return StructureInfo(
        id=code,
        title=struct.get("title") or "Unknown",
        description=struct.get("pdbx_descriptor") or None,
        method=exptl.get("method") or None,
        resolution=_first(entry_info.get("resolution_combined")),
        deposition_date=accession.get("deposit_date") or None,
        release_date=accession.get("initial_release_date") or None,
        chain_ids=[str(entity_id) for entity_id in containers.get("polymer_entity_ids") or []],
    )


def build_sequence_query(sequence: str, options: SequenceSearchOptions, rows: int = 100) -> Dict[str, Any]:
    """
    Build the Search API document for a sequence similarity query.

    Results are polymer entities from experimental structures, ranked by
    sequence identity, best first.
    """
    return {
        "query": {
            "type": "group",
            "logical_operator": "and",
            "nodes": [
                {
                    "type": "terminal",
                    "service": "sequence",
                    "parameters": {
                        **options.to_query_parameters(),
                        "value": sequence,
                    }
                }
            ]
        },
        "return_type": "polymer_entity",
        "request_options": {
            "paginate": {"start": 0, "rows": rows},
            "results_content_type": ["experimental"],
            "scoring_strategy": "sequence_identity",
            "sort": [{"sort_by": "score", "direction": "desc"}]
        }
    }


class RCSBClient(BaseAPIClient):
    """Async client for the RCSB PDB Data, Search and Files services."""

    service_name = "RCSB"

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        search_config: Optional[SearchConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        logger=None,
        error_handler: Optional[ErrorHandler] = None
    ):
        super().__init__(config=config, http_client=http_client, logger=logger, error_handler=error_handler)
        self.search_config = search_config or get_config().search

    def _data_url(self, endpoint: str) -> str:
        return self._build_url(self.config.rcsb_data_base_url, endpoint)

    @staticmethod
    def _require_code(code: str) -> str:
        normalized = normalize_structure_code(code)
        if not validate_structure_code(normalized):
            raise ValidationError(f"Malformed PDB code: {code!r}")
        return normalized

    def default_search_options(self) -> SequenceSearchOptions:
        return SequenceSearchOptions(
            evalue_cutoff=self.search_config.evalue_cutoff,
            identity_cutoff=self.search_config.identity_cutoff,
            sequence_type=self.search_config.sequence_type,
        )

    def best_match_search_options(self) -> SequenceSearchOptions:
        return SequenceSearchOptions(
            evalue_cutoff=self.search_config.best_match_evalue_cutoff,
            identity_cutoff=self.search_config.best_match_identity_cutoff,
            sequence_type="protein",
        )

    # Raw structure files

    async def _fetch_structure_file(self, code: str) -> str:
        pdb_id = self._require_code(code)
        text = await self._get_text(self._build_url(self.config.rcsb_files_base_url, f"{pdb_id}.pdb"))

        if len(text) < self.search_config.min_structure_file_length:
            raise UpstreamSoftFailure(f"Structure file for {pdb_id} is too short ({len(text)} characters)")
        return text

    async def fetch_structure_file_result(self, code: str) -> FetchResult[str]:
        return await self._run("fetch_structure_file", self._fetch_structure_file, code, entity_id=code)

    async def fetch_structure_file(self, code: str) -> Optional[str]:
        """
        Download the raw PDB-format file for a structure.

        Bodies shorter than the configured floor (100 characters by default)
        are treated as error placeholders and yield None.
        """
        return (await self.fetch_structure_file_result(code)).value

    # Entry summaries

    async def _fetch_structure_info(self, code: str) -> StructureInfo:
        pdb_id = self._require_code(code)
        data = await self._get_json(self._data_url(f"core/entry/{pdb_id}"))
        return parse_structure_info(pdb_id, data)

    async def fetch_structure_info_result(self, code: str) -> FetchResult[StructureInfo]:
        return await self._run("fetch_structure_info", self._fetch_structure_info, code, entity_id=code)

    async def fetch_structure_info(self, code: str) -> Optional[StructureInfo]:
        """Fetch summary metadata for a PDB entry, or None."""
        return (await self.fetch_structure_info_result(code)).value

    # Sequence search

    async def _search_by_sequence(
        self,
        sequence: str,
        options: Optional[SequenceSearchOptions] = None
    ) -> List[Dict[str, Any]]:
        # Configured cutoffs are validated here, inside the wrapped call
        options = options or self.default_search_options()
        residues = clean_sequence(sequence)
        if not residues:
            raise ValidationError("Sequence is empty after removing FASTA headers and whitespace")

        query = build_sequence_query(residues, options, rows=self.search_config.max_results)
        response = await self._post_json(self.config.rcsb_search_url, query)

        # The Search API signals "no hits" with an empty 204
        if response.status_code == 204 or not response.content:
            return []

        data = self._decode_json(response)
        result_set = data.get("result_set") or []
        if not isinstance(result_set, list):
            raise DataError("Search result_set is not a list")
        return result_set

    async def search_by_sequence_result(
        self,
        sequence: str,
        options: Optional[SequenceSearchOptions] = None
    ) -> FetchResult[List[Dict[str, Any]]]:
        return await self._run("search_by_sequence", self._search_by_sequence, sequence, options)

    async def search_by_sequence(
        self,
        sequence: str,
        options: Optional[SequenceSearchOptions] = None
    ) -> List[Dict[str, Any]]:
        """
        Run a sequence similarity search against experimental PDB structures.

        Args:
            sequence: Residues, optionally FASTA formatted
            options: Cutoffs, configured defaults if not provided

        Returns:
            The ranked result_set entries as returned by the service, or an
            empty list on any failure
        """
        return (await self.search_by_sequence_result(sequence, options)).unwrap_or([])

    # Polymer entities

    async def _fetch_entity_details(self, entity_id: str) -> Dict[str, Any]:
        entity_id = entity_id.strip()
        if not entity_id:
            raise ValidationError("Empty entity identifier")

        # Search hits look like 4HHB_1, the Data API wants 4HHB/1
        if "_" in entity_id:
            entry, entity = entity_id.split("_", 1)
            path = f"core/polymer_entity/{entry.upper()}/{quote(entity, safe='')}"
        else:
            path = f"core/polymer_entity/{quote(entity_id, safe='/')}"

        data = await self._get_json(self._data_url(path))
        if not isinstance(data, dict):
            raise DataError(f"Entity document for {entity_id} is not an object")
        return data

    async def fetch_entity_details_result(self, entity_id: str) -> FetchResult[Dict[str, Any]]:
        return await self._run("fetch_entity_details", self._fetch_entity_details, entity_id, entity_id=entity_id)

    async def fetch_entity_details(self, entity_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the polymer entity document for a search hit identifier, or None."""
        return (await self.fetch_entity_details_result(entity_id)).value

    # Best match

    async def find_best_match_result(self, sequence: str) -> FetchResult[BestMatch]:
        search_result = await self._run("search_by_sequence", self._search_relaxed, sequence)
        if not search_result.ok:
            return FetchResult.failure(search_result.error)

        return await self._run("find_best_match", self._pick_best_match, search_result.value)

    async def _search_relaxed(self, sequence: str) -> List[Dict[str, Any]]:
        return await self._search_by_sequence(sequence, self.best_match_search_options())

    async def _pick_best_match(self, results: List[Dict[str, Any]]) -> BestMatch:
        if not results:
            raise NotFoundError("Sequence search returned no hits")

        top = SearchMatch.model_validate(results[0])
        pdb_id = extract_structure_code(top.identifier)
        if pdb_id is None:
            raise DataError(f"No PDB code in search hit {top.identifier!r}")

        info = await self.fetch_structure_info(pdb_id)
        return BestMatch(pdb_id=pdb_id, entity_id=top.identifier, score=top.score, info=info)

    async def find_best_match(self, sequence: str) -> Optional[BestMatch]:
        """
        Find the top-ranked PDB structure for a sequence.

        Searches with relaxed cutoffs, extracts the PDB code from the best hit
        and attaches its entry summary when that lookup succeeds.
        """
        return (await self.find_best_match_result(sequence)).value

    # Chain sequences

    async def _fetch_chain_sequences(self, code: str, chain_id: Any) -> List[str]:
        pdb_id = self._require_code(code)
        data = await self._get_json(self._data_url(f"core/polymer_entity/{pdb_id}/{chain_id}/sequence"))

        sequences = data.get("sequences") or []
        if not isinstance(sequences, list):
            raise DataError(f"Sequence list for {pdb_id}/{chain_id} is not a list")
        return [str(sequence) for sequence in sequences]

    async def fetch_chain_sequences_result(self, code: str, chain_id: Any = 1) -> FetchResult[List[str]]:
        return await self._run(
            "fetch_chain_sequences", self._fetch_chain_sequences, code, chain_id or 1, entity_id=code
        )

    async def fetch_chain_sequences(self, code: str, chain_id: Any = 1) -> List[str]:
        """Fetch the sequences of one polymer entity; empty list on failure."""
        return (await self.fetch_chain_sequences_result(code, chain_id)).unwrap_or([])

    @staticmethod
    def validate_structure_code(code: str) -> bool:
        """Check PDB code format without any network access."""
        return validate_structure_code(code)


async def get_best_match(sequence: str, client: Optional[RCSBClient] = None) -> Optional[BestMatch]:
    """
    Find the best structure match, creating a short-lived client if none is given.

    Args:
        sequence: Residues, optionally FASTA formatted
        client: RCSB client, creates new one if not provided

    Returns:
        BestMatch or None
    """
    if client is None:
        async with RCSBClient() as client:
            return await get_best_match(sequence, client)
    return await client.find_best_match(sequence)
