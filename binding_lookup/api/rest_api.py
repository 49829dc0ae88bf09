"""
REST API endpoints relaying the PubChem and RCSB clients.

Absent results map to 404 without upstream error detail, mirroring the
clients' uniform "nothing found" contract.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..errors import get_error_handler
from ..logging_config import get_logger, get_logging_metrics
from ..models.entities import BestMatch, CompoundProperties, CompoundRecord, SequenceSearchOptions, StructureInfo
from ..models.validation import validate_structure_code
from .pubchem_client import PubChemClient
from .rcsb_client import RCSBClient

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the upstream clients for the lifetime of the application."""
    logger.info("Binding Lookup API starting up")
    app.state.pubchem_client = PubChemClient()
    app.state.rcsb_client = RCSBClient()

    yield

    logger.info("Binding Lookup API shutting down")
    await app.state.pubchem_client.close()
    await app.state.rcsb_client.close()


class SequenceSearchRequest(BaseModel):
    """Request model for sequence similarity search."""
    sequence: str = Field(..., min_length=1, description="Residues, optionally FASTA formatted")
    evalue_cutoff: Optional[float] = Field(default=None, gt=0, description="Maximum E-value")
    identity_cutoff: Optional[float] = Field(default=None, ge=0, le=100, description="Minimum identity in percent")
    sequence_type: Optional[str] = Field(default=None, pattern="^(protein|dna|rna)$", description="Molecule type")


class BestMatchRequest(BaseModel):
    """Request model for best structure match."""
    sequence: str = Field(..., min_length=1, description="Residues, optionally FASTA formatted")


app = FastAPI(
    title="Binding Lookup API",
    description="Compound and protein structure metadata from PubChem and RCSB PDB",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


def get_pubchem_client(request: Request) -> PubChemClient:
    """PubChem client shared by the application."""
    client = getattr(request.app.state, "pubchem_client", None)
    if client is None:
        client = request.app.state.pubchem_client = PubChemClient()
    return client


def get_rcsb_client(request: Request) -> RCSBClient:
    """RCSB client shared by the application."""
    client = getattr(request.app.state, "rcsb_client", None)
    if client is None:
        client = request.app.state.rcsb_client = RCSBClient()
    return client


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not available")


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Binding Lookup API",
        "version": __version__,
        "description": "Compound and protein structure metadata from PubChem and RCSB PDB",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=Dict[str, str])
async def health_check():
    """Liveness check; upstream services are not contacted."""
    return {"status": "healthy"}


@app.get("/monitoring/logs", response_model=Dict[str, Any])
async def logging_metrics():
    """Per-level log counts and upstream call outcomes; empty until logging is set up."""
    return get_logging_metrics()


@app.get("/monitoring/errors", response_model=Dict[str, int])
async def error_statistics():
    """Failure counts per category and operation for clients using the process-wide handler."""
    return get_error_handler().get_error_statistics()


@app.get("/compounds", response_model=CompoundRecord)
async def get_compound(
    smiles: str = Query(..., min_length=1, description="SMILES notation"),
    client: PubChemClient = Depends(get_pubchem_client)
):
    """Properties and description for a SMILES string."""
    record = await client.fetch_full_record(smiles)
    if record is None:
        raise _not_found("Compound")
    return record


@app.get("/compounds/properties", response_model=CompoundProperties)
async def get_compound_properties(
    smiles: str = Query(..., min_length=1, description="SMILES notation"),
    client: PubChemClient = Depends(get_pubchem_client)
):
    """Property record only, without the description lookup."""
    properties = await client.fetch_properties(smiles)
    if properties is None:
        raise _not_found("Compound")
    return properties


@app.get("/compounds/{cid}/description", response_model=Dict[str, str])
async def get_compound_description(cid: str, client: PubChemClient = Depends(get_pubchem_client)):
    description = await client.fetch_description(cid)
    if description is None:
        raise _not_found("Description")
    return {"cid": cid, "description": description}


@app.get("/compounds/{cid}/structure3d", response_class=PlainTextResponse)
async def get_compound_structure3d(cid: str, client: PubChemClient = Depends(get_pubchem_client)):
    """3D conformer as SDF text."""
    sdf = await client.fetch_3d_structure(cid)
    if sdf is None:
        raise _not_found("3D structure")
    return PlainTextResponse(sdf, media_type="chemical/x-sdf")


@app.get("/compounds/{cid}/image-url", response_model=Dict[str, str])
async def get_compound_image_url(
    cid: str,
    width: int = Query(300, ge=1, le=2000),
    height: int = Query(300, ge=1, le=2000),
    client: PubChemClient = Depends(get_pubchem_client)
):
    return {"cid": cid, "url": client.build_2d_image_url(cid, width, height)}


@app.get("/structures/{code}/validate", response_model=Dict[str, Any])
async def validate_structure(code: str):
    return {"code": code, "valid": validate_structure_code(code)}


@app.get("/structures/{code}", response_model=StructureInfo)
async def get_structure(code: str, client: RCSBClient = Depends(get_rcsb_client)):
    """Summary metadata for a PDB entry."""
    info = await client.fetch_structure_info(code)
    if info is None:
        raise _not_found("Structure")
    return info


@app.get("/structures/{code}/file", response_class=PlainTextResponse)
async def get_structure_file(code: str, client: RCSBClient = Depends(get_rcsb_client)):
    """Raw PDB-format file."""
    pdb_text = await client.fetch_structure_file(code)
    if pdb_text is None:
        raise _not_found("Structure file")
    return PlainTextResponse(pdb_text)


@app.get("/structures/{code}/entities/{entity}/sequences", response_model=List[str])
async def get_chain_sequences(code: str, entity: int, client: RCSBClient = Depends(get_rcsb_client)):
    return await client.fetch_chain_sequences(code, entity)


@app.get("/entities/{entity_id}", response_model=Dict[str, Any])
async def get_entity(entity_id: str, client: RCSBClient = Depends(get_rcsb_client)):
    """Polymer entity document for a search hit identifier such as 4HHB_1."""
    details = await client.fetch_entity_details(entity_id)
    if details is None:
        raise _not_found("Entity")
    return details


@app.post("/structures/search", response_model=List[Dict[str, Any]])
async def search_structures(request: SequenceSearchRequest, client: RCSBClient = Depends(get_rcsb_client)):
    """Ranked sequence similarity hits; empty when nothing matched or the search failed."""
    overrides = request.model_dump(exclude={"sequence"}, exclude_none=True)
    if not overrides:
        return await client.search_by_sequence(request.sequence)

    settings = {
        "evalue_cutoff": client.search_config.evalue_cutoff,
        "identity_cutoff": client.search_config.identity_cutoff,
        "sequence_type": client.search_config.sequence_type,
        **overrides,
    }
    try:
        options = SequenceSearchOptions(**settings)
    except ValueError as e:
        logger.warning("Search options rejected: %s", e)
        return []
    return await client.search_by_sequence(request.sequence, options)


@app.post("/structures/best-match", response_model=BestMatch)
async def best_match(request: BestMatchRequest, client: RCSBClient = Depends(get_rcsb_client)):
    match = await client.find_best_match(request.sequence)
    if match is None:
        raise _not_found("Matching structure")
    return match
