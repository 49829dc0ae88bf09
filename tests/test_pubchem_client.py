"""
Tests for the PubChem client.

Upstream responses come from httpx.MockTransport; nothing touches the network.
"""

import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from hypothesis import given, strategies as st, settings

from binding_lookup.api.pubchem_client import (
    COMPOUND_PROPERTIES, PubChemClient, build_2d_image_url, get_compound_record, parse_compound_properties
)
from binding_lookup.config import APIConfig
from binding_lookup.errors import ErrorCategory
from binding_lookup.models.entities import CompoundProperties

from conftest import RecordingTransport, TEST_API_CONFIG


ASPIRIN_SMILES = "CC(=O)OC1=CC=CC=C1C(=O)O"

ASPIRIN_PROPERTIES = {
    "CID": 2244,
    "MolecularFormula": "C9H8O4",
    "MolecularWeight": "180.16",
    "CanonicalSMILES": ASPIRIN_SMILES,
    "IsomericSMILES": ASPIRIN_SMILES,
    "XLogP": 1.2,
    "TPSA": 63.6,
    "HBondDonorCount": 1,
    "HBondAcceptorCount": 4,
    "RotatableBondCount": 3,
    "Complexity": 212,
    "ExactMass": "180.04225873",
    "IUPACName": "2-acetyloxybenzoic acid",
    "InChIKey": "BSYNRYMUTXBXSQ-UHFFFAOYSA-N",
}

ASPIRIN_SDF = (
    "2244\n  -OEChem-3D\n\n 21 21  0     0  0  0  0  0  0999 V2000\n"
    "    1.2333    0.5540    0.7792 O   0  0  0  0  0  0  0  0  0  0  0  0\n"
    "M  END\n$$$$\n"
)


def aspirin_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/cids/JSON"):
        return httpx.Response(200, json={"IdentifierList": {"CID": [2244]}})
    if "/property/" in path:
        return httpx.Response(200, json={"PropertyTable": {"Properties": [ASPIRIN_PROPERTIES]}})
    if path.endswith("/description/JSON"):
        return httpx.Response(200, json={"InformationList": {"Information": [
            {"CID": 2244, "Title": "Aspirin"},
            {"CID": 2244, "Description": "Aspirin is an orally administered non-steroidal antiinflammatory agent."},
        ]}})
    if "/record/SDF" in path:
        return httpx.Response(200, text=ASPIRIN_SDF)
    return httpx.Response(404)


def make_client(handler, logger=None):
    transport = RecordingTransport(handler)
    client = PubChemClient(config=TEST_API_CONFIG, http_client=transport.client(), logger=logger)
    return client, transport


def respond_with(status_code=200, **kwargs):
    def handler(request):
        return httpx.Response(status_code, **kwargs)
    return handler


def refuse_connection(request):
    raise httpx.ConnectError("connection refused", request=request)


class TestResolveCID:
    """Test SMILES to CID resolution."""

    @pytest.mark.asyncio
    async def test_resolves_cid_as_string(self):
        client, transport = make_client(aspirin_handler)

        cid = await client.resolve_cid(ASPIRIN_SMILES)

        assert cid == "2244"
        assert len(transport.requests) == 1
        assert transport.requests[0].headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_whitespace_is_removed_before_lookup(self):
        client, transport = make_client(aspirin_handler)

        await client.resolve_cid("  C C\tO \n")

        assert transport.requests[0].url.path.endswith("/compound/smiles/CCO/cids/JSON")

    @pytest.mark.asyncio
    async def test_base_url_without_trailing_slash(self):
        config = APIConfig(**{**TEST_API_CONFIG.__dict__, "pubchem_base_url": "https://pubchem.test/rest/pug"})
        transport = RecordingTransport(aspirin_handler)
        client = PubChemClient(config=config, http_client=transport.client())

        await client.resolve_cid("CCO")

        assert transport.paths() == ["/rest/pug/compound/smiles/CCO/cids/JSON"]

    @pytest.mark.asyncio
    async def test_smiles_is_url_escaped(self):
        client, transport = make_client(aspirin_handler)

        await client.resolve_cid("C/C=C/C")

        assert b"C%2FC%3DC%2FC" in transport.requests[0].url.raw_path

    @pytest.mark.asyncio
    async def test_missing_identifier_list_is_not_found(self):
        client, _ = make_client(respond_with(json={"IdentifierList": {"CID": []}}))

        result = await client.resolve_cid_result("XYZ")

        assert result.value is None
        assert result.error.category == ErrorCategory.NOT_FOUND

    @pytest.mark.asyncio
    async def test_cid_zero_means_unknown_structure(self):
        client, _ = make_client(respond_with(json={"IdentifierList": {"CID": [0]}}))

        assert await client.resolve_cid("C1CC") is None

    @pytest.mark.asyncio
    async def test_non_success_status_returns_none(self):
        client, _ = make_client(respond_with(400, text="Status: 400\nCode: PUGREST.BadRequest"))

        result = await client.resolve_cid_result("not a smiles")

        assert result.value is None
        assert result.error.category == ErrorCategory.API
        assert result.error.context.response_status == 400

    @pytest.mark.asyncio
    async def test_malformed_json_returns_none(self):
        client, _ = make_client(respond_with(200, text="<html>maintenance</html>"))

        result = await client.resolve_cid_result("CCO")

        assert result.value is None
        assert result.error.category == ErrorCategory.DATA

    @pytest.mark.asyncio
    async def test_network_failure_returns_none_and_logs(self, mock_logger):
        client, _ = make_client(refuse_connection, logger=mock_logger)

        result = await client.resolve_cid_result("CCO")

        assert result.value is None
        assert result.error.category == ErrorCategory.NETWORK
        warnings = [r for r in mock_logger.records if r.levelno == logging.WARNING]
        assert warnings
        assert warnings[-1].operation == "resolve_cid"

    @pytest.mark.asyncio
    async def test_unexpected_exception_never_escapes(self):
        def explode(request):
            raise RuntimeError("transport bug")

        client, _ = make_client(explode)

        result = await client.resolve_cid_result("CCO")

        assert result.value is None
        assert result.error.category == ErrorCategory.UNKNOWN

    @pytest.mark.asyncio
    async def test_empty_smiles_issues_no_request(self):
        client, transport = make_client(aspirin_handler)

        result = await client.resolve_cid_result("   ")

        assert result.error.category == ErrorCategory.VALIDATION
        assert transport.requests == []


class TestFetchProperties:
    """Test the two-step property lookup."""

    @pytest.mark.asyncio
    async def test_fetches_all_properties_in_one_call(self):
        client, transport = make_client(aspirin_handler)

        properties = await client.fetch_properties(ASPIRIN_SMILES)

        assert isinstance(properties, CompoundProperties)
        assert properties.cid == "2244"
        assert properties.molecular_weight == pytest.approx(180.16)
        assert properties.molecular_formula == "C9H8O4"
        assert properties.h_bond_donor == 1
        assert properties.h_bond_acceptor == 4
        assert properties.topological_polar_surface_area == pytest.approx(63.6)
        assert properties.iupac_name == "2-acetyloxybenzoic acid"

        assert len(transport.requests) == 2
        property_path = transport.requests[1].url.path
        assert property_path.endswith(f"/compound/cid/2244/property/{','.join(COMPOUND_PROPERTIES)}/JSON")

    @pytest.mark.asyncio
    async def test_failed_resolution_skips_property_request(self):
        client, transport = make_client(respond_with(404))

        result = await client.fetch_properties_result("C1=CC")

        assert result.value is None
        assert result.error.context.operation == "resolve_cid"
        assert len(transport.requests) == 1
        assert not any("/property/" in path for path in transport.paths())

    @pytest.mark.asyncio
    async def test_resolution_failure_is_counted_once(self):
        client, _ = make_client(respond_with(404))

        await client.fetch_properties("C1=CC")

        assert client.error_handler.get_error_statistics() == {"not_found:resolve_cid": 1}

    @pytest.mark.asyncio
    async def test_missing_property_table_returns_none(self):
        def handler(request):
            if request.url.path.endswith("/cids/JSON"):
                return httpx.Response(200, json={"IdentifierList": {"CID": [702]}})
            return httpx.Response(200, json={"Fault": {"Code": "PUGREST.ServerBusy"}})

        client, _ = make_client(handler)

        result = await client.fetch_properties_result("CCO")

        assert result.value is None
        assert result.error.category == ErrorCategory.DATA


class TestParseCompoundProperties:
    """Test property row normalization."""

    def test_required_fields_default_when_missing(self):
        properties = parse_compound_properties("962", {"CID": 962})

        assert properties.molecular_weight == 0
        assert properties.molecular_formula == ""
        assert properties.canonical_smiles == ""
        assert properties.isomeric_smiles == ""

    def test_optional_fields_stay_unset(self):
        properties = parse_compound_properties("962", {"MolecularWeight": "18.015", "MolecularFormula": "H2O"})

        assert properties.log_p is None
        assert properties.h_bond_donor is None
        assert properties.rotatable_bond_count is None
        assert properties.x_log_p3 is None

    def test_zero_is_kept_distinct_from_absent(self):
        properties = parse_compound_properties("962", {"RotatableBondCount": 0})

        assert properties.rotatable_bond_count == 0

    def test_newer_smiles_column_names(self):
        properties = parse_compound_properties("2244", {
            "ConnectivitySMILES": "CC(=O)OC1=CC=CC=C1C(=O)O",
            "SMILES": "CC(=O)OC1=CC=CC=C1C(=O)O",
        })

        assert properties.canonical_smiles == ASPIRIN_SMILES
        assert properties.isomeric_smiles == ASPIRIN_SMILES


class TestFetch3DStructure:
    """Test 3D SDF retrieval and the soft-failure marker."""

    @pytest.mark.asyncio
    async def test_returns_sdf_unchanged(self):
        client, transport = make_client(aspirin_handler)

        sdf = await client.fetch_3d_structure("2244")

        assert sdf == ASPIRIN_SDF
        request = transport.requests[0]
        assert request.headers["Accept"] == "chemical/x-sdf"
        assert request.url.params["record_type"] == "3d"

    @pytest.mark.asyncio
    async def test_empty_body_returns_none(self):
        client, _ = make_client(respond_with(200, text=""))

        result = await client.fetch_3d_structure_result("2244")

        assert result.value is None
        assert result.error.category == ErrorCategory.UPSTREAM

    @pytest.mark.asyncio
    async def test_status_marker_returns_none(self):
        body = "Status: 404\nCode: PUGREST.NotFound\nMessage: No data found"
        client, _ = make_client(respond_with(200, text=body))

        result = await client.fetch_3d_structure_result("5462310")

        assert result.value is None
        assert result.error.category == ErrorCategory.UPSTREAM


class TestFetchDescription:
    """Test description retrieval."""

    @pytest.mark.asyncio
    async def test_returns_first_description(self):
        client, _ = make_client(aspirin_handler)

        description = await client.fetch_description("2244")

        assert description.startswith("Aspirin is an orally administered")

    @pytest.mark.asyncio
    async def test_missing_path_returns_none(self):
        client, _ = make_client(respond_with(json={"InformationList": {"Information": [{"CID": 1, "Title": "x"}]}}))

        assert await client.fetch_description("1") is None

    @pytest.mark.asyncio
    async def test_empty_document_returns_none(self):
        client, _ = make_client(respond_with(json={}))

        assert await client.fetch_description("1") is None


class TestBuild2DImageURL:
    """Test the pure depiction URL builder."""

    def test_default_size(self):
        assert build_2d_image_url("2244") == (
            "https://pubchem.ncbi.nlm.nih.gov/image/imagefly.cgi?cid=2244&width=300&height=300"
        )

    def test_client_uses_configured_endpoint_without_network(self):
        client, transport = make_client(aspirin_handler)

        url = client.build_2d_image_url("2244", 500, 400)

        assert url == "https://pubchem.test/image/imagefly.cgi?cid=2244&width=500&height=400"
        assert transport.requests == []

    @given(
        cid=st.integers(min_value=1, max_value=10**9).map(str),
        width=st.integers(min_value=1, max_value=4000),
        height=st.integers(min_value=1, max_value=4000)
    )
    @settings(max_examples=100, deadline=None)
    def test_identical_inputs_give_identical_urls(self, cid, width, height):
        first = build_2d_image_url(cid, width, height)
        second = build_2d_image_url(cid, width, height)

        assert first == second
        assert f"cid={cid}" in first
        assert f"width={width}" in first
        assert f"height={height}" in first


class TestFetchFullRecord:
    """Test the composed compound record."""

    @pytest.mark.asyncio
    async def test_composes_properties_and_description(self):
        client, transport = make_client(aspirin_handler)

        record = await client.fetch_full_record(ASPIRIN_SMILES)

        assert record.properties.cid == "2244"
        assert record.description.startswith("Aspirin")
        assert record.synonyms is None
        assert len(transport.requests) == 3

    @pytest.mark.asyncio
    async def test_description_not_requested_when_properties_fail(self):
        client, _ = make_client(respond_with(404))

        with patch.object(client, "fetch_description", new=AsyncMock()) as mock_description:
            record = await client.fetch_full_record("C1=CC")

        assert record is None
        mock_description.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_description_still_yields_record(self):
        def handler(request):
            if request.url.path.endswith("/description/JSON"):
                return httpx.Response(503)
            return aspirin_handler(request)

        client, _ = make_client(handler)

        record = await client.fetch_full_record(ASPIRIN_SMILES)

        assert record is not None
        assert record.description is None


class TestGetCompoundRecord:
    """Test the module-level convenience function."""

    @pytest.mark.asyncio
    async def test_uses_given_client(self):
        client, transport = make_client(aspirin_handler)

        record = await get_compound_record(ASPIRIN_SMILES, client)

        assert record.properties.cid == "2244"
        assert len(transport.requests) == 3
