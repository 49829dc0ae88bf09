"""
Command-line interface for the Binding Lookup clients.

Each lookup command prints JSON on stdout and exits with status 1 when the
upstream service yields no result.
"""

import asyncio
import json
import sys
from pathlib import Path

import click

from .api.pubchem_client import PubChemClient
from .api.rcsb_client import RCSBClient
from .config import SystemConfig, load_config_from_file
from .errors import ConfigurationError
from .logging_config import setup_logging
from .models.entities import SequenceSearchOptions
from .models.validation import validate_structure_code


def _read_sequence(value: str) -> str:
    """Treat the argument as a FASTA/plain file when it names one."""
    path = Path(value)
    try:
        is_file = path.is_file()
    except OSError:
        # Raw sequences can exceed the platform's file name limit
        is_file = False
    if is_file:
        return path.read_text(encoding="utf-8")
    return value


def _emit(payload) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _no_result(what: str) -> None:
    click.echo(f"No {what} found.", err=True)
    sys.exit(1)


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Binding Lookup - compound and protein structure metadata."""
    ctx.ensure_object(dict)

    try:
        if config:
            system_config = load_config_from_file(config)
        else:
            system_config = SystemConfig.from_env()
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    if verbose:
        system_config.logging.level = "DEBUG"

    setup_logging(system_config.logging)

    ctx.obj['config'] = system_config


@cli.command()
@click.argument('smiles')
@click.option('--with-3d', is_flag=True, help='Also fetch the 3D conformer SDF')
@click.option('--image-size', default=300, type=int, help='Edge length of the 2D depiction URL')
@click.pass_context
def compound(ctx, smiles, with_3d, image_size):
    """Look up a compound by SMILES on PubChem."""
    config = ctx.obj['config']

    async def run():
        async with PubChemClient(config=config.api) as client:
            record = await client.fetch_full_record(smiles)
            if record is None:
                return None
            payload = record.model_dump(mode="json")
            cid = record.properties.cid
            payload["image_url"] = client.build_2d_image_url(cid, image_size, image_size)
            if with_3d:
                payload["structure_3d"] = await client.fetch_3d_structure(cid)
            return payload

    payload = asyncio.run(run())
    if payload is None:
        _no_result("compound")
    _emit(payload)


@cli.command()
@click.argument('code')
@click.option('--download', type=click.Path(dir_okay=False, writable=True),
              help='Write the raw PDB file to this path')
@click.pass_context
def structure(ctx, code, download):
    """Show summary metadata for a PDB entry."""
    config = ctx.obj['config']

    async def run():
        async with RCSBClient(config=config.api, search_config=config.search) as client:
            info = await client.fetch_structure_info(code)
            pdb_text = await client.fetch_structure_file(code) if download else None
            return info, pdb_text

    info, pdb_text = asyncio.run(run())
    if info is None:
        _no_result("structure")

    if download:
        if pdb_text is None:
            click.echo(f"Structure file for {info.id} is not available.", err=True)
            sys.exit(1)
        Path(download).write_text(pdb_text, encoding="utf-8")
        click.echo(f"Wrote {len(pdb_text)} characters to {download}", err=True)

    _emit(info.model_dump(mode="json"))


@cli.command()
@click.argument('sequence')
@click.option('--evalue', type=float, help='Maximum E-value of accepted hits')
@click.option('--identity', type=float, help='Minimum sequence identity in percent')
@click.option('--type', 'sequence_type', type=click.Choice(['protein', 'dna', 'rna']),
              help='Molecule type')
@click.option('--limit', default=10, type=int, help='Number of hits to print')
@click.pass_context
def search(ctx, sequence, evalue, identity, sequence_type, limit):
    """Sequence similarity search; SEQUENCE may be a FASTA file."""
    config = ctx.obj['config']
    try:
        options = SequenceSearchOptions(
            evalue_cutoff=evalue if evalue is not None else config.search.evalue_cutoff,
            identity_cutoff=identity if identity is not None else config.search.identity_cutoff,
            sequence_type=sequence_type or config.search.sequence_type,
        )
    except ValueError as e:
        raise click.UsageError(f"Invalid search cutoffs: {e}")

    async def run():
        async with RCSBClient(config=config.api, search_config=config.search) as client:
            return await client.search_by_sequence(_read_sequence(sequence), options)

    results = asyncio.run(run())
    if not results:
        _no_result("matching structures")
    _emit(results[:limit])


@cli.command('best-match')
@click.argument('sequence')
@click.pass_context
def best_match(ctx, sequence):
    """Best-scoring PDB structure for a sequence; SEQUENCE may be a FASTA file."""
    config = ctx.obj['config']

    async def run():
        async with RCSBClient(config=config.api, search_config=config.search) as client:
            return await client.find_best_match(_read_sequence(sequence))

    match = asyncio.run(run())
    if match is None:
        _no_result("matching structure")
    _emit(match.model_dump(mode="json"))


@cli.command()
@click.argument('code')
def validate(code):
    """Check PDB code format without network access."""
    valid = validate_structure_code(code)
    click.echo(f"{code}: {'valid' if valid else 'invalid'}")
    if not valid:
        sys.exit(1)


@cli.command()
@click.option('--host', default='127.0.0.1', help='Host to bind to')
@click.option('--port', default=8000, type=int, help='Port to bind to')
@click.option('--reload', is_flag=True, help='Enable auto-reload for development')
@click.option('--workers', default=1, type=int, help='Number of worker processes')
@click.pass_context
def serve(ctx, host, port, reload, workers):
    """Start the REST API server."""
    from .server import run_server

    click.echo("=== Starting Binding Lookup API Server ===")
    click.echo(f"API Documentation: http://{host}:{port}/docs")

    try:
        run_server(host=host, port=port, reload=reload, workers=workers)
    except KeyboardInterrupt:
        click.echo("\nServer stopped by user.")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
