"""CLI entry point for api-collection-gen."""

import logging
import sys
from pathlib import Path

import click

from api_collection_gen.config import load_config
from api_collection_gen.errors import CollectionGenError, ConfigurationError, PersistenceError, RemoteSyncError
from api_collection_gen.generator.pipeline import CollectionGenerator
from api_collection_gen.output.postman_api import PostmanApiClient
from api_collection_gen.output.writer import format_bytes, save_collection
from api_collection_gen.sources.detect import load_routes

EXIT_GENERATION_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_PERSISTENCE_FAILED = 3


def _count_requests(items: list[dict]) -> int:
    total = 0
    for item in items:
        if "item" in item:
            total += _count_requests(item["item"])
        elif "request" in item:
            total += 1
    return total


def _fail(message: str, code: int):
    click.echo(message, err=True)
    sys.exit(code)


@click.group()
def main():
    """API Collection Gen: build Postman collections from application routes."""
    pass


@main.command()
@click.option("--app", "app_ref", default=None, help="Application to scan, as 'module:app' or 'module:create_app()'.")
@click.option("--routes", "manifest", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="YAML route manifest.")
@click.option("--app-dir", default=None, type=click.Path(exists=True, file_okay=False, path_type=Path), help="Directory to import the application from.")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="YAML configuration file.")
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Output file path for the collection JSON.")
@click.option("--name", default=None, help="Collection name.")
@click.option("--base-url", default=None, help="Base URL for the API.")
@click.option("--include", multiple=True, type=click.Choice(["api", "web", "all"]), help="Route groups to include.")
@click.option("--exclude", multiple=True, help="URI substrings to exclude.")
@click.option("--update-api", is_flag=True, help="Also update the hosted Postman collection.")
@click.option("--collection-id", default=None, help="Postman collection ID for --update-api.")
@click.option("--workers", default=None, type=click.IntRange(min=1), help="Routes analyzed in parallel.")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
def generate(
    app_ref: str | None,
    manifest: Path | None,
    app_dir: Path | None,
    config_path: Path | None,
    output: Path | None,
    name: str | None,
    base_url: str | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    update_api: bool,
    collection_id: str | None,
    workers: int | None,
    verbose: bool,
):
    """Generate a Postman collection from application routes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(
            config_path,
            output_path=str(output) if output else None,
            collection_name=name,
            base_url=base_url,
            include_routes=include,
            exclude_routes=exclude,
            workers=workers,
            collection_id=collection_id,
        )
        output_path = config.require_output_path()
    except ConfigurationError as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR)

    # Step 1: Scan and generate
    click.echo("Scanning routes...")
    try:
        routes = load_routes(app_ref, manifest, app_dir)
        click.echo(f"Found {len(routes)} routes.")
        collection = CollectionGenerator(config).generate(routes)
    except CollectionGenError as e:
        _fail(f"Error generating collection: {e}", EXIT_GENERATION_FAILED)

    folders = collection["item"]
    click.echo(f"Generated {_count_requests(folders)} requests in {len(folders)} folders.")

    # Step 2: Save
    click.echo(f"Saving collection to {output_path}...")
    try:
        size = save_collection(collection, output_path)
    except PersistenceError as e:
        _fail(f"Failed to save collection: {e}", EXIT_PERSISTENCE_FAILED)
    click.echo(f"Collection saved to {output_path} ({format_bytes(size)})")

    # Step 3: Optional remote update, best effort
    if update_api:
        click.echo("Updating Postman collection via API...")
        try:
            PostmanApiClient(config.postman).update_collection(collection, config.postman.collection_id)
            click.echo("Collection updated via API.")
        except RemoteSyncError as e:
            click.echo(f"Warning: failed to update collection via API: {e}", err=True)

    click.echo("Done!")
