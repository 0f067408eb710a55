"""Locate an application and pick the matching route source."""

import importlib
import sys
from pathlib import Path

from api_collection_gen.errors import CollectionGenError
from api_collection_gen.sources import fastapi as fastapi_source
from api_collection_gen.sources import flask as flask_source
from api_collection_gen.sources.base import RouteDescriptor, RouteEntry, expand_routes
from api_collection_gen.sources.manifest import parse_manifest


def load_app(app_ref: str, app_dir: Path | None = None):
    """Import an application from ``module:attr`` (``attr()`` calls a factory)."""
    module_name, _, attr = app_ref.partition(":")
    if not module_name or not attr:
        raise CollectionGenError(f"Application reference must look like 'module:app', got {app_ref!r}.")

    search_dir = str((app_dir or Path.cwd()).resolve())
    if search_dir not in sys.path:
        sys.path.insert(0, search_dir)

    try:
        module = importlib.import_module(module_name)
    except Exception as e:
        raise CollectionGenError(f"Cannot import {module_name}: {e}") from e

    factory = attr.endswith("()")
    obj = module
    for part in attr.removesuffix("()").split("."):
        obj = getattr(obj, part, None)
        if obj is None:
            raise CollectionGenError(f"{module_name} has no attribute {attr!r}.")
    if not factory:
        return obj
    try:
        return obj()
    except Exception as e:
        raise CollectionGenError(f"Application factory {app_ref} failed: {e}") from e


def detect_framework(app) -> str:
    """Return 'flask' or 'fastapi' for a loaded application object."""
    if hasattr(app, "url_map") and hasattr(app, "view_functions"):
        return "flask"
    if hasattr(app, "routes"):
        return "fastapi"
    raise CollectionGenError(f"Unsupported application type: {type(app).__name__}")


def routes_from_app(app) -> list[RouteEntry]:
    if detect_framework(app) == "flask":
        return flask_source.routes_from_app(app)
    return fastapi_source.routes_from_app(app)


def load_routes(app_ref: str | None = None, manifest: Path | None = None, app_dir: Path | None = None) -> list[RouteDescriptor]:
    """Enumerate routes from an importable app and/or a YAML manifest."""
    if not app_ref and manifest is None:
        raise CollectionGenError("Provide an application (--app) or a route manifest (--routes).")

    entries: list[RouteEntry] = []
    if app_ref:
        entries.extend(routes_from_app(load_app(app_ref, app_dir)))
    if manifest is not None:
        entries.extend(parse_manifest(manifest))
    return expand_routes(entries)
