"""YAML route manifest source.

For applications that cannot be imported in the generator's process, the
route table can be described statically::

    routes:
      - uri: /api/users/{id}
        methods: [GET, PUT]
        name: users.show
        controller: app.controllers.UserController
        action: show
        middleware: [api, auth]
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from api_collection_gen.errors import CollectionGenError
from api_collection_gen.sources.base import RouteEntry


def parse_manifest(file_path: Path) -> list[RouteEntry]:
    """Parse a YAML route manifest into RouteEntry records."""
    try:
        data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise CollectionGenError(f"Cannot read route manifest {file_path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("routes", [])
    if not isinstance(data, list):
        raise CollectionGenError(f"Route manifest {file_path} must contain a list of routes.")

    entries = []
    for i, item in enumerate(data):
        if isinstance(item, dict) and "method" in item and "methods" not in item:
            item = dict(item)
            item["methods"] = [item.pop("method")]
        try:
            entries.append(RouteEntry(**item))
        except (TypeError, ValidationError) as e:
            raise CollectionGenError(f"Invalid route #{i + 1} in {file_path}: {e}") from e
    return entries
