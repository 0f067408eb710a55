"""Generator configuration.

One immutable value built from (in increasing priority) built-in defaults,
environment variables, an optional YAML file and CLI overrides. It is
passed explicitly to every stage of the pipeline.
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from api_collection_gen.errors import ConfigurationError

DEFAULT_OUTPUT_PATH = "postman-collection.json"
DEFAULT_EXPORTER_ID = "api-collection-gen"


def _default_collection_name() -> str:
    return f"{os.getenv('APP_NAME', 'Python API')} Collection"


class PostmanSettings(BaseModel):
    """Credentials and target for the Postman API."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = None
    workspace_id: str | None = None
    collection_id: str | None = None


class GeneratorConfig(BaseModel):
    """Everything the pipeline needs to know about a generation run."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost"
    collection_name: str = Field(default_factory=_default_collection_name)
    collection_description: str = "Auto-generated Postman collection from application routes"
    output_path: str | None = DEFAULT_OUTPUT_PATH
    include_routes: tuple[str, ...] = ("api",)
    exclude_routes: tuple[str, ...] = ("docs", "redoc", "openapi.json", "static")
    enable_auth: bool = True
    default_headers: dict[str, str] = Field(
        default_factory=lambda: {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
    )
    workers: int = Field(default=1, ge=1)
    exporter_id: str = DEFAULT_EXPORTER_ID
    postman: PostmanSettings = Field(default_factory=PostmanSettings)

    def require_output_path(self) -> Path:
        """Return the output path, or fail before anything is written."""
        if not self.output_path:
            raise ConfigurationError("No output path configured.")
        return Path(self.output_path)


def _env_settings() -> dict:
    settings: dict = {}
    if os.getenv("APP_URL"):
        settings["base_url"] = os.environ["APP_URL"]

    postman = {
        "api_key": os.getenv("POSTMAN_API_KEY"),
        "workspace_id": os.getenv("POSTMAN_WORKSPACE_ID"),
        "collection_id": os.getenv("POSTMAN_COLLECTION_ID"),
    }
    postman = {k: v for k, v in postman.items() if v}
    if postman:
        settings["postman"] = postman
    return settings


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping.")
    return data


def _merge(base: dict, extra: dict) -> dict:
    merged = dict(base)
    for key, value in extra.items():
        if key == "postman" and isinstance(value, dict):
            merged["postman"] = {**merged.get("postman", {}), **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None, **overrides) -> GeneratorConfig:
    """Build a GeneratorConfig from a YAML file, the environment and overrides.

    Overrides whose value is None (or an empty tuple, for the multi-value
    CLI options) are ignored so unset CLI flags fall through.
    """
    settings = _env_settings()
    if path is not None:
        settings = _merge(settings, _read_yaml(path))

    cli = {k: v for k, v in overrides.items() if v is not None and v != ()}
    if "collection_id" in cli:
        cli["postman"] = {"collection_id": cli.pop("collection_id")}
    settings = _merge(settings, cli)

    try:
        return GeneratorConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
