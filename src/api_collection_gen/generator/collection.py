"""Collection assembly: groups items into sorted folders and wraps them
with collection-level metadata, variables and default auth."""

from api_collection_gen.config import GeneratorConfig
from api_collection_gen.generator.items import CollectionItem
from api_collection_gen.generator.naming import humanize, param_name

SCHEMA_ID = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

VERB_RANK = {"GET": 1, "POST": 2, "PUT": 3, "PATCH": 4, "DELETE": 5}
UNKNOWN_VERB_RANK = 99

ROOT_FOLDER = "API"
AUTH_FOLDER = "Authentication"
ADMIN_FOLDER = "Admin"

AUTH_SEGMENTS = {
    "auth", "authentication", "login", "logout", "register", "signup",
    "signin", "password", "token", "tokens", "oauth", "session", "sessions",
}
ADMIN_SEGMENTS = {"admin", "admins", "administrator", "backoffice"}

FOLDER_SYNONYMS = {
    "User": "Users",
    "Profile": "Profiles",
    "Account": "Accounts",
    "Me": "Users",
}

FOLDER_DESCRIPTIONS = {
    ROOT_FOLDER: "Top-level API endpoints",
    AUTH_FOLDER: "Authentication, registration and session endpoints",
    ADMIN_FOLDER: "Administrative endpoints",
}


def folder_name(path: list[str]) -> str:
    """Folder for an item, from its URL path segments."""
    segments = list(path)
    if segments and segments[0].lower() == "api":
        segments = segments[1:]
    if not segments:
        return ROOT_FOLDER

    first = segments[0]
    key = param_name(first).lower()
    if key in AUTH_SEGMENTS:
        return AUTH_FOLDER
    if key in ADMIN_SEGMENTS:
        return ADMIN_FOLDER

    name = humanize(first)
    return FOLDER_SYNONYMS.get(name, name) or ROOT_FOLDER


def folder_description(name: str) -> str:
    return FOLDER_DESCRIPTIONS.get(name, f"Endpoints for {name}")


def verb_rank(method: str) -> int:
    return VERB_RANK.get(method.upper(), UNKNOWN_VERB_RANK)


def default_auth(config: GeneratorConfig) -> dict:
    if not config.enable_auth:
        return {"type": "noauth"}
    return {
        "type": "bearer",
        "bearer": [{"key": "token", "value": "{{token}}", "type": "string"}],
    }


class CollectionAssembler:
    """Builds the final Postman collection document."""

    def group(self, items: list[CollectionItem]) -> list[dict]:
        folders: dict[str, list[CollectionItem]] = {}
        for item in items:
            folders.setdefault(item.folder or folder_name(item.url_path), []).append(item)

        tree = []
        for name in sorted(folders, key=str.casefold):
            ordered = sorted(folders[name], key=lambda i: verb_rank(i.method))
            tree.append(
                {
                    "name": name,
                    "description": folder_description(name),
                    "item": [i.to_postman() for i in ordered],
                }
            )
        return tree

    def assemble(self, items: list[CollectionItem], config: GeneratorConfig) -> dict:
        return {
            "info": {
                "name": config.collection_name,
                "description": config.collection_description,
                "schema": SCHEMA_ID,
                "_exporter_id": config.exporter_id,
            },
            "item": self.group(items),
            "variable": [
                {"key": "base_url", "value": config.base_url, "type": "string"},
                {"key": "token", "value": "", "type": "string"},
            ],
            "auth": default_auth(config),
        }
