"""Collection item construction.

Combines the per-route analyses (rules, middleware profile, naming) into a
CollectionItem and renders it as a Postman v2.1 request node.
"""

import json
import re

from pydantic import BaseModel

from api_collection_gen.analysis.middleware import Header, MiddlewareProfile
from api_collection_gen.analysis.rules import ValidationRuleSet, build_example_body
from api_collection_gen.config import GeneratorConfig
from api_collection_gen.generator.naming import NamingEngine
from api_collection_gen.sources.base import RouteDescriptor

BASE_URL_VAR = "{{base_url}}"
BODY_METHODS = {"POST", "PUT", "PATCH"}

_PATH_TOKEN = re.compile(r"\{(\w+)\??\}")


class UrlVariable(BaseModel):
    key: str
    value: str
    description: str


class CollectionItem(BaseModel):
    """One request template of the collection."""

    name: str
    description: str
    method: str
    url_raw: str
    url_host: list[str]
    url_path: list[str]
    url_variables: list[UrlVariable] = []
    headers: list[Header] = []
    body: dict | None = None
    folder: str = ""

    def to_postman(self) -> dict:
        url: dict = {
            "raw": self.url_raw,
            "host": list(self.url_host),
            "path": list(self.url_path),
        }
        if self.url_variables:
            url["variable"] = [v.model_dump() for v in self.url_variables]

        request: dict = {
            "method": self.method,
            "header": [h.model_dump(exclude_none=True) for h in self.headers],
            "url": url,
        }
        if self.body is not None:
            request["body"] = {
                "mode": "raw",
                "raw": json.dumps(self.body, indent=4, ensure_ascii=False),
                "options": {"raw": {"language": "json"}},
            }
        request["description"] = self.description

        return {"name": self.name, "request": request, "response": []}


def dedupe_headers(headers: list[Header]) -> list[Header]:
    """Keep the first header of each (case-insensitive) key."""
    seen: set[str] = set()
    result = []
    for header in headers:
        key = header.key.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(header)
    return result


def url_variables(uri: str) -> list[UrlVariable]:
    return [
        UrlVariable(key=name, value=f":{name}", description=f"Route parameter: {name}")
        for name in _PATH_TOKEN.findall(uri)
    ]


def build_body(route: RouteDescriptor, rules: ValidationRuleSet, profile: MiddlewareProfile) -> dict | None:
    body = build_example_body(rules) if rules else {}
    if route.method in BODY_METHODS:
        for param in profile.parameters:
            body.setdefault(param.key, param.value)
    return body or None


def build_item(
    route: RouteDescriptor,
    rules: ValidationRuleSet,
    profile: MiddlewareProfile,
    config: GeneratorConfig,
    naming: NamingEngine,
    folder: str = "",
) -> CollectionItem:
    headers = list(profile.headers)
    headers.extend(Header(key=k, value=v) for k, v in config.default_headers.items())

    return CollectionItem(
        name=naming.name(route),
        description=naming.describe(route, [p.key for p in profile.parameters]),
        method=route.method,
        url_raw=BASE_URL_VAR + route.uri,
        url_host=[BASE_URL_VAR],
        url_path=[s for s in route.uri.strip("/").split("/") if s],
        url_variables=url_variables(route.uri),
        headers=dedupe_headers(headers),
        body=build_body(route, rules, profile),
        folder=folder,
    )
