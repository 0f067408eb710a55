"""Middleware classification.

Turns the middleware identifiers attached to a route (aliases like
``auth`` or dotted paths to dependency functions and middleware classes)
into request scaffolding: headers, input parameters and an auth flag.
"""

import logging
import re

from pydantic import BaseModel

from api_collection_gen.analysis.introspect import ControllerIntrospector

logger = logging.getLogger(__name__)

AUTH_KEYWORDS = ("auth", "jwt", "oauth", "bearer", "login_required", "token_required")
CSRF_KEYWORDS = ("csrf",)
RATE_LIMIT_KEYWORDS = ("throttle", "rate_limit", "ratelimit", "limiter")

AUTH_DESCRIPTIONS = (
    ("jwt", "JWT bearer token"),
    ("oauth", "OAuth2 access token"),
)
DEFAULT_AUTH_DESCRIPTION = "Authentication token"

# Dependency classes that parse the request body rather than guard the route
REQUEST_INPUT_SUFFIXES = ("RequestForm", "Form", "Body")

HEADER_READ = re.compile(r"""request\.headers(?:\.get\(\s*|\[\s*)['"]([\w-]+)['"]""")
INPUT_READ = re.compile(
    r"""request\.(?:input|args\.get|query_params\.get|form\.get|values\.get)\(\s*['"](\w+)['"]"""
)


class Header(BaseModel):
    key: str
    value: str
    type: str = "text"
    description: str | None = None


class MiddlewareParameter(BaseModel):
    key: str
    value: str = ""
    description: str = ""


class MiddlewareProfile(BaseModel):
    """Accumulated middleware requirements of one route.

    Headers and parameters are keyed case-insensitively by name; the
    first contributor of a name wins and later ones are dropped.
    """

    headers: list[Header] = []
    parameters: list[MiddlewareParameter] = []
    auth: bool = False
    auth_type: str | None = None

    def add_header(self, header: Header) -> None:
        if header.key.lower() not in {h.key.lower() for h in self.headers}:
            self.headers.append(header)

    def add_parameter(self, param: MiddlewareParameter) -> None:
        if param.key.lower() not in {p.key.lower() for p in self.parameters}:
            self.parameters.append(param)

    def merge(self, other: "MiddlewareProfile") -> None:
        for header in other.headers:
            self.add_header(header)
        for param in other.parameters:
            self.add_parameter(param)
        self.auth = self.auth or other.auth
        self.auth_type = self.auth_type or other.auth_type


def short_name(identifier: str) -> str:
    """``app.security.ApiKeyMiddleware`` -> ``ApiKeyMiddleware``."""
    return re.split(r"[.:]", identifier)[-1]


def subject_names(identifier: str) -> list[str]:
    """Lower-cased names the keyword families are matched against.

    Only the alias (``throttle`` in ``throttle:60,1``) and the last path
    component count, never the package path. Request input classes such
    as ``OAuth2PasswordRequestForm`` have no subject at all.
    """
    if short_name(identifier).endswith(REQUEST_INPUT_SUFFIXES):
        return []
    alias, sep, _ = identifier.partition(":")
    names = [short_name(identifier).lower()]
    if sep and "." not in alias:
        names.insert(0, alias.lower())
    return names


def _matches(names: list[str], keywords) -> bool:
    return any(k in name for name in names for k in keywords)


class MiddlewareClassifier:
    """Classifies middleware identifiers into headers, parameters and auth."""

    def __init__(self, introspector: ControllerIntrospector | None = None):
        self.introspector = introspector or ControllerIntrospector()

    def analyze(self, middleware_ids) -> MiddlewareProfile:
        profile = MiddlewareProfile()
        for identifier in middleware_ids:
            profile.merge(self.analyze_one(identifier))
        return profile

    def analyze_one(self, identifier: str) -> MiddlewareProfile:
        profile = MiddlewareProfile()
        names = subject_names(identifier)

        if _matches(names, AUTH_KEYWORDS):
            profile.auth = True
            profile.auth_type = "bearer"
            profile.add_header(
                Header(
                    key="Authorization",
                    value="Bearer {{token}}",
                    description=self._auth_description(names),
                )
            )

        if _matches(names, CSRF_KEYWORDS):
            profile.add_header(
                Header(
                    key="X-CSRF-TOKEN",
                    value="{{csrf_token}}",
                    description="CSRF protection token",
                )
            )

        if _matches(names, RATE_LIMIT_KEYWORDS):
            # Rate limiting needs nothing from the client.
            logger.debug("Rate limit middleware %s adds no headers", identifier)

        handler = self.introspector.entrypoint(self.introspector.resolve(identifier))
        if handler is not None:
            profile.merge(self.scan_handler(identifier, self.introspector.object_source(handler)))

        return profile

    def scan_handler(self, identifier: str, source: str) -> MiddlewareProfile:
        """Headers and inputs explicitly read by a middleware handler's source."""
        profile = MiddlewareProfile()
        provenance = f"Required by {short_name(identifier)}"
        for header in HEADER_READ.findall(source):
            profile.add_header(Header(key=header, value="", description=provenance))
        for field in INPUT_READ.findall(source):
            profile.add_parameter(MiddlewareParameter(key=field, description=provenance))
        return profile

    @staticmethod
    def _auth_description(names: list[str]) -> str:
        for keyword, description in AUTH_DESCRIPTIONS:
            if _matches(names, (keyword,)):
                return description
        return DEFAULT_AUTH_DESCRIPTION
