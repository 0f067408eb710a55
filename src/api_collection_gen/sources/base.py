"""Unified route models produced by every route source.

Adapters (FastAPI, Flask, YAML manifest) enumerate RouteEntry records;
expand_routes() turns them into one RouteDescriptor per HTTP verb.
"""

import re

from pydantic import BaseModel, ConfigDict, field_validator

IGNORED_METHODS = {"HEAD", "OPTIONS"}

# Route group tags; they select routes but carry no request requirements
GROUP_MIDDLEWARE = {"api", "web"}

# Flask style <int:id> / <id>, Starlette style {id:int}
_ANGLE_PARAM = re.compile(r"<(?:[^:<>]+:)?(\w+)>")
_TYPED_BRACE_PARAM = re.compile(r"\{(\w+):[^}]+\}")


def normalize_uri(uri: str) -> str:
    """Return uri with a leading slash and every path parameter as {name}."""
    uri = _ANGLE_PARAM.sub(r"{\1}", uri)
    uri = _TYPED_BRACE_PARAM.sub(r"{\1}", uri)
    return "/" + uri.lstrip("/")


def unique(values) -> tuple[str, ...]:
    """De-duplicate while keeping first-seen order."""
    return tuple(dict.fromkeys(v for v in values if v))


def callable_id(obj) -> str | None:
    """Dotted import path of a function, class or (via its type) instance.

    Closures defined by decorator factories are reported as the factory,
    e.g. ``login_required.<locals>.wrapper`` -> ``<module>.login_required``.
    """
    target = obj if hasattr(obj, "__qualname__") else type(obj)
    module = getattr(target, "__module__", None)
    qualname = getattr(target, "__qualname__", None)
    if not module or not qualname:
        return None
    return f"{module}.{qualname.split('.<locals>')[0]}"


def _wrapper_id(func) -> str | None:
    # functools.wraps copies __module__/__qualname__ from the wrapped
    # function; the code object and globals still belong to the wrapper.
    code = getattr(func, "__code__", None)
    module = getattr(func, "__globals__", {}).get("__name__")
    if code is None or not module:
        return callable_id(type(func))
    return f"{module}.{code.co_qualname.split('.<locals>')[0]}"


def decorator_ids(func) -> list[str]:
    """Ids of the decorators wrapping ``func``, outermost first."""
    ids = []
    while hasattr(func, "__wrapped__"):
        ident = _wrapper_id(func)
        if ident:
            ids.append(ident)
        func = func.__wrapped__
    return ids


def handler_ref(func) -> tuple[str | None, str | None]:
    """(controller, action) for a view function or method."""
    while hasattr(func, "__wrapped__"):
        func = func.__wrapped__
    module = getattr(func, "__module__", None)
    qualname = getattr(func, "__qualname__", None)
    if not module or not qualname or "<locals>" in qualname:
        return None, None
    owner, _, action = qualname.rpartition(".")
    return (f"{module}.{owner}" if owner else module), action


class RouteEntry(BaseModel):
    """One registered route as enumerated from the host framework."""

    uri: str
    methods: list[str]
    name: str | None = None
    controller: str | None = None  # dotted module or class path
    action: str | None = None  # function or method name on `controller`
    middleware: list[str] = []


class RouteDescriptor(BaseModel):
    """One HTTP verb + URI endpoint with its controller and middleware metadata."""

    model_config = ConfigDict(frozen=True)

    uri: str
    method: str
    declared_name: str | None = None
    controller: str | None = None
    action: str | None = None
    middleware: tuple[str, ...] = ()

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()

    @property
    def controller_ref(self) -> str | None:
        if self.controller and self.action:
            return f"{self.controller}.{self.action}"
        return self.controller or None


def expand_routes(entries: list[RouteEntry]) -> list[RouteDescriptor]:
    """Materialize one descriptor per verb, never for HEAD or OPTIONS."""
    routes: list[RouteDescriptor] = []
    for entry in entries:
        uri = normalize_uri(entry.uri)
        for method in entry.methods:
            if method.upper() in IGNORED_METHODS:
                continue
            routes.append(
                RouteDescriptor(
                    uri=uri,
                    method=method,
                    declared_name=entry.name or None,
                    controller=entry.controller,
                    action=entry.action,
                    middleware=unique(entry.middleware),
                )
            )
    return routes


def is_api_route(route: RouteDescriptor) -> bool:
    return "api" in route.middleware or route.uri.startswith("/api/") or route.uri == "/api"


def should_exclude(route: RouteDescriptor, patterns) -> bool:
    return any(pattern and pattern in route.uri for pattern in patterns)


def should_include(route: RouteDescriptor, groups) -> bool:
    """Apply the 'api' / 'web' / 'all' route group filter."""
    if not groups or "all" in groups:
        return True
    api = is_api_route(route)
    if "api" in groups and api:
        return True
    if "web" in groups and not api:
        return True
    return False


def filter_routes(
    routes: list[RouteDescriptor],
    include: tuple[str, ...] | list[str] = ("api",),
    exclude: tuple[str, ...] | list[str] = (),
) -> list[RouteDescriptor]:
    """Drop excluded, non-included and HEAD/OPTIONS routes, keeping order."""
    return [
        r
        for r in routes
        if r.method not in IGNORED_METHODS
        and not should_exclude(r, exclude)
        and should_include(r, include)
    ]
