"""FastAPI / Starlette route source.

Reads ``app.routes`` without importing FastAPI itself: any object with
``path``, ``methods`` and ``endpoint`` attributes is a route, and any
object with nested ``routes`` (a Mount or included router) is walked with
its path prefix. Route dependencies and endpoint decorators become the
route's middleware identifiers.
"""

from api_collection_gen.sources.base import RouteEntry, callable_id, decorator_ids, handler_ref


def _dependency_ids(dependant) -> list[str]:
    ids = []
    for dep in getattr(dependant, "dependencies", None) or []:
        call = getattr(dep, "call", None)
        if call is not None:
            ident = callable_id(call)
            if ident:
                ids.append(ident)
        ids.extend(_dependency_ids(dep))
    return ids


def _declared_name(route, endpoint) -> str | None:
    name = getattr(route, "name", None)
    if not name or name == getattr(endpoint, "__name__", None):
        return None
    return name


def _entry(route, prefix: str) -> RouteEntry:
    endpoint = route.endpoint
    controller, action = handler_ref(endpoint)
    middleware = _dependency_ids(getattr(route, "dependant", None))
    middleware.extend(decorator_ids(endpoint))
    return RouteEntry(
        uri=prefix + route.path,
        methods=sorted(route.methods),
        name=_declared_name(route, endpoint),
        controller=controller,
        action=action,
        middleware=middleware,
    )


def routes_from_app(app, prefix: str = "") -> list[RouteEntry]:
    """Enumerate the routes of a FastAPI or Starlette application."""
    entries: list[RouteEntry] = []
    for route in getattr(app, "routes", None) or []:
        if getattr(route, "methods", None) and getattr(route, "endpoint", None) is not None:
            entries.append(_entry(route, prefix))
        elif getattr(route, "routes", None):
            entries.extend(routes_from_app(route, prefix + getattr(route, "path", "")))
    return entries
