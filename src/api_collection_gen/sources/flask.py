"""Flask route source.

Walks ``app.url_map`` and ``app.view_functions``. Flask has no per-route
middleware, so decorators on the view (``login_required``, CSRF guards,
rate limiters) stand in for it; an ``api`` or ``web`` blueprint only tags
the route group. Class-based views yield one entry per HTTP method,
pointing at the matching method.
"""

from api_collection_gen.sources.base import GROUP_MIDDLEWARE, RouteEntry, decorator_ids, handler_ref


def _is_static(endpoint: str) -> bool:
    return endpoint == "static" or endpoint.endswith(".static")


def _declared_name(endpoint: str, view) -> str | None:
    short = endpoint.rsplit(".", 1)[-1]
    if short == getattr(view, "__name__", None):
        return None
    return endpoint


def routes_from_app(app) -> list[RouteEntry]:
    """Enumerate the routes of a Flask application."""
    entries: list[RouteEntry] = []
    for rule in app.url_map.iter_rules():
        if _is_static(rule.endpoint):
            continue
        view = app.view_functions.get(rule.endpoint)
        if view is None:
            continue

        middleware = []
        blueprint = rule.endpoint.split(".", 1)[0] if "." in rule.endpoint else None
        if blueprint in GROUP_MIDDLEWARE:
            middleware.append(blueprint)
        middleware.extend(decorator_ids(view))

        methods = sorted(rule.methods or [])
        view_class = getattr(view, "view_class", None)
        if view_class is not None:
            for method in methods:
                handler = getattr(view_class, method.lower(), None)
                if handler is None:
                    continue
                controller, action = handler_ref(handler)
                entries.append(
                    RouteEntry(
                        uri=rule.rule,
                        methods=[method],
                        name=rule.endpoint,
                        controller=controller,
                        action=action,
                        middleware=middleware + decorator_ids(handler),
                    )
                )
            continue

        controller, action = handler_ref(view)
        entries.append(
            RouteEntry(
                uri=rule.rule,
                methods=methods,
                name=_declared_name(rule.endpoint, view),
                controller=controller,
                action=action,
                middleware=middleware,
            )
        )
    return entries
