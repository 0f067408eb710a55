"""Endpoint naming and description.

Names are derived from the verb and the shape of the path so that
``GET /api/users`` becomes "Get All Users" and ``PUT /users/{id}`` becomes
"Update User". A declared route name longer than a few characters takes
precedence over the computed one.
"""

import re

from api_collection_gen.sources.base import GROUP_MIDDLEWARE, RouteDescriptor

VERB_WORDS = {
    "GET": "Get",
    "POST": "Create",
    "PUT": "Update",
    "PATCH": "Update",
    "DELETE": "Delete",
}

VERB_MEANINGS = {
    "GET": "Retrieves the requested resource.",
    "POST": "Creates a new resource.",
    "PUT": "Fully updates (replaces) the specified resource.",
    "PATCH": "Partially updates the specified resource.",
    "DELETE": "Removes the specified resource.",
}

DECLARED_NAME_MIN_LENGTH = 5

_PARAM = re.compile(r"^\{(\w+)\??\}$")
_SEPARATORS = re.compile(r"[._\-\s]+")


def verb_word(method: str) -> str:
    return VERB_WORDS.get(method.upper(), method.upper())


def is_param(segment: str) -> bool:
    return bool(_PARAM.match(segment))


def param_name(segment: str) -> str:
    match = _PARAM.match(segment)
    return match.group(1) if match else segment


def singularize(word: str) -> str:
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("es") and len(word) > 3:
        return word[:-2]
    if word.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


def pluralize(word: str) -> str:
    # The "{Resource}s" name templates use this rather than a bare "s",
    # so "Category" gives "Categories" instead of "Categorys".
    if len(word) > 1 and word.endswith("y") and word[-2].lower() not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


def humanize(text: str) -> str:
    """``user_profile`` / ``user-profile`` / ``users.show`` -> ``User Profile`` style."""
    return " ".join(part.capitalize() for part in _SEPARATORS.split(param_name(text)) if part)


def resource(segment: str) -> str:
    return humanize(singularize(param_name(segment)))


def path_segments(uri: str) -> list[str]:
    """Path segments with a leading ``api`` segment removed."""
    segments = [s for s in uri.strip("/").split("/") if s]
    if segments and segments[0].lower() == "api":
        segments = segments[1:]
    return segments


class NamingEngine:
    """Derives a human name and a markdown description for a route."""

    def name(self, route: RouteDescriptor) -> str:
        computed = self.computed_name(route)
        declared = self.declared_name(route)

        if declared and len(declared) > DECLARED_NAME_MIN_LENGTH:
            return declared
        if computed:
            return computed
        if declared:
            return declared
        return self.fallback_name(route)

    def declared_name(self, route: RouteDescriptor) -> str | None:
        if not route.declared_name:
            return None
        return humanize(route.declared_name) or None

    def fallback_name(self, route: RouteDescriptor) -> str:
        if route.action:
            return f"{verb_word(route.method)} {humanize(route.action)}"
        return f"{verb_word(route.method)} {route.uri}"

    def computed_name(self, route: RouteDescriptor) -> str | None:
        method = route.method.upper()
        verb = verb_word(method)
        segments = path_segments(route.uri)

        if not segments:
            return f"{verb} Root"

        if len(segments) == 1:
            raw = param_name(segments[0])
            name = resource(raw)
            if method == "GET":
                if raw.endswith("s"):
                    return f"Get All {pluralize(name)}"
                return f"Get Current {name}"
            if method == "POST":
                return f"Create {name}"
            return f"{verb} {name}"

        if is_param(segments[-1]):
            name = resource(segments[0])
            if method == "GET":
                return f"Get {name} by {humanize(segments[-1])}"
            if method in ("PUT", "PATCH"):
                return f"Update {name}"
            if method == "DELETE":
                return f"Delete {name}"
            return None

        if len(segments) >= 3 and is_param(segments[1]):
            parent = resource(segments[0])
            child = resource(segments[-1])
            if method == "GET":
                return f"Get {pluralize(child)} for {parent}"
            if method == "POST":
                return f"Create {child} for {parent}"
            return None

        name = resource(segments[-1])
        if method == "GET":
            return f"Get {pluralize(name)}"
        if method == "POST":
            return f"Create {name}"
        return None

    def describe(self, route: RouteDescriptor, parameters: list[str] | None = None) -> str:
        """Markdown description of the route.

        ``parameters`` lists inputs required by middleware, if any.
        """
        method = route.method.upper()
        lines = [f"**{method}** `{route.uri}`"]

        if route.declared_name:
            lines.append(f"**Route name:** `{route.declared_name}`")

        lines.append(VERB_MEANINGS.get(method, f"Performs a {method} request."))

        if route.controller_ref:
            lines.append(f"**Handler:** `{route.controller_ref}`")

        middleware = [m for m in route.middleware if m not in GROUP_MIDDLEWARE]
        if middleware:
            lines.append("**Middleware:** " + ", ".join(f"`{m}`" for m in middleware))

        if parameters:
            lines.append("**Required inputs:** " + ", ".join(f"`{p}`" for p in parameters))

        return "\n\n".join(lines)
