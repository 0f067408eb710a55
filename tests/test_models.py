import pytest
from pydantic import ValidationError

from api_collection_gen.sources.base import (
    RouteDescriptor,
    RouteEntry,
    callable_id,
    expand_routes,
    filter_routes,
    normalize_uri,
)


class TestNormalizeUri:
    def test_adds_leading_slash(self):
        assert normalize_uri("api/users") == "/api/users"

    def test_flask_converters(self):
        assert normalize_uri("/users/<int:id>/files/<path:name>") == "/users/{id}/files/{name}"
        assert normalize_uri("/users/<id>") == "/users/{id}"

    def test_starlette_converters(self):
        assert normalize_uri("/users/{id:int}") == "/users/{id}"


class TestRouteDescriptor:
    def test_method_uppercased(self):
        assert RouteDescriptor(uri="/x", method="get").method == "GET"

    def test_frozen(self):
        route = RouteDescriptor(uri="/x", method="GET")
        with pytest.raises(ValidationError):
            route.uri = "/y"

    def test_controller_ref(self):
        route = RouteDescriptor(uri="/x", method="GET", controller="app.UserController", action="index")
        assert route.controller_ref == "app.UserController.index"
        assert RouteDescriptor(uri="/x", method="GET").controller_ref is None


class TestExpandRoutes:
    def test_one_descriptor_per_verb(self):
        entries = [RouteEntry(uri="/api/users", methods=["GET", "HEAD", "OPTIONS", "POST"], middleware=["api", "auth", "api"])]
        routes = expand_routes(entries)
        assert [r.method for r in routes] == ["GET", "POST"]
        assert routes[0].middleware == ("api", "auth")

    def test_empty_name_is_none(self):
        routes = expand_routes([RouteEntry(uri="/x", methods=["GET"], name="")])
        assert routes[0].declared_name is None


class TestFilterRoutes:
    def _routes(self):
        return [
            RouteDescriptor(uri="/api/users", method="GET"),
            RouteDescriptor(uri="/api/telescope/entries", method="GET"),
            RouteDescriptor(uri="/login", method="POST"),
            RouteDescriptor(uri="/health", method="GET", middleware=("api",)),
            RouteDescriptor(uri="/api/users", method="HEAD"),
        ]

    def test_api_group(self):
        uris = [r.uri for r in filter_routes(self._routes(), ("api",), ("telescope",))]
        assert uris == ["/api/users", "/health"]

    def test_web_group(self):
        assert [r.uri for r in filter_routes(self._routes(), ("web",))] == ["/login"]

    def test_all(self):
        assert len(filter_routes(self._routes(), ("all",))) == 4

    def test_empty_include_means_all(self):
        assert len(filter_routes(self._routes(), ())) == 4


def test_callable_id_for_instance():
    class Guard:
        pass

    assert callable_id(len) == "builtins.len"
    assert callable_id(Guard()).endswith("test_callable_id_for_instance")
