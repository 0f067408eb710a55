from pathlib import Path
from types import SimpleNamespace

import pytest

from api_collection_gen.errors import CollectionGenError
from api_collection_gen.sources import fastapi as fastapi_source
from api_collection_gen.sources import flask as flask_source
from api_collection_gen.sources.detect import detect_framework, load_app, load_routes
from api_collection_gen.sources.manifest import parse_manifest

FIXTURES = Path(__file__).parent / "fixtures"


def _fastapi_route(path, methods, endpoint, name=None, dependencies=()):
    return SimpleNamespace(
        path=path,
        methods=set(methods),
        endpoint=endpoint,
        name=name or endpoint.__name__,
        dependant=SimpleNamespace(dependencies=list(dependencies)),
    )


def _dependency(call, *nested):
    return SimpleNamespace(call=call, dependencies=list(nested))


class TestFastApiSource:
    def test_routes_and_dependencies(self, sample_app):
        app = SimpleNamespace(
            routes=[
                _fastapi_route(
                    "/api/posts",
                    ["POST"],
                    sample_app.create_post,
                    dependencies=[_dependency(sample_app.require_jwt_auth, _dependency(sample_app.verify_csrf))],
                ),
                SimpleNamespace(path="/static", name="static"),
            ]
        )
        entries = fastapi_source.routes_from_app(app)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.uri == "/api/posts"
        assert entry.methods == ["POST"]
        assert entry.name is None
        assert entry.controller == "sample_app"
        assert entry.action == "create_post"
        assert entry.middleware == ["sample_app.require_jwt_auth", "sample_app.verify_csrf"]

    def test_mounted_routes_get_prefix(self, sample_app):
        inner = _fastapi_route("/users/{id:int}", ["GET", "HEAD"], sample_app.UserController.index, name="users.show")
        app = SimpleNamespace(routes=[SimpleNamespace(path="/api", routes=[inner])])
        entry = fastapi_source.routes_from_app(app)[0]
        assert entry.uri == "/api/users/{id:int}"
        assert entry.name == "users.show"
        assert entry.controller == "sample_app.UserController"
        assert entry.action == "index"

    def test_decorators_become_middleware(self, sample_app):
        app = SimpleNamespace(routes=[_fastapi_route("/dashboard", ["GET"], sample_app.show_dashboard)])
        entry = fastapi_source.routes_from_app(app)[0]
        assert entry.middleware == ["sample_app.login_required"]
        assert entry.action == "show_dashboard"

    def test_request_form_dependency(self, sample_app):
        app = SimpleNamespace(
            routes=[
                _fastapi_route(
                    "/api/token",
                    ["POST"],
                    sample_app.login,
                    dependencies=[_dependency(sample_app.OAuth2PasswordRequestForm)],
                )
            ]
        )
        entry = fastapi_source.routes_from_app(app)[0]
        assert entry.middleware == ["sample_app.OAuth2PasswordRequestForm"]
        assert (entry.controller, entry.action) == ("sample_app", "login")


class TestFlaskSource:
    def _app(self, rules, views):
        return SimpleNamespace(
            url_map=SimpleNamespace(iter_rules=lambda: rules),
            view_functions=views,
        )

    def test_function_views(self, sample_app):
        rules = [
            SimpleNamespace(rule="/api/dashboard", endpoint="api.show_dashboard", methods={"GET", "HEAD", "OPTIONS"}),
            SimpleNamespace(rule="/static/<path:filename>", endpoint="static", methods={"GET"}),
        ]
        app = self._app(rules, {"api.show_dashboard": sample_app.show_dashboard, "static": object()})
        entries = flask_source.routes_from_app(app)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.uri == "/api/dashboard"
        assert entry.name is None
        assert entry.middleware == ["api", "sample_app.login_required"]
        assert (entry.controller, entry.action) == ("sample_app", "show_dashboard")

    def test_class_based_view(self, sample_app):
        def view():
            return None

        view.view_class = sample_app.UserView
        rules = [SimpleNamespace(rule="/users/<int:id>", endpoint="user_api", methods={"GET", "DELETE", "HEAD"})]
        entries = flask_source.routes_from_app(self._app(rules, {"user_api": view}))
        assert [(e.methods, e.action) for e in entries] == [(["DELETE"], "delete"), (["GET"], "get")]
        assert all(e.controller == "sample_app.UserView" for e in entries)
        assert all(e.name == "user_api" for e in entries)

    def test_only_group_blueprints_become_middleware(self, sample_app):
        rules = [
            SimpleNamespace(rule="/api/auth/login", endpoint="auth.login", methods={"POST", "OPTIONS"}),
            SimpleNamespace(rule="/web/home", endpoint="web.login", methods={"GET"}),
        ]
        entries = flask_source.routes_from_app(self._app(rules, {"auth.login": sample_app.login, "web.login": sample_app.login}))
        assert entries[0].middleware == []
        assert entries[1].middleware == ["web"]


class TestManifest:
    def test_parse_manifest(self):
        entries = parse_manifest(FIXTURES / "routes.yaml")
        assert len(entries) == 3
        assert entries[1].methods == ["DELETE"]
        assert entries[2].controller is None

    def test_invalid_manifest(self, tmp_path):
        bad = tmp_path / "routes.yaml"
        bad.write_text("routes: {uri: /x}\n", encoding="utf-8")
        with pytest.raises(CollectionGenError):
            parse_manifest(bad)

    def test_missing_fields(self, tmp_path):
        bad = tmp_path / "routes.yaml"
        bad.write_text("- uri: /x\n", encoding="utf-8")
        with pytest.raises(CollectionGenError):
            parse_manifest(bad)

    def test_load_routes_expands_verbs(self):
        routes = load_routes(manifest=FIXTURES / "routes.yaml")
        assert [(r.method, r.uri) for r in routes] == [
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("DELETE", "/api/users/{id}"),
            ("GET", "/api/health"),
        ]
        assert routes[2].middleware == ("api", "auth")
        assert routes[0].declared_name == "users.index"


class TestDetect:
    def test_detect_framework(self):
        assert detect_framework(SimpleNamespace(url_map=None, view_functions={})) == "flask"
        assert detect_framework(SimpleNamespace(routes=[])) == "fastapi"
        with pytest.raises(CollectionGenError):
            detect_framework(object())

    def test_load_app(self, sample_app):
        assert load_app("sample_app:UserController", FIXTURES) is sample_app.UserController

    def test_load_app_factory(self, sample_app):
        assert load_app("sample_app:show_dashboard()", FIXTURES) == {}

    def test_load_app_bad_reference(self):
        with pytest.raises(CollectionGenError):
            load_app("no_colon")

    def test_load_routes_needs_a_source(self):
        with pytest.raises(CollectionGenError):
            load_routes()

    def test_load_app_import_failure(self, monkeypatch):
        monkeypatch.delenv("BROKEN_APP_DATABASE_URL", raising=False)
        with pytest.raises(CollectionGenError, match="Cannot import broken_app"):
            load_app("broken_app:app", FIXTURES)

    def test_load_app_factory_failure(self, sample_app):
        with pytest.raises(CollectionGenError, match="SECRET_KEY is not set"):
            load_app("sample_app:create_app()", FIXTURES)
