import json
from pathlib import Path

from strapi_typegen.generator.auth_api import AuthApiGenerator, default_auth_routes
from strapi_typegen.parser.base import ParsedRoute
from strapi_typegen.parser.routes import endpoints_to_routes, load_endpoints
from strapi_typegen.parser.structured import extract_structured

FIXTURES = Path(__file__).parent / "fixtures"


def _schema():
    return extract_structured(json.loads((FIXTURES / "schema.json").read_text(encoding="utf-8")))


def _methods(cls):
    return [m.name for m in cls.members if m.kind == "method"]


class TestAuthTypes:
    def test_with_user_entity(self):
        gen = AuthApiGenerator(_schema())
        names = [getattr(d, "name", None) for d in gen.auth_types()]
        assert "AuthUser" not in names
        response = [d for d in gen.auth_types() if getattr(d, "name", None) == "AuthResponse"][0]
        assert response.find_property("user").type == "User"

    def test_fallback_user(self):
        gen = AuthApiGenerator()
        declarations = gen.auth_types()
        assert declarations[1].name == "AuthUser"
        assert gen.user_filters == "Record<string, any>"


class TestDefaultAuthClass:
    def test_fixed_method_set(self):
        cls = AuthApiGenerator(_schema()).auth_class()
        assert _methods(cls) == [
            "login",
            "register",
            "me",
            "updateMe",
            "callback",
            "forgotPassword",
            "resetPassword",
            "changePassword",
            "confirmEmail",
            "sendEmailConfirmation",
            "logout",
        ]
        assert cls.comment == "Auth API wrapper for users-permissions plugin"

    def test_default_routes(self):
        routes = default_auth_routes()
        assert len(routes) == 10
        assert routes[0].controller == "auth"
        assert routes[4].params == ["provider"]

    def test_login(self):
        login = AuthApiGenerator(_schema()).auth_class().method("login")
        assert login.params == ["data: LoginCredentials", "nextOptions?: NextOptions"]
        assert login.returns == "Promise<AuthResponse>"
        assert "    body: JSON.stringify(data)," in login.body

    def test_me_has_populate_overloads(self):
        me = AuthApiGenerator(_schema()).auth_class().method("me")
        assert [s.form for s in me.overloads] == ["object", "wildcard", "array", "general"]
        assert me.overloads[3].returns == "Promise<SelectFields<User, User, TFields>>"
        # User has no populatable fields
        assert me.overloads[0].type_params[0] == "const TPopulate extends Record<string, any>"

    def test_update_me_takes_data_first(self):
        update_me = AuthApiGenerator(_schema()).auth_class().method("updateMe")
        assert all(s.params[0] == "data: Partial<User>" for s in update_me.overloads)

    def test_oauth_callback(self):
        callback = AuthApiGenerator(_schema()).auth_class().method("callback")
        assert callback.params[0] == "provider: string"
        assert callback.body[0] == "let path = `/api/auth/${provider}/callback`"

    def test_confirm_email_encodes_token(self):
        confirm = AuthApiGenerator(_schema()).auth_class().method("confirmEmail")
        assert "encodeURIComponent(confirmationToken)" in confirm.body[0]

    def test_without_user_entity(self):
        me = AuthApiGenerator().auth_class().method("me")
        assert me.overloads[3].returns == "Promise<SelectFields<AuthUser, AuthUser, TFields>>"


class TestRouteDrivenAuthClass:
    def _class(self):
        routes = endpoints_to_routes(
            load_endpoints(json.loads((FIXTURES / "routes.json").read_text(encoding="utf-8")))
        )
        gen = AuthApiGenerator(_schema())
        return gen.auth_class(routes.by_controller.get("auth"), routes.by_controller.get("user"))

    def test_methods_follow_routes(self):
        cls = self._class()
        assert _methods(cls) == ["login", "me", "updateMe", "logout"]
        assert cls.comment.endswith("(generated from actual routes)")

    def test_duplicate_names_are_skipped(self):
        routes = [
            ParsedRoute(method="POST", path="/auth/refresh", handler="auth.refresh", controller="auth", action="refresh"),
            ParsedRoute(method="GET", path="/auth/refresh", handler="auth.refresh", controller="auth", action="refresh"),
        ]
        cls = AuthApiGenerator().auth_class(routes)
        assert _methods(cls) == ["refresh", "logout"]
        assert cls.method("refresh").params == ["data?: any", "nextOptions?: NextOptions"]

    def test_user_count_returns_number(self):
        routes = [ParsedRoute(method="GET", path="/users", handler="user.count", controller="user", action="count")]
        count = AuthApiGenerator(_schema()).auth_class(None, routes).method("count")
        assert count.returns == "Promise<number>"
