"""Client surface for the authentication plugin (users-permissions)."""

import logging

from strapi_typegen.parser.base import ParsedEndpoint, ParsedRoute, ParsedSchema
from strapi_typegen.parser.naming import to_camel_case
from strapi_typegen.parser.routes import endpoints_to_routes, parse_handler
from strapi_typegen.generator.custom_api import BODY_METHODS, template_path
from strapi_typegen.generator.document import ClassDecl, Interface, Method, Property, Raw
from strapi_typegen.generator.overloads import populate_overloads

logger = logging.getLogger(__name__)

AUTH_CONTROLLERS = ("auth", "user")
USER_ACTIONS = ("me", "updateMe", "count")
ERROR_PREFIX = "'Strapi Auth'"

# Routes the plugin exposes when the backend does not report its own.
DEFAULT_AUTH_ROUTES = (
    ("POST", "/auth/local", "plugin::users-permissions.auth.callback"),
    ("POST", "/auth/local/register", "plugin::users-permissions.auth.register"),
    ("GET", "/users/me", "plugin::users-permissions.user.me"),
    ("PUT", "/users/me", "plugin::users-permissions.user.updateMe"),
    ("GET", "/auth/:provider/callback", "plugin::users-permissions.auth.callback"),
    ("POST", "/auth/forgot-password", "plugin::users-permissions.auth.forgotPassword"),
    ("POST", "/auth/reset-password", "plugin::users-permissions.auth.resetPassword"),
    ("POST", "/auth/change-password", "plugin::users-permissions.auth.changePassword"),
    ("GET", "/auth/email-confirmation", "plugin::users-permissions.auth.emailConfirmation"),
    ("POST", "/auth/send-email-confirmation", "plugin::users-permissions.auth.sendEmailConfirmation"),
)

# action -> declared type of the request body
DATA_TYPES = {
    "register": "RegisterData",
    "forgotPassword": "ForgotPasswordData",
    "resetPassword": "ResetPasswordData",
    "changePassword": "ChangePasswordData",
    "sendEmailConfirmation": "{ email: string }",
}

RETURN_TYPES = {
    "callback": "AuthResponse",
    "register": "AuthResponse",
    "resetPassword": "AuthResponse",
    "changePassword": "AuthResponse",
    "forgotPassword": "{ ok: boolean }",
    "sendEmailConfirmation": "{ ok: boolean }",
    "emailConfirmation": "EmailConfirmationResponse",
    "count": "number",
}

AUTH_USER_FALLBACK = [
    Property(name="id", type="number"),
    Property(name="documentId", type="string"),
    Property(name="username", type="string"),
    Property(name="email", type="string"),
    Property(name="provider", type="string", optional=True),
    Property(name="confirmed", type="boolean", optional=True),
    Property(name="blocked", type="boolean", optional=True),
    Property(name="createdAt", type="string"),
    Property(name="updatedAt", type="string"),
]


def default_auth_routes() -> list[ParsedRoute]:
    endpoints = []
    for method, path, handler in DEFAULT_AUTH_ROUTES:
        controller, action = parse_handler(handler)
        endpoints.append(
            ParsedEndpoint(method=method, path=path, handler=handler, controller=controller, action=action)
        )
    return endpoints_to_routes(endpoints).all


def is_login(route: ParsedRoute) -> bool:
    return route.action == "callback" and route.method == "POST" and route.path == "/auth/local"


def is_oauth_callback(route: ParsedRoute) -> bool:
    return route.action == "callback" and route.method == "GET" and ":provider" in route.path


class AuthApiGenerator:
    """Auth payload types and the AuthAPI class.

    When the schema has no User content type, an ``AuthUser`` interface
    stands in for it, and me/updateMe fall back to untyped filters and
    populate keys.
    """

    def __init__(self, schema: ParsedSchema | None = None):
        schema = schema or ParsedSchema()
        user = next((ct for ct in schema.content_types if ct.clean_name == "User"), None)
        self.has_user = user is not None
        self.user_type = "User" if user else "AuthUser"
        self.user_filters = "UserFilters" if user else "Record<string, any>"
        self.user_populate = "UserPopulateParam" if user and user.is_populatable else "Record<string, any>"

    def auth_types(self) -> list:
        declarations = [Raw(text="// Auth API types for users-permissions plugin")]
        if not self.has_user:
            declarations.append(Interface(name="AuthUser", doc="Authenticated user", properties=AUTH_USER_FALLBACK))
        declarations += [
            Interface(name="LoginCredentials", properties=[
                Property(name="identifier", type="string"),
                Property(name="password", type="string"),
            ]),
            Interface(name="RegisterData", properties=[
                Property(name="username", type="string"),
                Property(name="email", type="string"),
                Property(name="password", type="string"),
            ]),
            Interface(name="AuthResponse", properties=[
                Property(name="jwt", type="string"),
                Property(name="user", type=self.user_type),
            ]),
            Interface(name="ForgotPasswordData", properties=[Property(name="email", type="string")]),
            Interface(name="ResetPasswordData", properties=[
                Property(name="code", type="string"),
                Property(name="password", type="string"),
                Property(name="passwordConfirmation", type="string"),
            ]),
            Interface(name="ChangePasswordData", properties=[
                Property(name="currentPassword", type="string"),
                Property(name="password", type="string"),
                Property(name="passwordConfirmation", type="string"),
            ]),
            Interface(name="EmailConfirmationResponse", properties=[
                Property(name="jwt", type="string"),
                Property(name="user", type=self.user_type),
            ]),
        ]
        return declarations

    def auth_class(
        self,
        auth_routes: list[ParsedRoute] | None = None,
        user_routes: list[ParsedRoute] | None = None,
    ) -> ClassDecl:
        auth_routes = auth_routes or []
        user_routes = [r for r in user_routes or [] if r.action in USER_ACTIONS]
        if auth_routes or user_routes:
            routes = [*auth_routes, *user_routes]
            comment = "Auth API wrapper for users-permissions plugin (generated from actual routes)"
        else:
            routes = default_auth_routes()
            comment = "Auth API wrapper for users-permissions plugin"

        members: list = [Raw(text="  constructor(config: StrapiClientConfig) {\n    super(config)\n  }")]
        seen = set()
        for route in routes:
            method = self.method(route)
            if method.name in seen:
                logger.debug("Skipping auth route %s %s: duplicate method %s", route.method, route.path, method.name)
                continue
            seen.add(method.name)
            members.append(method)
        if "logout" not in seen:
            members.append(Method(
                name="logout",
                returns="Promise<void>",
                doc="Logout current user (client-side token removal helper)",
                body=["this.config.token = undefined"],
            ))
        return ClassDecl(name="AuthAPI", extends="BaseAPI", members=members, comment=comment)

    def method(self, route: ParsedRoute) -> Method:
        if route.action == "me":
            return self._me(route)
        if route.action == "updateMe":
            return self._update_me(route)
        if is_oauth_callback(route):
            return self._oauth_callback(route)
        if route.action == "emailConfirmation":
            return self._confirm_email(route)
        return self._generic(route)

    def _doc(self, route: ParsedRoute, *extra: str) -> str:
        return "\n".join([f"{route.method} {route.path}", f"Handler: {route.handler}", *extra])

    def _generic(self, route: ParsedRoute) -> Method:
        name = "login" if is_login(route) else to_camel_case(route.action)
        returns = RETURN_TYPES.get(route.action, "any")
        if route.action == "findOne":
            returns = self.user_type
        elif route.action == "find":
            returns = f"{self.user_type}[]"

        params = [f"{param}: string" for param in route.params]
        data_type = "LoginCredentials" if is_login(route) else DATA_TYPES.get(route.action)
        if route.method in BODY_METHODS:
            params.append(f"data: {data_type}" if data_type else "data?: any")
        params.append("nextOptions?: NextOptions")

        body = [f"const url = `${{this.config.baseURL}}/api{template_path(route.path)}`"]
        if route.method in BODY_METHODS:
            payload = "JSON.stringify(data)" if data_type else "data ? JSON.stringify(data) : undefined"
            body += [
                f"return this.request<{returns}>(",
                "  url,",
                "  {",
                f"    method: '{route.method}',",
                f"    body: {payload},",
                "  },",
                "  nextOptions,",
                f"  {ERROR_PREFIX}",
                ")",
            ]
        else:
            options = "{}" if route.method == "GET" else f"{{ method: '{route.method}' }}"
            body += [f"return this.request<{returns}>(url, {options}, nextOptions, {ERROR_PREFIX})"]
        return Method(name=name, params=params, returns=f"Promise<{returns}>", doc=self._doc(route), body=body)

    def _me(self, route: ParsedRoute) -> Method:
        user = self.user_type
        return Method(
            name="me",
            params=["params?: any", "nextOptions?: any"],
            returns="Promise<any>",
            doc=self._doc(route, "Supports populate with automatic type inference"),
            overloads=populate_overloads(user, self.user_filters, self.user_populate, lambda t: f"Promise<{t}>"),
            body=[
                "const query = params ? this.buildQueryString(params) : ''",
                f"const url = `${{this.config.baseURL}}/api{template_path(route.path)}${{query}}`",
                f"return this.request<any>(url, {{}}, nextOptions, {ERROR_PREFIX})",
            ],
        )

    def _update_me(self, route: ParsedRoute) -> Method:
        user = self.user_type
        data = f"data: Partial<{user}>"
        return Method(
            name="updateMe",
            params=[data, "params?: any", "nextOptions?: any"],
            returns="Promise<any>",
            doc=self._doc(
                route,
                "Safe way to update current user without knowing their ID",
                "Supports populate with automatic type inference",
            ),
            overloads=populate_overloads(
                user, self.user_filters, self.user_populate, lambda t: f"Promise<{t}>", leading=[data]
            ),
            body=[
                "const query = params ? this.buildQueryString(params) : ''",
                f"const url = `${{this.config.baseURL}}/api{template_path(route.path)}${{query}}`",
                "return this.request<any>(",
                "  url,",
                "  {",
                f"    method: '{route.method}',",
                "    body: JSON.stringify(data),",
                "  },",
                "  nextOptions,",
                f"  {ERROR_PREFIX}",
                ")",
            ],
        )

    def _oauth_callback(self, route: ParsedRoute) -> Method:
        return Method(
            name="callback",
            params=["provider: string", "search?: string", "nextOptions?: NextOptions"],
            returns="Promise<AuthResponse>",
            doc=self._doc(
                route,
                "OAuth callback with query string support",
                "@param provider - OAuth provider name (google, github, etc.)",
                '@param search - Query string ("access_token=xxx&code=yyy" or "?access_token=xxx")',
            ),
            body=[
                f"let path = `/api{template_path(route.path)}`",
                "if (search) {",
                "  path += search.startsWith('?') ? search : `?${search}`",
                "}",
                "const url = `${this.config.baseURL}${path}`",
                f"return this.request<AuthResponse>(url, {{}}, nextOptions, {ERROR_PREFIX})",
            ],
        )

    def _confirm_email(self, route: ParsedRoute) -> Method:
        return Method(
            name="confirmEmail",
            params=["confirmationToken: string", "nextOptions?: NextOptions"],
            returns="Promise<EmailConfirmationResponse>",
            doc=self._doc(route, "Confirm user email address"),
            body=[
                f"const url = `${{this.config.baseURL}}/api{template_path(route.path)}"
                "?confirmation=${encodeURIComponent(confirmationToken)}`",
                f"return this.request<EmailConfirmationResponse>(url, {{}}, nextOptions, {ERROR_PREFIX})",
            ],
        )
