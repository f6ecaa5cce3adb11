# File: testgen/resolver.py
"""
testgen - Authentication & Route Resolution
============================================
Decides how a generated test authenticates and how it calls the route
under test.

Two layers:

* Pure helpers: ``resolve_auth_flags`` / ``resolve_auth_mode`` and
  ``build_route_expression`` take descriptors and return values, nothing
  else.
* ``AuthAndRouteResolver``: one instance per route per generation request.
  It computes the auth flags once on construction and accumulates the
  namespaces the rendered snippets need.

Nothing here raises on odd input: a middleware set with no auth marker is
"no auth", and a route parameter that names neither the model nor (when
enabled) its parent renders with an empty value.

Both token snippets grant the bare wildcard ability ``['*']``. Sanctum
checks abilities by exact string, so a padded ``[' * ']`` would grant an
ability literally named " * " instead of every ability.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from testgen.models import (
    DEFAULT_AUTH_MIDDLEWARE,
    PASSPORT_AUTH_MIDDLEWARE,
    SANCTUM_AUTH_MIDDLEWARE,
    WEB_AUTH_MIDDLEWARE,
    AuthMode,
    EntityRef,
    GenerationConfig,
    ResolvedInvocation,
    RouteDescriptor,
)
from testgen.utils import lcfirst, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen.resolver")

# ---------------------------------------------------------------------------
# Snippets
# ---------------------------------------------------------------------------

SANCTUM_NAMESPACE: str = "Laravel\\Sanctum\\Sanctum"
PASSPORT_NAMESPACE: str = "Laravel\\Passport\\Passport"

SANCTUM_ACTING_AS: str = "Sanctum::actingAs($user, ['*']);"
PASSPORT_ACTING_AS: str = "Passport::actingAs($user, ['*']);"
WEB_ACTING_AS: str = "actingAs($user)->"


# ---------------------------------------------------------------------------
# Auth flags
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AuthFlags:
    """
    Which authentication markers a route carries.

    ``required`` is true whenever any recognised marker is present, which
    can happen without any flag being set when the recognised list has been
    overridden with custom names.
    """

    required: bool = False
    web: bool = False
    sanctum: bool = False
    passport: bool = False

    @property
    def mode(self) -> AuthMode:
        if self.sanctum:
            return AuthMode.TOKEN_SANCTUM
        if self.passport:
            return AuthMode.TOKEN_PASSPORT
        if self.web:
            return AuthMode.WEB_SESSION
        return AuthMode.NONE


def resolve_auth_flags(
    middleware: Iterable[str],
    auth_middleware: Sequence[str] = tuple(DEFAULT_AUTH_MIDDLEWARE),
) -> AuthFlags:
    """
    Intersect a route's middleware with the recognised auth markers.

    Args:
        middleware: Middleware names gathered from the route.
        auth_middleware: Names treated as authentication markers.

    Returns:
        An ``AuthFlags`` record. Order of either input is irrelevant.
    """
    matched: frozenset = frozenset(auth_middleware) & frozenset(middleware)
    return AuthFlags(
        required=bool(matched),
        web=WEB_AUTH_MIDDLEWARE in matched,
        sanctum=SANCTUM_AUTH_MIDDLEWARE in matched,
        passport=PASSPORT_AUTH_MIDDLEWARE in matched,
    )


def resolve_auth_mode(
    middleware: Iterable[str],
    auth_middleware: Sequence[str] = tuple(DEFAULT_AUTH_MIDDLEWARE),
) -> AuthMode:
    """Single-value form of ``resolve_auth_flags``."""
    return resolve_auth_flags(middleware, auth_middleware).mode


# ---------------------------------------------------------------------------
# Route expression
# ---------------------------------------------------------------------------


def model_variable(short_name: str) -> str:
    """``Post`` → ``$post``; ``BlogPost`` → ``$blogPost``."""
    return f"${lcfirst(short_name)}"


def build_route_expression(
    route: RouteDescriptor,
    entity: EntityRef,
    parent: Optional[EntityRef] = None,
) -> str:
    """
    Render the ``route()`` call for *route*.

    A parameter whose name equals the entity short name (case-insensitive)
    binds to ``$<entity>-><route_key_name>``. When *parent* is given, a
    parameter naming the parent binds the same way to the parent. Every
    other parameter gets an empty value.

    Examples:
        route named ``posts.index`` without parameters::

            route("posts.index")

        route ``posts.show`` with ``["post"]`` and entity ``Post``::

            route("posts.show",["post" => $post->id, ])
    """
    if not route.parameter_names:
        return f'route("{route.name}")'

    params: List[str] = []
    for param in route.parameter_names:
        if param.lower() == entity.short_name.lower():
            value: str = f"{model_variable(entity.short_name)}->{entity.route_key_name}"
        elif parent is not None and param.lower() == parent.short_name.lower():
            value = f"{model_variable(parent.short_name)}->{parent.route_key_name}"
        else:
            value = ""
            logger.debug(
                "Route '%s': parameter '%s' does not name '%s'; leaving it blank.",
                route.name,
                param,
                entity.short_name,
            )
        params.append(f'"{param}" => {value}, ')

    return f'route("{route.name}",[{"".join(params)}])'


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class AuthAndRouteResolver:
    """
    Per-route resolver feeding the test templates.

    Usage::

        resolver = AuthAndRouteResolver(route, entity, config=config)
        resolver.web_acting_as()      # 'actingAs($user)->' or ''
        resolver.api_acting_as()      # token statement or ''
        resolver.namespaces           # imports recorded so far

    Construct a fresh instance for every route of every generation run;
    the recorded namespaces are not meant to be shared.
    """

    def __init__(
        self,
        route: RouteDescriptor,
        entity: EntityRef,
        *,
        config: Optional[GenerationConfig] = None,
        parent: Optional[EntityRef] = None,
    ) -> None:
        self._route: RouteDescriptor = route
        self._entity: EntityRef = entity
        self._parent: Optional[EntityRef] = parent
        self._config: GenerationConfig = config or GenerationConfig()
        self._flags: AuthFlags = resolve_auth_flags(
            route.middleware, self._config.auth_middleware
        )
        self._namespaces: Dict[str, None] = {}

        if parent is not None:
            self._add_namespace(parent.class_name)

        logger.debug(
            "Resolver for route '%s': auth=%s mode=%s.",
            route.name,
            self._flags.required,
            self._flags.mode.value,
        )

    # -----------------------------------------------------------------
    # Auth
    # -----------------------------------------------------------------

    @property
    def flags(self) -> AuthFlags:
        return self._flags

    @property
    def auth_mode(self) -> AuthMode:
        return self._flags.mode

    def is_auth_required(self) -> bool:
        """Whether the route carries any recognised auth middleware."""
        return self._flags.required

    def has_super_admin_role(self) -> bool:
        return self._config.has_super_admin_role

    def sanctum_acting_as(self) -> str:
        if not self._flags.sanctum:
            return ""
        self._add_namespace(SANCTUM_NAMESPACE)
        return SANCTUM_ACTING_AS

    def passport_acting_as(self) -> str:
        if not self._flags.passport:
            return ""
        self._add_namespace(PASSPORT_NAMESPACE)
        return PASSPORT_ACTING_AS

    def web_acting_as(self) -> str:
        if not self._flags.web:
            return ""
        return WEB_ACTING_AS

    def api_acting_as(self) -> str:
        """
        Token acting-as statement, Sanctum before Passport.

        Returns ``""`` for session-only routes; use ``web_acting_as`` for
        those.
        """
        if self._flags.sanctum:
            return self.sanctum_acting_as()
        if self._flags.passport:
            return self.passport_acting_as()
        return ""

    # -----------------------------------------------------------------
    # Route
    # -----------------------------------------------------------------

    def model_variable(self) -> str:
        return model_variable(self._entity.short_name)

    def parent_variable(self) -> str:
        if self._parent is None:
            return ""
        return model_variable(self._parent.short_name)

    def build_route_expression(self) -> str:
        parent: Optional[EntityRef] = (
            self._parent if self._config.resolve_parent_parameters else None
        )
        return build_route_expression(self._route, self._entity, parent)

    # -----------------------------------------------------------------
    # Aggregates
    # -----------------------------------------------------------------

    @property
    def namespaces(self) -> List[str]:
        """Recorded imports in first-recorded order."""
        return list(self._namespaces)

    def resolve(self) -> ResolvedInvocation:
        """Render the route call and both acting-as forms in one record."""
        route_expression: str = self.build_route_expression()
        api_acting_as: str = self.api_acting_as()
        web_acting_as: str = self.web_acting_as()
        return ResolvedInvocation(
            route_expression=route_expression,
            api_acting_as=api_acting_as,
            web_acting_as=web_acting_as,
            required_imports=self.namespaces,
        )

    def global_variables(self) -> Dict[str, str]:
        """Variables shared by every test template for this route."""
        return {
            "model_variable": self.model_variable(),
            "model_short_name": self._entity.short_name,
            "route": self.build_route_expression(),
            "model_method_name": to_snake_case(self._entity.short_name),
            "api_acting_as": self.api_acting_as(),
            "web_acting_as": self.web_acting_as(),
            "table": self._entity.table_name,
        }

    def _add_namespace(self, name: str) -> None:
        self._namespaces.setdefault(name, None)

    def __repr__(self) -> str:
        return (
            f"<AuthAndRouteResolver {self._route.name} "
            f"mode={self._flags.mode.value}>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SANCTUM_NAMESPACE",
    "PASSPORT_NAMESPACE",
    "SANCTUM_ACTING_AS",
    "PASSPORT_ACTING_AS",
    "WEB_ACTING_AS",
    "AuthFlags",
    "resolve_auth_flags",
    "resolve_auth_mode",
    "model_variable",
    "build_route_expression",
    "AuthAndRouteResolver",
]

logger.debug("testgen.resolver loaded.")
