# File: testgen/models.py
"""
testgen - Core Data Models
===========================
Pydantic V2 records describing what the host framework reports about a
controller (its routes, their middleware, the bound model) and the
configuration of a generation run.

These models are the single source of truth for the whole pipeline:
Definition Parsing → Validation → Test Rendering → Export.

Route and entity descriptors are frozen: they are supplied once per
generation request and never mutated.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from testgen.utils import lcfirst, ordered_unique, to_plural, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen.models")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BACKSLASH: str = "\\"

WEB_AUTH_MIDDLEWARE: str = "auth"
SANCTUM_AUTH_MIDDLEWARE: str = "auth:sanctum"
PASSPORT_AUTH_MIDDLEWARE: str = "auth:api"

DEFAULT_AUTH_MIDDLEWARE: List[str] = [
    WEB_AUTH_MIDDLEWARE,
    SANCTUM_AUTH_MIDDLEWARE,
    PASSPORT_AUTH_MIDDLEWARE,
]

# Verb used when a route does not report its HTTP method
_ACTION_HTTP_METHODS: Dict[str, str] = {
    "index": "GET",
    "show": "GET",
    "create": "GET",
    "edit": "GET",
    "store": "POST",
    "update": "PUT",
    "destroy": "DELETE",
}

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AuthMode(str, Enum):
    """Authentication mode a generated test must simulate."""

    NONE = "none"
    WEB_SESSION = "web_session"
    TOKEN_SANCTUM = "token_sanctum"
    TOKEN_PASSPORT = "token_passport"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Descriptors supplied by the host framework
# ---------------------------------------------------------------------------


class RouteDescriptor(BaseModel):
    """
    One route as reported by the host router.

    ``parameter_names`` keeps the declared order: the generated ``route()``
    call only binds correctly when arguments follow the route's own order.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Route name, e.g. 'posts.show'.")
    parameter_names: List[str] = Field(
        default_factory=list,
        alias="parameters",
        description="Ordered route parameter names.",
    )
    middleware: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Gathered middleware names attached to the route.",
    )
    action: str = Field(
        default="",
        description="Controller method the route dispatches to, e.g. 'show'.",
    )
    http_method: Optional[str] = Field(
        default=None,
        description="HTTP verb(s) as reported by the router, e.g. 'GET|HEAD'.",
    )
    uri: Optional[str] = Field(default=None, description="Route URI (informational).")

    @computed_field  # type: ignore[misc]
    @property
    def resolved_http_method(self) -> str:
        """First reported verb, or the conventional verb for the action."""
        if self.http_method:
            return self.http_method.split("|")[0].strip().upper()
        return _ACTION_HTTP_METHODS.get(self.action.lower(), "GET")

    def __repr__(self) -> str:
        return f"<Route {self.name} params={self.parameter_names}>"


class EntityRef(BaseModel):
    """The model a controller's routes are bound to."""

    model_config = _FROZEN_CONFIG

    short_name: str = Field(..., min_length=1, description="Class short name, e.g. 'Post'.")
    route_key_name: str = Field(
        default="id",
        min_length=1,
        description="Field the route binding resolves on.",
    )
    table: Optional[str] = Field(
        default=None, description="Owning table; passed through to templates."
    )
    namespace: str = Field(
        default="App\\Models", description="PHP namespace of the model class."
    )

    @computed_field  # type: ignore[misc]
    @property
    def class_name(self) -> str:
        """Fully-qualified PHP class name."""
        return f"{self.namespace.rstrip(BACKSLASH)}\\{self.short_name}"

    @computed_field  # type: ignore[misc]
    @property
    def table_name(self) -> str:
        """Explicit table, or the framework's default (plural snake case)."""
        return self.table or to_plural(to_snake_case(self.short_name))

    @computed_field  # type: ignore[misc]
    @property
    def variable(self) -> str:
        """PHP variable holding an instance, e.g. ``$blogPost``."""
        return f"${lcfirst(self.short_name)}"

    def __repr__(self) -> str:
        return f"<Entity {self.short_name} key={self.route_key_name}>"


# ---------------------------------------------------------------------------
# Resolver output
# ---------------------------------------------------------------------------


class ResolvedInvocation(BaseModel):
    """Rendered route call plus the imports needed to make it compile."""

    model_config = _SHARED_CONFIG

    route_expression: str = Field(..., description="Rendered route() call.")
    api_acting_as: str = Field(default="", description="Token acting-as statement.")
    web_acting_as: str = Field(default="", description="Session acting-as fragment.")
    required_imports: List[str] = Field(
        default_factory=list,
        description="Fully-qualified class names, ordered, without duplicates.",
    )

    @field_validator("required_imports")
    @classmethod
    def _dedupe_imports(cls, v: List[str]) -> List[str]:
        return ordered_unique(v)


# ---------------------------------------------------------------------------
# Definition of what to generate
# ---------------------------------------------------------------------------


class ControllerDefinition(BaseModel):
    """A resource controller and the routes that dispatch to it."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Controller class short name.")
    api: bool = Field(default=False, description="JSON API controller?")
    model: EntityRef = Field(..., description="Model the routes are bound to.")
    parent: Optional[EntityRef] = Field(
        default=None, description="Parent model for nested resource controllers."
    )
    routes: List[RouteDescriptor] = Field(
        ..., min_length=1, description="Routes dispatching to this controller."
    )

    @computed_field  # type: ignore[misc]
    @property
    def test_class_name(self) -> str:
        return f"{self.name}Test"

    @model_validator(mode="after")
    def _unique_route_names(self) -> "ControllerDefinition":
        names: List[str] = [r.name for r in self.routes]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(
                f"Controller '{self.name}' lists duplicate routes: {dupes}"
            )
        return self

    def __repr__(self) -> str:
        return f"<Controller {self.name} ({len(self.routes)} routes)>"


class TestSuiteDefinition(BaseModel):
    """Root model: every controller to generate tests for."""

    __test__ = False  # not a pytest test class

    model_config = _SHARED_CONFIG

    controllers: List[ControllerDefinition] = Field(
        ..., min_length=1, description="Controllers to generate tests for."
    )
    source_file: Optional[str] = Field(
        default=None, description="Definition file path."
    )
    parsed_at: Optional[datetime] = Field(
        default=None, description="Timestamp when the definition was parsed."
    )

    @model_validator(mode="after")
    def _unique_controller_names(self) -> "TestSuiteDefinition":
        names: List[str] = [c.name for c in self.controllers]
        if len(names) != len(set(names)):
            dupes: List[str] = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate controller names: {dupes}")
        return self

    @computed_field  # type: ignore[misc]
    @property
    def route_count(self) -> int:
        return sum(len(c.routes) for c in self.controllers)

    def get_controller(self, name: str) -> Optional[ControllerDefinition]:
        for controller in self.controllers:
            if controller.name == name:
                return controller
        return None

    def __repr__(self) -> str:
        return (
            f"<TestSuiteDefinition {len(self.controllers)} controllers, "
            f"{self.route_count} routes>"
        )


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Settings for one generation run.

    Every resolver receives this instance explicitly; nothing is read from
    process-wide state.
    """

    model_config = _SHARED_CONFIG

    # -- Authentication -----------------------------------------------------
    auth_middleware: List[str] = Field(
        default_factory=lambda: list(DEFAULT_AUTH_MIDDLEWARE),
        description="Middleware names recognised as authentication markers.",
    )
    has_super_admin_role: bool = Field(
        default=False,
        description="Application grants a super admin role to the acting user.",
    )
    super_admin_role: str = Field(
        default="super-admin", min_length=1, description="Role name to assign."
    )
    user_model: str = Field(
        default="App\\Models\\User", min_length=1, description="Acting user class."
    )

    # -- Route resolution ---------------------------------------------------
    resolve_parent_parameters: bool = Field(
        default=False,
        description=(
            "Resolve a route parameter naming the parent model to the parent "
            "variable instead of leaving it blank."
        ),
    )

    # -- Output shape -------------------------------------------------------
    test_namespace: str = Field(
        default="Tests\\Feature", min_length=1, description="Namespace of test classes."
    )
    base_test_case: str = Field(
        default="Tests\\TestCase", min_length=1, description="Base test class."
    )
    use_refresh_database: bool = Field(
        default=True, description="Use the RefreshDatabase trait."
    )
    generate_guest_tests: bool = Field(
        default=True,
        description="Emit a guest test asserting rejection for protected routes.",
    )
    indent_size: int = Field(default=4, ge=2, le=8, description="Indentation width.")

    # -- Output -------------------------------------------------------------
    output_dir: str = Field(
        default="./tests/Feature", description="Directory for generated tests."
    )
    overwrite_existing: bool = Field(
        default=False, description="Overwrite test files that already exist."
    )

    @field_validator("auth_middleware")
    @classmethod
    def _strip_auth_middleware(cls, v: List[str]) -> List[str]:
        return ordered_unique(name.strip() for name in v if name.strip())


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BACKSLASH",
    "WEB_AUTH_MIDDLEWARE",
    "SANCTUM_AUTH_MIDDLEWARE",
    "PASSPORT_AUTH_MIDDLEWARE",
    "DEFAULT_AUTH_MIDDLEWARE",
    "AuthMode",
    "RouteDescriptor",
    "EntityRef",
    "ResolvedInvocation",
    "ControllerDefinition",
    "TestSuiteDefinition",
    "GenerationConfig",
]

logger.debug("testgen.models loaded — %d public symbols.", len(__all__))
