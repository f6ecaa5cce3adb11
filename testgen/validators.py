# File: testgen/validators.py
"""
testgen - Definition & Configuration Validators
================================================
Pure-function validation over the models in ``testgen.models``.

Pydantic already enforces structure (required fields, unique route names
per controller, unique controller names). This module adds the semantic
checks: identifier shapes, route names shared across controllers, route
parameters the resolver will leave blank, and configuration sanity.

The resolver tolerates every case reported here as a warning; they are
surfaced so the user knows a generated test will need a manual touch.

Usage:
    from testgen.validators import validate_full
    result = validate_full(suite, config)
    if not result.is_valid:
        ...
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Set

from testgen.models import GenerationConfig, TestSuiteDefinition
from testgen.templates import KNOWN_ACTIONS

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_PHP_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_PASCAL_CASE_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_PHP_NAMESPACE_RE: re.Pattern[str] = re.compile(
    r"^\\?[A-Za-z_][A-Za-z0-9_]*(\\[A-Za-z_][A-Za-z0-9_]*)*$"
)
# Guard-style middleware, e.g. "auth:admin"
_AUTH_LIKE_RE: re.Pattern[str] = re.compile(r"^auth(:.+)?$")


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_controller_names(suite: TestSuiteDefinition) -> ValidationResult:
    """Controller names become PHP class names; models should be PascalCase."""
    result: ValidationResult = ValidationResult()

    for controller in suite.controllers:
        ctx: Dict[str, Any] = {"controller": controller.name}

        if not _PHP_IDENTIFIER_RE.match(controller.name):
            result.add_error(
                "INVALID_CONTROLLER_NAME",
                f"Controller name '{controller.name}' is not a valid PHP class name.",
                ctx,
            )

        for entity in filter(None, (controller.model, controller.parent)):
            if not _PHP_IDENTIFIER_RE.match(entity.short_name):
                result.add_error(
                    "INVALID_MODEL_NAME",
                    f"Model name '{entity.short_name}' is not a valid PHP class name.",
                    {**ctx, "model": entity.short_name},
                )
            elif not _PASCAL_CASE_RE.match(entity.short_name):
                result.add_warning(
                    "MODEL_NAME_NOT_PASCAL_CASE",
                    f"Model name '{entity.short_name}' is not PascalCase; "
                    f"its variable will be '{entity.variable}'.",
                    {**ctx, "model": entity.short_name},
                )
            if not _PHP_NAMESPACE_RE.match(entity.namespace):
                result.add_error(
                    "INVALID_MODEL_NAMESPACE",
                    f"Namespace '{entity.namespace}' of model "
                    f"'{entity.short_name}' is not a valid PHP namespace.",
                    {**ctx, "model": entity.short_name},
                )

    return result


def validate_route_names(suite: TestSuiteDefinition) -> ValidationResult:
    """Route names are global in the host router; flag any shared between controllers."""
    result: ValidationResult = ValidationResult()
    owners: Dict[str, str] = {}

    for controller in suite.controllers:
        for route in controller.routes:
            owner: Optional[str] = owners.get(route.name)
            if owner is not None and owner != controller.name:
                result.add_error(
                    "DUPLICATE_ROUTE_NAME",
                    f"Route '{route.name}' is listed under both "
                    f"'{owner}' and '{controller.name}'.",
                    {"route": route.name},
                )
            owners.setdefault(route.name, controller.name)

    return result


def validate_route_parameters(
    suite: TestSuiteDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """
    Report route parameters that will render with an empty value.

    Only a parameter naming the bound model resolves by default. A parameter
    naming the parent resolves only when ``resolve_parent_parameters`` is on.
    """
    result: ValidationResult = ValidationResult()

    for controller in suite.controllers:
        model_name: str = controller.model.short_name.lower()
        parent_name: Optional[str] = (
            controller.parent.short_name.lower() if controller.parent else None
        )

        for route in controller.routes:
            ctx: Dict[str, Any] = {"controller": controller.name, "route": route.name}
            lowered: List[str] = [p.lower() for p in route.parameter_names]

            parent_resolves: bool = (
                config.resolve_parent_parameters and parent_name in lowered
            )
            if route.parameter_names and model_name not in lowered and not parent_resolves:
                result.add_warning(
                    "UNRESOLVED_ROUTE_PARAMETER",
                    f"Route '{route.name}' has parameters {route.parameter_names} "
                    f"but none names model '{controller.model.short_name}'.",
                    ctx,
                )

            for param in route.parameter_names:
                lowered_param: str = param.lower()
                if lowered_param == model_name:
                    continue
                if lowered_param == parent_name:
                    if not config.resolve_parent_parameters:
                        result.add_warning(
                            "PARENT_PARAMETER_NOT_RESOLVED",
                            f"Route '{route.name}' parameter '{param}' names the "
                            f"parent model; it stays blank unless "
                            f"resolve_parent_parameters is enabled.",
                            {**ctx, "parameter": param},
                        )
                    continue
                result.add_warning(
                    "BLANK_ROUTE_PARAMETER",
                    f"Route '{route.name}' parameter '{param}' will be rendered "
                    f"without a value.",
                    {**ctx, "parameter": param},
                )

    return result


def validate_actions(suite: TestSuiteDefinition) -> ValidationResult:
    """Actions without a dedicated template fall back to a generic test body."""
    result: ValidationResult = ValidationResult()

    for controller in suite.controllers:
        for route in controller.routes:
            action: str = (route.action or route.name.rsplit(".", 1)[-1]).lower()
            if action not in KNOWN_ACTIONS:
                result.add_info(
                    "GENERIC_ACTION_TEMPLATE",
                    f"Route '{route.name}' action '{action}' uses the generic "
                    f"test body.",
                    {"controller": controller.name, "route": route.name},
                )

    return result


def validate_middleware(
    suite: TestSuiteDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """Point out auth-looking middleware the resolver won't recognise."""
    result: ValidationResult = ValidationResult()
    recognised: Set[str] = set(config.auth_middleware)

    for controller in suite.controllers:
        for route in controller.routes:
            for name in sorted(route.middleware):
                if _AUTH_LIKE_RE.match(name) and name not in recognised:
                    result.add_info(
                        "UNRECOGNISED_AUTH_MIDDLEWARE",
                        f"Route '{route.name}' uses '{name}', which is not in "
                        f"auth_middleware; the route is treated as public.",
                        {"controller": controller.name, "route": route.name},
                    )

    return result


def validate_suite(
    suite: TestSuiteDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """Run all definition-level validators."""
    result: ValidationResult = ValidationResult()
    result.merge(validate_controller_names(suite))
    result.merge(validate_route_names(suite))
    result.merge(validate_route_parameters(suite, config))
    result.merge(validate_actions(suite))
    result.merge(validate_middleware(suite, config))
    return result


def validate_config(config: GenerationConfig) -> ValidationResult:
    """Sanity checks on ``GenerationConfig``."""
    result: ValidationResult = ValidationResult()

    if not config.auth_middleware:
        result.add_warning(
            "EMPTY_AUTH_MIDDLEWARE",
            "auth_middleware is empty; no route will be treated as protected.",
        )

    for field_name in ("test_namespace", "base_test_case", "user_model"):
        value: str = getattr(config, field_name)
        if not _PHP_NAMESPACE_RE.match(value):
            result.add_error(
                "INVALID_PHP_NAME",
                f"Config '{field_name}' value '{value}' is not a valid PHP name.",
                {"field": field_name},
            )

    if config.has_super_admin_role and not config.super_admin_role.strip():
        result.add_error(
            "EMPTY_SUPER_ADMIN_ROLE",
            "has_super_admin_role is set but super_admin_role is blank.",
        )

    logger.debug("Config validation complete: %s", result.summary())
    return result


def validate_full(
    suite: TestSuiteDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """
    **Master validation entry point** used by ``generator.py`` and ``cli.py``.
    """
    logger.info(
        "Starting full validation — %d controllers, %d routes.",
        len(suite.controllers),
        suite.route_count,
    )

    result: ValidationResult = ValidationResult()
    result.merge(validate_suite(suite, config))
    result.merge(validate_config(config))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_controller_names",
    "validate_route_names",
    "validate_route_parameters",
    "validate_actions",
    "validate_middleware",
    "validate_suite",
    "validate_config",
    "validate_full",
]

logger.debug("testgen.validators loaded — %d public symbols.", len(__all__))
