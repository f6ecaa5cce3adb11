# File: testgen/templates.py
"""
testgen - Test Template Engine
===============================
Turns ``ControllerDefinition`` records into PHP feature-test classes.

For each route the engine builds an ``AuthAndRouteResolver`` and renders
one test method from its variables:

    1. Setup: acting user, parent model, bound model, request payload.
    2. Token acting-as statement (Sanctum / Passport), when the route has one.
    3. The request, prefixed with the session acting-as fragment when the
       route uses session auth.
    4. Assertions for the controller action.

Protected routes also get a guest test asserting the request is rejected.

All string assembly uses ``List[str]`` + ``"\\n".join()``. Each call builds
its own resolvers, so one ``TestTemplateGenerator`` can render any number
of controllers.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional, Set, Tuple

from testgen.models import (
    BACKSLASH,
    ControllerDefinition,
    GenerationConfig,
    RouteDescriptor,
    TestSuiteDefinition,
)
from testgen.resolver import AuthAndRouteResolver
from testgen.utils import (
    build_use_block,
    class_basename,
    indent_lines,
    ordered_unique,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

REFRESH_DATABASE_TRAIT: str = "Illuminate\\Foundation\\Testing\\RefreshDatabase"

# Actions with a dedicated body; anything else gets the generic one
KNOWN_ACTIONS: Tuple[str, ...] = (
    "index",
    "show",
    "create",
    "store",
    "edit",
    "update",
    "destroy",
)

# Actions that operate on an existing record
_ACTIONS_NEEDING_RECORD: frozenset = frozenset({"index", "show", "edit", "update", "destroy"})

# Actions that send a payload built from the model factory
_ACTIONS_WITH_PAYLOAD: frozenset = frozenset({"store", "update"})

_WEB_CALLS: Dict[str, str] = {
    "GET": "get",
    "POST": "post",
    "PUT": "put",
    "PATCH": "patch",
    "DELETE": "delete",
}

_API_CALLS: Dict[str, str] = {
    "GET": "getJson",
    "POST": "postJson",
    "PUT": "putJson",
    "PATCH": "patchJson",
    "DELETE": "deleteJson",
}

USER_VARIABLE: str = "$user"


class TestTemplateGenerator:
    """
    Renders PHP feature tests for resource controllers.

    Each ``generate_*`` method returns source text; nothing is written to
    disk here.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, config: Optional[GenerationConfig] = None) -> None:
        self._config: GenerationConfig = config or GenerationConfig()
        self._indent: str = " " * self._config.indent_size
        logger.debug(
            "TestTemplateGenerator initialised (namespace=%s, indent=%d).",
            self._config.test_namespace,
            self._config.indent_size,
        )

    # ===================================================================
    # 1. Single route
    # ===================================================================

    def generate_test_method(
        self,
        controller: ControllerDefinition,
        route: RouteDescriptor,
        method_name: Optional[str] = None,
    ) -> Tuple[List[str], List[str]]:
        """
        Render the test method(s) for one route.

        Returns:
            Tuple of (method lines at class-body depth 0, imports the
            methods need in first-needed order).
        """
        resolver: AuthAndRouteResolver = AuthAndRouteResolver(
            route,
            controller.model,
            config=self._config,
            parent=controller.parent,
        )
        variables: Dict[str, str] = resolver.global_variables()
        action: str = self._action_for(route)
        name: str = method_name or self._default_method_name(
            action, variables["model_method_name"]
        )

        imports: List[str] = [controller.model.class_name]
        if resolver.is_auth_required():
            imports.append(self._config.user_model)

        lines: List[str] = self._gen_authenticated_test(
            name, controller, route, resolver, variables, action
        )

        if resolver.is_auth_required() and self._config.generate_guest_tests:
            lines.append("")
            lines.extend(
                self._gen_guest_test(
                    name, controller, route, variables, action
                )
            )

        imports.extend(resolver.namespaces)

        logger.debug(
            "Rendered %s for route '%s' (action=%s, mode=%s).",
            name,
            route.name,
            action,
            resolver.auth_mode.value,
        )
        return lines, ordered_unique(imports)

    def _gen_authenticated_test(
        self,
        name: str,
        controller: ControllerDefinition,
        route: RouteDescriptor,
        resolver: AuthAndRouteResolver,
        variables: Dict[str, str],
        action: str,
    ) -> List[str]:
        """Test method exercising the route as an authorised actor (if any)."""
        body: List[str] = []

        acting_user: bool = resolver.is_auth_required()
        if acting_user:
            body.append(
                f"{USER_VARIABLE} = "
                f"{class_basename(self._config.user_model)}::factory()->create();"
            )
            if resolver.has_super_admin_role():
                body.append(
                    f"{USER_VARIABLE}->assignRole('{self._config.super_admin_role}');"
                )

        body.extend(
            self._gen_fixture_lines(controller, variables, action, reuse_user=acting_user)
        )

        if variables["api_acting_as"]:
            body.append(variables["api_acting_as"])

        body.append(
            self._gen_request_line(
                controller,
                route,
                variables["route"],
                prefix=variables["web_acting_as"],
                with_payload=action in _ACTIONS_WITH_PAYLOAD,
            )
        )
        body.extend(
            self._gen_assertions(
                controller, route, variables, action, acting_user=acting_user
            )
        )

        return self._wrap_method(name, body)

    def _gen_guest_test(
        self,
        name: str,
        controller: ControllerDefinition,
        route: RouteDescriptor,
        variables: Dict[str, str],
        action: str,
    ) -> List[str]:
        """Test method asserting an anonymous request is turned away."""
        body: List[str] = self._gen_fixture_lines(
            controller, variables, action, reuse_user=False, with_payload=False
        )
        body.append(
            self._gen_request_line(controller, route, variables["route"])
        )
        if controller.api:
            body.append("$response->assertUnauthorized();")
        else:
            body.append('$response->assertRedirect(route("login"));')

        guest_name: str = name.replace("test_", "test_guest_cannot_", 1)
        return self._wrap_method(guest_name, body)

    # -------------------------------------------------------------------
    # Building blocks
    # -------------------------------------------------------------------

    def _gen_fixture_lines(
        self,
        controller: ControllerDefinition,
        variables: Dict[str, str],
        action: str,
        *,
        reuse_user: bool,
        with_payload: bool = True,
    ) -> List[str]:
        """Parent, bound record and payload creation."""
        lines: List[str] = []
        model = controller.model
        parent = controller.parent
        factory: str = f"{model.short_name}::factory()"

        if parent is not None:
            lines.append(
                f"{parent.variable} = {parent.short_name}::factory()->create();"
            )
            factory = f"{factory}->for({parent.variable})"

        model_var: str = variables["model_variable"]
        needs_record: bool = action in _ACTIONS_NEEDING_RECORD or action not in KNOWN_ACTIONS
        if needs_record and not (reuse_user and model_var == USER_VARIABLE):
            lines.append(f"{model_var} = {factory}->create();")

        if with_payload and action in _ACTIONS_WITH_PAYLOAD:
            lines.append(f"$payload = {factory}->make()->toArray();")

        return lines

    def _gen_request_line(
        self,
        controller: ControllerDefinition,
        route: RouteDescriptor,
        route_expression: str,
        *,
        prefix: str = "",
        with_payload: bool = False,
    ) -> str:
        verb: str = route.resolved_http_method
        calls: Dict[str, str] = _API_CALLS if controller.api else _WEB_CALLS
        call: str = calls.get(verb, calls["GET"])
        payload: str = ", $payload" if with_payload else ""
        return f"$response = $this->{prefix}{call}({route_expression}{payload});"

    def _gen_assertions(
        self,
        controller: ControllerDefinition,
        route: RouteDescriptor,
        variables: Dict[str, str],
        action: str,
        *,
        acting_user: bool = False,
    ) -> List[str]:
        table: str = variables["table"]
        key: str = controller.model.route_key_name
        record: str = f"['{key}' => {variables['model_variable']}->{key}]"

        if action == "store":
            status: str = "assertCreated()" if controller.api else "assertRedirect()"
            # The acting user already holds a row when the model is the user model
            expected_rows: int = 1
            if acting_user and variables["model_variable"] == USER_VARIABLE:
                expected_rows = 2
            return [
                f"$response->{status};",
                f"$this->assertDatabaseCount('{table}', {expected_rows});",
            ]
        if action == "update":
            status = "assertOk()" if controller.api else "assertRedirect()"
            return [
                f"$response->{status};",
                f"$this->assertDatabaseHas('{table}', {record});",
            ]
        if action == "destroy":
            status = "assertNoContent()" if controller.api else "assertRedirect()"
            return [
                f"$response->{status};",
                f"$this->assertDatabaseMissing('{table}', {record});",
            ]
        if action in KNOWN_ACTIONS or route.resolved_http_method == "GET":
            return ["$response->assertOk();"]
        if controller.api:
            return ["$response->assertSuccessful();"]
        return ["$response->assertRedirect();"]

    def _wrap_method(self, name: str, body: List[str]) -> List[str]:
        lines: List[str] = [f"public function {name}(): void", "{"]
        lines.extend(indent_lines(body, 1, self._config.indent_size))
        lines.append("}")
        return lines

    @staticmethod
    def _action_for(route: RouteDescriptor) -> str:
        """Controller action, falling back to the last segment of the route name."""
        if route.action:
            return route.action.lower()
        return route.name.rsplit(".", 1)[-1].lower()

    @staticmethod
    def _default_method_name(action: str, model_method_name: str) -> str:
        return f"test_{to_snake_case(action)}_{model_method_name}"

    # ===================================================================
    # 2. Test class
    # ===================================================================

    def generate_test_class(self, controller: ControllerDefinition) -> str:
        """
        Render the complete test class file for one controller.

        Method names come from the action; when two routes share an action
        the route name is used for those routes instead. A name that is
        still taken gets a numeric suffix (``_2``, ``_3``, ...).
        """
        action_counts: Counter = Counter(self._action_for(r) for r in controller.routes)
        model_method_name: str = to_snake_case(controller.model.short_name)

        methods: List[str] = []
        imports: List[str] = []
        used_names: Set[str] = set()
        for route in controller.routes:
            action: str = self._action_for(route)
            if action_counts[action] > 1:
                base_name: str = f"test_{to_snake_case(route.name)}"
            else:
                base_name = self._default_method_name(action, model_method_name)
            method_name: str = base_name
            suffix: int = 2
            while method_name in used_names:
                method_name = f"{base_name}_{suffix}"
                suffix += 1
            if method_name != base_name:
                logger.warning(
                    "Test method %s already declared in %s; route '%s' renders as %s.",
                    base_name,
                    controller.test_class_name,
                    route.name,
                    method_name,
                )
            used_names.add(method_name)

            route_lines, route_imports = self.generate_test_method(
                controller, route, method_name
            )
            if methods:
                methods.append("")
            methods.extend(route_lines)
            imports.extend(route_imports)

        if self._config.use_refresh_database:
            imports.append(REFRESH_DATABASE_TRAIT)
        imports.append(self._config.base_test_case)

        namespace: str = self._config.test_namespace.strip(BACKSLASH)

        lines: List[str] = ["<?php", ""]
        lines.append(f"namespace {namespace};")
        lines.append("")
        lines.append(build_use_block(imports))
        lines.append("")
        lines.append(
            f"class {controller.test_class_name} extends "
            f"{class_basename(self._config.base_test_case)}"
        )
        lines.append("{")
        if self._config.use_refresh_database:
            lines.append(f"{self._indent}use {class_basename(REFRESH_DATABASE_TRAIT)};")
            lines.append("")
        lines.extend(indent_lines(methods, 1, self._config.indent_size))
        lines.append("}")
        lines.append("")

        return "\n".join(lines)

    # ===================================================================
    # 3. Aggregate generation
    # ===================================================================

    def generate_all(self, suite: TestSuiteDefinition) -> Dict[str, str]:
        """
        Render every controller of the suite.

        Returns a dict of relative_path → file_content.
        """
        result: Dict[str, str] = {}
        for controller in suite.controllers:
            result[f"{controller.test_class_name}.php"] = self.generate_test_class(
                controller
            )

        total_lines: int = sum(content.count("\n") for content in result.values())
        logger.info(
            "Rendered %d test classes, ~%d lines.",
            len(result),
            total_lines,
        )
        return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "REFRESH_DATABASE_TRAIT",
    "KNOWN_ACTIONS",
    "TestTemplateGenerator",
]

logger.debug("testgen.templates loaded.")
