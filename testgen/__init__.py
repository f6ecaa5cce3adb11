# File: testgen/__init__.py
"""
testgen — Laravel Feature-Test Generator
=========================================

Generates PHPUnit feature tests for resource controllers. For every route
the generator works out how the test must authenticate (session guard,
Sanctum or Passport token, or not at all) and how to call ``route()`` with
the route's own parameters bound to the model under test.

Architecture overview::

    ┌──────────────┐     ┌────────────────────┐     ┌──────────────────────┐
    │  CLI / Entry │────▶│ TestSuiteGenerator │────▶│ TestTemplateGenerator│
    │   (cli.py)   │     │   (generator.py)   │     │    (templates.py)    │
    └──────────────┘     └─────────┬──────────┘     └──────────┬───────────┘
                                   │                           │
                      ┌────────────┼────────────┐              ▼
                      ▼            ▼            ▼     ┌──────────────────────┐
               ┌──────────┐ ┌───────────┐ ┌───────────┐│ AuthAndRouteResolver │
               │validators│ │  models   │ │ exporters ││     (resolver.py)    │
               └──────────┘ └───────────┘ └───────────┘└──────────────────────┘

Usage::

    # As a library
    from testgen import AuthAndRouteResolver, EntityRef, RouteDescriptor
    route = RouteDescriptor(name="posts.show", parameters=["post"],
                            middleware=["auth:sanctum"])
    resolver = AuthAndRouteResolver(route, EntityRef(short_name="Post"))
    resolver.build_route_expression()

    # From the command line
    python -m testgen --routes routes.yaml --output ./tests/Feature -v
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from testgen.models import (
    AuthMode,
    ControllerDefinition,
    EntityRef,
    GenerationConfig,
    ResolvedInvocation,
    RouteDescriptor,
    TestSuiteDefinition,
)
from testgen.resolver import (
    AuthAndRouteResolver,
    AuthFlags,
    build_route_expression,
    resolve_auth_flags,
    resolve_auth_mode,
)
from testgen.validators import validate_full, ValidationResult
from testgen.utils import Timer, build_use_block, to_snake_case, write_file
from testgen.templates import TestTemplateGenerator
from testgen.exporters import TestExporter, ExportManifest, ExportResult
from testgen.generator import (
    GenerationReport,
    TestSuiteGenerator,
    load_definition_file,
    parse_raw_definition,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Core orchestrator
    "TestSuiteGenerator",
    "GenerationReport",
    "load_definition_file",
    "parse_raw_definition",
    # Models
    "AuthMode",
    "ControllerDefinition",
    "EntityRef",
    "GenerationConfig",
    "ResolvedInvocation",
    "RouteDescriptor",
    "TestSuiteDefinition",
    # Resolver
    "AuthAndRouteResolver",
    "AuthFlags",
    "build_route_expression",
    "resolve_auth_flags",
    "resolve_auth_mode",
    # Validation
    "validate_full",
    "ValidationResult",
    # Templates
    "TestTemplateGenerator",
    # Exporters
    "TestExporter",
    "ExportManifest",
    "ExportResult",
    # Utilities
    "Timer",
    "build_use_block",
    "to_snake_case",
    "write_file",
]
