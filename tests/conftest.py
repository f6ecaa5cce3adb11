"""
tests/conftest.py
Shared fixtures for the testgen test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import logging
import pathlib
from typing import Any, Dict, Iterator

import pytest
import yaml

from testgen.models import (
    ControllerDefinition,
    EntityRef,
    RouteDescriptor,
    TestSuiteDefinition,
)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
ROUTES_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "routes_example.yaml"


# ---------------------------------------------------------------------------
# Raw definition fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_routes_dict() -> Dict[str, Any]:
    """Load the reference routes_example.yaml once per session."""
    assert ROUTES_EXAMPLE_PATH.exists(), (
        f"Reference definition not found at {ROUTES_EXAMPLE_PATH}. "
        "Make sure routes_example.yaml is in the project root."
    )
    with open(ROUTES_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def routes_dict(raw_routes_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_routes_dict)


@pytest.fixture()
def routes_yaml_path(routes_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the definition dict to a temporary YAML file and return its path."""
    path = tmp_path / "routes.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(routes_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture()
def minimal_routes_dict() -> Dict[str, Any]:
    """Smallest valid definition: one public controller with one index route."""
    return {
        "controllers": [
            {
                "name": "TagController",
                "model": {"short_name": "Tag"},
                "routes": [
                    {"name": "tags.index", "action": "index", "middleware": ["web"]},
                ],
            }
        ],
    }


@pytest.fixture()
def broken_routes_dict() -> Dict[str, Any]:
    """Definition that parses but fails validation (route shared by two controllers)."""
    return {
        "controllers": [
            {
                "name": "PostController",
                "model": {"short_name": "Post"},
                "routes": [{"name": "posts.index", "action": "index"}],
            },
            {
                "name": "ArticleController",
                "model": {"short_name": "Article"},
                "routes": [{"name": "posts.index", "action": "index"}],
            },
        ],
    }


# ---------------------------------------------------------------------------
# Model fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def post_entity() -> EntityRef:
    return EntityRef(short_name="Post")


@pytest.fixture()
def sanctum_controller() -> ControllerDefinition:
    """JSON API controller guarded by Sanctum with the five API resource routes."""
    middleware = ["api", "auth:sanctum"]
    return ControllerDefinition(
        name="PostController",
        api=True,
        model=EntityRef(short_name="Post"),
        routes=[
            RouteDescriptor(name="posts.index", action="index", middleware=middleware),
            RouteDescriptor(name="posts.store", action="store", middleware=middleware),
            RouteDescriptor(
                name="posts.show", action="show", parameters=["post"], middleware=middleware
            ),
            RouteDescriptor(
                name="posts.update",
                action="update",
                http_method="PUT|PATCH",
                parameters=["post"],
                middleware=middleware,
            ),
            RouteDescriptor(
                name="posts.destroy",
                action="destroy",
                parameters=["post"],
                middleware=middleware,
            ),
        ],
    )


@pytest.fixture()
def web_nested_controller() -> ControllerDefinition:
    """Session-guarded controller nested under Post."""
    return ControllerDefinition(
        name="CommentController",
        model=EntityRef(short_name="Comment"),
        parent=EntityRef(short_name="Post"),
        routes=[
            RouteDescriptor(
                name="posts.comments.show",
                action="show",
                parameters=["post", "comment"],
                middleware=["web", "auth"],
            ),
        ],
    )


@pytest.fixture()
def suite(
    sanctum_controller: ControllerDefinition,
    web_nested_controller: ControllerDefinition,
) -> TestSuiteDefinition:
    return TestSuiteDefinition(controllers=[sanctum_controller, web_nested_controller])


@pytest.fixture(autouse=True)
def _reset_cli_logging() -> Iterator[None]:
    """The CLI binds a stderr handler to the ``testgen`` logger; drop it after each test."""
    yield
    root_logger = logging.getLogger("testgen")
    root_logger.handlers.clear()
    root_logger.propagate = True
    root_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Output directory fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Provide a clean output directory inside tmp_path."""
    out = tmp_path / "generated_output"
    out.mkdir(parents=True, exist_ok=True)
    return out
