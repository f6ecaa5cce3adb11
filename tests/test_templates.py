"""
tests/test_templates.py
Unit tests for testgen.templates.TestTemplateGenerator.

Tests cover:
- Per-action method bodies for API and web controllers
- Acting-as placement (token statement vs session prefix)
- Guest tests for protected routes
- Parent fixtures and nested route calls
- Test class assembly: namespace, use block, trait, method naming
"""

from __future__ import annotations

from typing import List

import pytest

from testgen.models import (
    ControllerDefinition,
    EntityRef,
    GenerationConfig,
    RouteDescriptor,
    TestSuiteDefinition,
)
from testgen.resolver import PASSPORT_NAMESPACE, SANCTUM_NAMESPACE
from testgen.templates import KNOWN_ACTIONS, REFRESH_DATABASE_TRAIT, TestTemplateGenerator


def _route_by_action(controller: ControllerDefinition, action: str) -> RouteDescriptor:
    return next(r for r in controller.routes if r.action == action)


def _stripped(lines: List[str]) -> List[str]:
    return [line.strip() for line in lines]


# ===========================================================================
# Single test method
# ===========================================================================


class TestApiMethods:
    """Sanctum-guarded JSON API controller."""

    def test_show_method(self, sanctum_controller: ControllerDefinition) -> None:
        gen = TestTemplateGenerator()
        lines, imports = gen.generate_test_method(
            sanctum_controller, _route_by_action(sanctum_controller, "show")
        )
        body = _stripped(lines)

        assert body[:7] == [
            "public function test_show_post(): void",
            "{",
            "$user = User::factory()->create();",
            "$post = Post::factory()->create();",
            "Sanctum::actingAs($user, ['*']);",
            '$response = $this->getJson(route("posts.show",["post" => $post->id, ]));',
            "$response->assertOk();",
        ]
        assert imports == ["App\\Models\\Post", "App\\Models\\User", SANCTUM_NAMESPACE]

    def test_method_body_is_indented(self, sanctum_controller: ControllerDefinition) -> None:
        lines, _ = TestTemplateGenerator().generate_test_method(
            sanctum_controller, _route_by_action(sanctum_controller, "index")
        )
        assert lines[2] == "    $user = User::factory()->create();"

    def test_guest_method_follows(self, sanctum_controller: ControllerDefinition) -> None:
        lines, _ = TestTemplateGenerator().generate_test_method(
            sanctum_controller, _route_by_action(sanctum_controller, "show")
        )
        body = _stripped(lines)
        assert "public function test_guest_cannot_show_post(): void" in body
        guest = body[body.index("public function test_guest_cannot_show_post(): void"):]
        assert "$response->assertUnauthorized();" in guest
        assert not any("actingAs" in line for line in guest)

    def test_store_sends_payload_and_checks_database(
        self, sanctum_controller: ControllerDefinition
    ) -> None:
        lines, _ = TestTemplateGenerator().generate_test_method(
            sanctum_controller, _route_by_action(sanctum_controller, "store")
        )
        body = _stripped(lines)
        assert "$payload = Post::factory()->make()->toArray();" in body
        assert '$response = $this->postJson(route("posts.store"), $payload);' in body
        assert "$response->assertCreated();" in body
        assert "$this->assertDatabaseCount('posts', 1);" in body
        assert "$post = Post::factory()->create();" not in body

    def test_update_uses_first_reported_verb(
        self, sanctum_controller: ControllerDefinition
    ) -> None:
        lines, _ = TestTemplateGenerator().generate_test_method(
            sanctum_controller, _route_by_action(sanctum_controller, "update")
        )
        body = _stripped(lines)
        assert (
            '$response = $this->putJson(route("posts.update",["post" => $post->id, ]), $payload);'
            in body
        )
        assert "$this->assertDatabaseHas('posts', ['id' => $post->id]);" in body

    def test_destroy(self, sanctum_controller: ControllerDefinition) -> None:
        lines, _ = TestTemplateGenerator().generate_test_method(
            sanctum_controller, _route_by_action(sanctum_controller, "destroy")
        )
        body = _stripped(lines)
        assert any(line.startswith("$response = $this->deleteJson(") for line in body)
        assert "$response->assertNoContent();" in body
        assert "$this->assertDatabaseMissing('posts', ['id' => $post->id]);" in body

    def test_passport_route(self) -> None:
        controller = ControllerDefinition(
            name="PostController",
            api=True,
            model=EntityRef(short_name="Post"),
            routes=[RouteDescriptor(name="posts.index", action="index", middleware=["auth:api"])],
        )
        lines, imports = TestTemplateGenerator().generate_test_method(
            controller, controller.routes[0]
        )
        assert "Passport::actingAs($user, ['*']);" in _stripped(lines)
        assert PASSPORT_NAMESPACE in imports
        assert SANCTUM_NAMESPACE not in imports

    def test_unknown_action_gets_generic_body(self) -> None:
        controller = ControllerDefinition(
            name="PostController",
            api=True,
            model=EntityRef(short_name="Post"),
            routes=[
                RouteDescriptor(
                    name="posts.publish",
                    action="publish",
                    http_method="POST",
                    parameters=["post"],
                    middleware=["auth:sanctum"],
                )
            ],
        )
        lines, _ = TestTemplateGenerator().generate_test_method(
            controller, controller.routes[0]
        )
        body = _stripped(lines)
        assert body[0] == "public function test_publish_post(): void"
        assert "$post = Post::factory()->create();" in body
        assert '$response = $this->postJson(route("posts.publish",["post" => $post->id, ]));' in body
        assert "$response->assertSuccessful();" in body


class TestWebMethods:
    """Session-guarded and public web controllers."""

    def test_nested_show(self, web_nested_controller: ControllerDefinition) -> None:
        lines, imports = TestTemplateGenerator().generate_test_method(
            web_nested_controller, web_nested_controller.routes[0]
        )
        body = _stripped(lines)
        assert body[2:7] == [
            "$user = User::factory()->create();",
            "$post = Post::factory()->create();",
            "$comment = Comment::factory()->for($post)->create();",
            '$response = $this->actingAs($user)->get(route("posts.comments.show",'
            '["post" => , "comment" => $comment->id, ]));',
            "$response->assertOk();",
        ]
        assert imports == ["App\\Models\\Comment", "App\\Models\\User", "App\\Models\\Post"]

    def test_nested_show_with_parent_parameters(
        self, web_nested_controller: ControllerDefinition
    ) -> None:
        gen = TestTemplateGenerator(GenerationConfig(resolve_parent_parameters=True))
        lines, _ = gen.generate_test_method(
            web_nested_controller, web_nested_controller.routes[0]
        )
        assert any('"post" => $post->id, "comment" => $comment->id, ' in line for line in lines)

    def test_guest_redirects_to_login(self, web_nested_controller: ControllerDefinition) -> None:
        lines, _ = TestTemplateGenerator().generate_test_method(
            web_nested_controller, web_nested_controller.routes[0]
        )
        assert '$response->assertRedirect(route("login"));' in _stripped(lines)

    def test_guest_tests_can_be_disabled(self, web_nested_controller: ControllerDefinition) -> None:
        gen = TestTemplateGenerator(GenerationConfig(generate_guest_tests=False))
        lines, _ = gen.generate_test_method(
            web_nested_controller, web_nested_controller.routes[0]
        )
        assert not any("test_guest_cannot_" in line for line in lines)

    def test_public_route_has_no_user(self) -> None:
        controller = ControllerDefinition(
            name="CategoryController",
            model=EntityRef(short_name="Category", route_key_name="slug", table="categories"),
            routes=[
                RouteDescriptor(
                    name="categories.show",
                    action="show",
                    parameters=["category"],
                    middleware=["web"],
                )
            ],
        )
        lines, imports = TestTemplateGenerator().generate_test_method(
            controller, controller.routes[0]
        )
        body = _stripped(lines)
        assert not any("$user" in line for line in body)
        assert not any("test_guest_cannot_" in line for line in body)
        assert (
            '$response = $this->get(route("categories.show",["category" => $category->slug, ]));'
            in body
        )
        assert imports == ["App\\Models\\Category"]

    def test_web_writes_redirect(self) -> None:
        controller = ControllerDefinition(
            name="CategoryController",
            model=EntityRef(short_name="Category", route_key_name="slug"),
            routes=[
                RouteDescriptor(
                    name="categories.destroy",
                    action="destroy",
                    parameters=["category"],
                    middleware=["web", "auth"],
                )
            ],
        )
        lines, _ = TestTemplateGenerator().generate_test_method(
            controller, controller.routes[0]
        )
        body = _stripped(lines)
        assert "$response->assertRedirect();" in body
        assert "$this->assertDatabaseMissing('categories', ['slug' => $category->slug]);" in body

    def test_super_admin_role_assigned(self, web_nested_controller: ControllerDefinition) -> None:
        gen = TestTemplateGenerator(
            GenerationConfig(has_super_admin_role=True, super_admin_role="root")
        )
        lines, _ = gen.generate_test_method(
            web_nested_controller, web_nested_controller.routes[0]
        )
        body = _stripped(lines)
        assert body[3] == "$user->assignRole('root');"

    def test_user_model_routes_reuse_acting_user(self) -> None:
        controller = ControllerDefinition(
            name="UserController",
            model=EntityRef(short_name="User"),
            routes=[
                RouteDescriptor(
                    name="users.show", action="show", parameters=["user"], middleware=["auth"]
                )
            ],
        )
        lines, _ = TestTemplateGenerator().generate_test_method(
            controller, controller.routes[0]
        )
        authenticated = _stripped(lines)[: _stripped(lines).index("}")]
        creations = [line for line in authenticated if line.startswith("$user =")]
        assert creations == ["$user = User::factory()->create();"]

    def test_storing_a_user_counts_the_acting_user(self) -> None:
        controller = ControllerDefinition(
            name="UserController",
            api=True,
            model=EntityRef(short_name="User"),
            routes=[
                RouteDescriptor(
                    name="users.store", action="store", middleware=["api", "auth:sanctum"]
                )
            ],
        )
        lines, _ = TestTemplateGenerator().generate_test_method(
            controller, controller.routes[0]
        )
        body = _stripped(lines)
        assert "$this->assertDatabaseCount('users', 2);" in body
        assert "$this->assertDatabaseCount('users', 1);" not in body

    def test_storing_a_user_on_a_public_route(self) -> None:
        controller = ControllerDefinition(
            name="UserController",
            model=EntityRef(short_name="User"),
            routes=[RouteDescriptor(name="register", action="store", middleware=["web"])],
        )
        lines, _ = TestTemplateGenerator().generate_test_method(
            controller, controller.routes[0]
        )
        assert "$this->assertDatabaseCount('users', 1);" in _stripped(lines)


# ===========================================================================
# Test class assembly
# ===========================================================================


class TestGenerateTestClass:
    """Whole-file rendering."""

    def test_class_layout(self, web_nested_controller: ControllerDefinition) -> None:
        content = TestTemplateGenerator().generate_test_class(web_nested_controller)
        lines = content.splitlines()

        assert lines[:10] == [
            "<?php",
            "",
            "namespace Tests\\Feature;",
            "",
            "use App\\Models\\Comment;",
            "use App\\Models\\User;",
            "use App\\Models\\Post;",
            f"use {REFRESH_DATABASE_TRAIT};",
            "use Tests\\TestCase;",
            "",
        ]
        assert "class CommentControllerTest extends TestCase" in lines
        assert "    use RefreshDatabase;" in lines
        assert content.endswith("}\n")

    def test_use_block_has_no_duplicates(self, sanctum_controller: ControllerDefinition) -> None:
        content = TestTemplateGenerator().generate_test_class(sanctum_controller)
        use_lines = [line for line in content.splitlines() if line.startswith("use ")]
        assert len(use_lines) == len(set(use_lines))
        assert f"use {SANCTUM_NAMESPACE};" in use_lines

    def test_one_method_pair_per_route(self, sanctum_controller: ControllerDefinition) -> None:
        content = TestTemplateGenerator().generate_test_class(sanctum_controller)
        assert content.count("public function test_guest_cannot_") == 5
        assert content.count("public function test_") == 10

    def test_duplicate_actions_named_after_route(self) -> None:
        controller = ControllerDefinition(
            name="PostController",
            model=EntityRef(short_name="Post"),
            routes=[
                RouteDescriptor(name="posts.index", action="index"),
                RouteDescriptor(name="posts.archived", action="index"),
            ],
        )
        content = TestTemplateGenerator().generate_test_class(controller)
        assert "public function test_posts_index(): void" in content
        assert "public function test_posts_archived(): void" in content
        assert "test_index_post" not in content

    def test_colliding_route_names_get_suffixed_methods(self) -> None:
        controller = ControllerDefinition(
            name="PostController",
            api=True,
            model=EntityRef(short_name="Post"),
            routes=[
                RouteDescriptor(
                    name="posts.archive", action="archive", middleware=["auth:sanctum"]
                ),
                RouteDescriptor(
                    name="posts_archive", action="archive", middleware=["auth:sanctum"]
                ),
            ],
        )
        content = TestTemplateGenerator().generate_test_class(controller)
        declarations = [
            line.strip() for line in content.splitlines() if "public function" in line
        ]
        assert declarations == [
            "public function test_posts_archive(): void",
            "public function test_guest_cannot_posts_archive(): void",
            "public function test_posts_archive_2(): void",
            "public function test_guest_cannot_posts_archive_2(): void",
        ]

    def test_default_table_name_in_assertions(self) -> None:
        controller = ControllerDefinition(
            name="CompanyController",
            api=True,
            model=EntityRef(short_name="Company"),
            routes=[RouteDescriptor(name="companies.store", action="store")],
        )
        content = TestTemplateGenerator().generate_test_class(controller)
        assert "$this->assertDatabaseCount('companies', 1);" in content
        assert "companys" not in content

    def test_custom_namespace_and_no_refresh_database(
        self, sanctum_controller: ControllerDefinition
    ) -> None:
        config = GenerationConfig(
            test_namespace="\\Tests\\Feature\\Api\\",
            use_refresh_database=False,
            indent_size=2,
        )
        content = TestTemplateGenerator(config).generate_test_class(sanctum_controller)
        assert "namespace Tests\\Feature\\Api;" in content
        assert "RefreshDatabase" not in content
        assert "\n  public function test_index_post(): void" in content

    def test_generate_all(self, suite: TestSuiteDefinition) -> None:
        files = TestTemplateGenerator().generate_all(suite)
        assert sorted(files) == ["CommentControllerTest.php", "PostControllerTest.php"]
        assert all(content.startswith("<?php") for content in files.values())


@pytest.mark.parametrize("action", KNOWN_ACTIONS)
def test_every_known_action_renders(action: str) -> None:
    controller = ControllerDefinition(
        name="PostController",
        model=EntityRef(short_name="Post"),
        routes=[
            RouteDescriptor(
                name=f"posts.{action}",
                action=action,
                parameters=["post"] if action not in ("index", "create", "store") else [],
                middleware=["web", "auth"],
            )
        ],
    )
    lines, _ = TestTemplateGenerator().generate_test_method(controller, controller.routes[0])
    assert lines[0] == f"public function test_{action}_post(): void"
    assert "actingAs($user)->" in "\n".join(lines)
