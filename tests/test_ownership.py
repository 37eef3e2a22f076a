"""
Tests for the ownership resolver.

Tests cover:
- Nested relation and flat foreign key shapes
- Nested-over-flat precedence
- Attribute-style instances (ORM rows, dataclasses)
- Malformed and partial instances
- The owner / receiver / self-report predicates
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from roleguard import Role, Subject
from roleguard.policies.ownership import (
    is_not_author,
    is_owner,
    is_receiver,
    resolve_author,
    resolve_user,
)
from tests.factories import Author, CommentRow, PostRow


class TestResolveAuthor:
    """Tests for resolve_author."""

    def test_nested_relation(self):
        assert resolve_author({"author": {"id": "u1"}}) == "u1"

    def test_flat_field(self):
        assert resolve_author({"authorId": "u1"}) == "u1"

    def test_nested_takes_precedence(self):
        assert resolve_author({"author": {"id": "u1"}, "authorId": "u2"}) == "u1"

    def test_empty_instance(self):
        assert resolve_author({}) is None

    def test_none_instance(self):
        assert resolve_author(None) is None

    def test_nested_without_id_falls_back_to_flat(self):
        assert resolve_author({"author": {"name": "x"}, "authorId": "u2"}) == "u2"

    def test_null_relation_falls_back_to_flat(self):
        assert resolve_author({"author": None, "authorId": "u2"}) == "u2"

    def test_empty_nested_id_does_not_fall_through(self):
        assert resolve_author({"author": {"id": ""}, "authorId": "u2"}) == ""

    def test_null_nested_id_falls_through(self):
        assert resolve_author({"author": {"id": None}, "authorId": "u2"}) == "u2"

    def test_snake_case_alias(self):
        assert resolve_author({"author_id": "u3"}) == "u3"

    def test_integer_id_is_normalized(self):
        assert resolve_author({"authorId": 42}) == "42"

    @pytest.mark.parametrize("bad", [None, True, 1.5, ["u1"], {"id": "u1"}])
    def test_unusable_ids_resolve_to_none(self, bad):
        assert resolve_author({"authorId": bad}) is None

    def test_attribute_object(self):
        assert resolve_author(PostRow(id="p", authorId="u1")) == "u1"

    def test_attribute_nested_relation(self):
        assert resolve_author(CommentRow(id=1, author=Author(id="u5"))) == "u5"

    def test_attribute_missing_relation(self):
        assert resolve_author(CommentRow(id=1, author=None)) is None

    def test_unloaded_relation_does_not_raise(self):
        class LazyRow:
            authorId = "u7"

            @property
            def author(self):
                raise RuntimeError("relation not loaded")

        assert resolve_author(LazyRow()) == "u7"

    def test_idempotent(self):
        resource = {"author": {"id": "u1"}, "authorId": "u2"}
        assert resolve_author(resource) == resolve_author(resource)
        assert resource == {"author": {"id": "u1"}, "authorId": "u2"}


class TestResolveUser:
    """Tests for resolve_user."""

    def test_nested_relation(self):
        assert resolve_user({"user": {"id": "u1"}}) == "u1"

    def test_flat_field(self):
        assert resolve_user({"userId": "u1"}) == "u1"

    def test_nested_takes_precedence(self):
        assert resolve_user({"user": {"id": "u1"}, "userId": "u2"}) == "u1"

    def test_ignores_author_fields(self):
        assert resolve_user({"authorId": "u1"}) is None

    def test_attribute_object(self):
        assert resolve_user(SimpleNamespace(user_id="u9")) == "u9"


class TestOwnershipPredicates:
    """Tests for is_owner, is_receiver and is_not_author."""

    def test_is_owner_true(self):
        assert is_owner(Subject("u1", Role.STUDENT), {"authorId": "u1"}) is True

    def test_is_owner_false(self):
        assert is_owner(Subject("u1", Role.STUDENT), {"authorId": "u2"}) is False

    def test_is_owner_without_owner(self):
        assert is_owner(Subject("u1", Role.STUDENT), {}) is False

    def test_empty_owner_id_matches_nobody(self):
        subject = Subject("u1", Role.STUDENT)
        assert is_owner(subject, {"authorId": ""}) is False
        assert is_not_author(subject, {"author": {"id": ""}}) is True

    def test_is_receiver(self):
        subject = Subject("u1", Role.ADMIN)
        assert is_receiver(subject, {"userId": "u1"}) is True
        assert is_receiver(subject, {"userId": "u2"}) is False
        assert is_receiver(subject, {}) is False

    def test_is_not_author(self):
        subject = Subject("u1", Role.STUDENT)
        assert is_not_author(subject, {"authorId": "u1"}) is False
        assert is_not_author(subject, {"author": {"id": "u2"}}) is True

    def test_is_not_author_for_ownerless_instance(self):
        assert is_not_author(Subject("u1", Role.STUDENT), {}) is True
