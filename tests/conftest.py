"""
Pytest fixtures for roleguard tests.

Provides common fixtures used across all test modules.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from roleguard import (
    CapabilityQuery,
    Enforcer,
    PolicyEvaluator,
    Role,
    Subject,
    build_default_matrix,
    reset_default_enforcer,
)
from roleguard.policies.matrix import PolicyMatrix
from tests.factories import PostRow, make_post


# ============================================================================
# Subject Fixtures
# ============================================================================


@pytest.fixture
def admin() -> Subject:
    """Create an admin subject."""
    return Subject(id="admin-1", role=Role.ADMIN)


@pytest.fixture
def moderator() -> Subject:
    """Create a moderator subject."""
    return Subject(id="m1", role=Role.MODERATOR)


@pytest.fixture
def student() -> Subject:
    """Create a student subject."""
    return Subject(id="u1", role=Role.STUDENT)


@pytest.fixture
def guest() -> Subject:
    """Create a guest subject."""
    return Subject(id="guest-1", role=Role.GUEST)


@pytest.fixture
def all_subjects(admin: Subject, moderator: Subject, student: Subject, guest: Subject) -> list[Subject]:
    """One subject per role."""
    return [admin, moderator, student, guest]


# ============================================================================
# Resource Instance Fixtures
# ============================================================================


@pytest.fixture
def own_post(student: Subject) -> dict[str, Any]:
    """A post written by the student fixture."""
    return make_post(student.id)


@pytest.fixture
def other_post() -> dict[str, Any]:
    """A post written by somebody else."""
    return make_post("u2")


@pytest.fixture
def post_row() -> PostRow:
    """A post as an attribute-style object."""
    return PostRow(id="post-9", authorId="u1")


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def matrix() -> PolicyMatrix:
    """The reference policy matrix."""
    return build_default_matrix()


@pytest.fixture
def evaluator(matrix: PolicyMatrix) -> PolicyEvaluator:
    """An evaluator over the reference matrix."""
    return PolicyEvaluator(matrix)


@pytest.fixture
def enforcer(evaluator: PolicyEvaluator) -> Enforcer:
    """An enforcer over the reference matrix."""
    return Enforcer(evaluator)


@pytest.fixture
def capability_query(matrix: PolicyMatrix) -> CapabilityQuery:
    """The client mirror of the reference matrix."""
    return CapabilityQuery.from_matrix(matrix)


@pytest.fixture(autouse=True)
def _reset_default_enforcer(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep the process-wide enforcer and its environment isolated per test."""
    monkeypatch.delenv("ROLEGUARD_POLICY_PATH", raising=False)
    monkeypatch.delenv("ROLEGUARD_STRICT_INSTANCES", raising=False)
    reset_default_enforcer()
    yield
    reset_default_enforcer()
