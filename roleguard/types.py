"""
Core type definitions for roleguard.

This module defines the data structures shared by every layer of the
policy engine: the closed role enumeration, the authenticated subject,
and the decision record produced by the evaluator.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """
    Closed enumeration of subject roles.

    Roles carry no implicit hierarchy. Each role's permissions are
    declared independently in the policy matrix; nothing is inherited
    from a "higher" role.
    """

    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    STUDENT = "STUDENT"
    GUEST = "GUEST"

    @classmethod
    def parse(cls, value: Role | str) -> Role | str:
        """
        Coerce a raw role value to a Role member.

        Unknown values are returned unchanged so that the evaluator can
        deny them (fail closed) instead of the session layer crashing.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return value


def role_name(role: Role | str) -> str:
    """Return the plain string name of a role."""
    if isinstance(role, Role):
        return role.value
    return str(role)


@dataclass(frozen=True)
class Subject:
    """
    The authenticated actor attempting an action.

    The policy engine trusts the subject as given: token verification
    and session handling happen before a Subject is built.

    Attributes:
        id: Unique identifier of the subject (the user id).
        role: The subject's role. Usually a Role member; an unknown role
            string is kept as-is and is denied everything.

    Raises:
        ValueError: If the id is None or empty.

    Example:
        >>> subject = Subject(id="u1", role=Role.STUDENT)
        >>> subject = Subject.from_mapping({"id": "u1", "role": "STUDENT"})
    """

    id: str
    role: Role | str

    def __post_init__(self) -> None:
        """Normalize the id to a string and parse the role."""
        if self.id is None or isinstance(self.id, bool) or self.id == "":
            raise ValueError(f"Subject id must be a non-empty string or integer, got {self.id!r}")
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "role", Role.parse(self.role))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Subject:
        """
        Build a subject from a session payload.

        Only ``id`` and ``role`` are read; any other claims (email,
        username, ...) are ignored.
        """
        return cls(id=data["id"], role=data["role"])

    @property
    def role_name(self) -> str:
        """The role as a plain string."""
        return role_name(self.role)

    def has_role(self, *roles: Role | str) -> bool:
        """Check if the subject has any of the given roles."""
        return self.role_name in {role_name(r) for r in roles}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"id": self.id, "role": self.role_name}


@dataclass(frozen=True)
class Decision:
    """
    Result of a policy evaluation.

    Attributes:
        allowed: Whether the action is permitted.
        reason: Human-readable explanation of the decision.
        cell: Name of the policy cell that decided ("allow", "deny",
            "owner", ...), or None when no cell was declared.
        metadata: Additional diagnostic information.

    Example:
        >>> decision = Decision.allow("ADMIN may update posts", cell="allow")
        >>> decision.allowed
        True
    """

    allowed: bool
    reason: str | None = None
    cell: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(
        cls,
        reason: str | None = None,
        cell: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Decision:
        """Create an allowed decision."""
        return cls(allowed=True, reason=reason, cell=cell, metadata=metadata or {})

    @classmethod
    def deny(
        cls,
        reason: str,
        cell: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Decision:
        """Create a denied decision."""
        return cls(allowed=False, reason=reason, cell=cell, metadata=metadata or {})

    def __bool__(self) -> bool:
        return self.allowed

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "cell": self.cell,
            "metadata": self.metadata,
        }
