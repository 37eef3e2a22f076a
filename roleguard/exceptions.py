"""
Custom exceptions for roleguard.

This module defines the exception hierarchy of the policy engine. Runtime
denials and load-time configuration mistakes are kept apart so that the
HTTP layer can map the former to "forbidden" while the latter stop the
process before it serves traffic.
"""

from __future__ import annotations

from typing import Any


class RoleguardError(Exception):
    """
    Base exception for all roleguard errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context about the error.

    Example:
        >>> try:
        ...     enforcer.assert_permission(subject, "posts", "delete", post)
        ... except RoleguardError as e:
        ...     logger.error(f"roleguard error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class PermissionDenied(RoleguardError):
    """
    Raised by the enforcement guard when a policy evaluation denies.

    Always surfaced to the client as a "forbidden" response; a denial is
    a final answer and must not be retried.

    Attributes:
        subject_id: The id of the subject who attempted the action.
        kind: The resource kind the action targeted.
        action: The action that was attempted.
        reason: Explanation of why the action was denied.

    Example:
        >>> raise PermissionDenied(
        ...     subject_id="u1",
        ...     kind="posts",
        ...     action="update",
        ...     reason="Subject is not the author",
        ... )
    """

    status_code = 403

    def __init__(
        self,
        subject_id: str,
        kind: str,
        action: str,
        reason: str | None = None,
    ) -> None:
        self.subject_id = subject_id
        self.kind = kind
        self.action = action
        self.reason = reason or "Permission denied"

        message = f"User {subject_id} not permitted to {action} {kind}"
        details = {
            "subject_id": subject_id,
            "kind": kind,
            "action": action,
            "reason": self.reason,
        }
        super().__init__(message, details)


class PolicyConfigurationError(RoleguardError):
    """
    Raised when the policy matrix or the resource registry is malformed.

    This is a startup error: the process must not serve requests with a
    matrix that failed validation.

    Attributes:
        config_key: Location of the problem (e.g. "STUDENT.posts.publish").
        expected: What was expected at that location.
        received: What was actually provided.

    Example:
        >>> raise PolicyConfigurationError(
        ...     config_key="STUDENT.notifications.create",
        ...     expected="one of: delete, read, update",
        ...     received="create",
        ... )
    """

    def __init__(
        self,
        config_key: str,
        expected: str | None = None,
        received: Any = None,
    ) -> None:
        self.config_key = config_key
        self.expected = expected
        self.received = received

        message = f"Policy configuration error for '{config_key}'"
        if expected:
            message += f": expected {expected}"
        if received is not None:
            message += f", got {received!r}"

        details = {
            "config_key": config_key,
            "expected": expected,
            "received": str(received) if received is not None else None,
        }
        super().__init__(message, details)


class UnknownResourceError(RoleguardError):
    """
    Raised when a resource kind is looked up that was never registered.

    Attributes:
        kind: The requested resource kind.
        available: Registered kinds (for debugging).
    """

    def __init__(self, kind: str, available: list[str] | None = None) -> None:
        self.kind = kind
        self.available = available or []

        message = f"No resource kind registered as '{kind}'"
        if self.available:
            message += f". Registered kinds: {', '.join(self.available)}"

        super().__init__(message, {"kind": kind, "available": self.available})


class MissingInstanceError(RoleguardError):
    """
    Raised in strict mode when an instance-dependent rule is evaluated
    without a resource instance.

    Outside strict mode the same situation is a plain denial.

    Attributes:
        kind: The resource kind.
        action: The action whose rule needed an instance.
    """

    def __init__(self, kind: str, action: str) -> None:
        self.kind = kind
        self.action = action
        message = (
            f"Rule for '{action}' on '{kind}' inspects the resource "
            "but no instance was supplied"
        )
        super().__init__(message, {"kind": kind, "action": action})
