"""
Enforcement guard for roleguard.

This module provides the server-side, authoritative permission check.
Every mutating service method calls ``assert_permission`` before it
touches storage; a denial raises PermissionDenied and the mutation never
starts.
"""

from __future__ import annotations

import contextvars
import functools
import inspect
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, ParamSpec, TypeVar

from roleguard.config import RoleguardConfig, load_matrix
from roleguard.evaluator import PolicyEvaluator, get_default_evaluator, reset_default_evaluator
from roleguard.exceptions import PermissionDenied
from roleguard.policies.matrix import PolicyMatrix
from roleguard.types import Decision, Role, Subject, role_name

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Context variable for the authenticated subject of the current request
_current_subject: contextvars.ContextVar[Subject | None] = contextvars.ContextVar(
    "roleguard_subject", default=None
)


def get_current_subject() -> Subject | None:
    """Get the subject bound to the current context."""
    return _current_subject.get()


@contextmanager
def subject_context(subject: Subject | None) -> Iterator[Subject | None]:
    """
    Bind a subject to the current context for the duration of a block.

    Request middleware binds the authenticated subject here once, so
    decorated service methods do not need it passed explicitly.

    Example:
        >>> with subject_context(subject):
        ...     service.delete_post(post)
    """
    token = _current_subject.set(subject)
    try:
        yield subject
    finally:
        _current_subject.reset(token)


class Enforcer:
    """
    Authoritative permission checks for write-path service code.

    Example:
        >>> enforcer = Enforcer()
        >>>
        >>> def delete_post(subject: Subject, post: dict) -> None:
        ...     enforcer.assert_permission(subject, "posts", "delete", post)
        ...     repository.delete(post["id"])

    Args:
        evaluator: The evaluator to enforce. Built from ``config`` when
            omitted.
        config: Configuration used to load the matrix when no evaluator
            is given. Defaults to the reference matrix.
    """

    def __init__(
        self,
        evaluator: PolicyEvaluator | None = None,
        config: RoleguardConfig | None = None,
    ) -> None:
        if evaluator is None:
            config = config or RoleguardConfig()
            evaluator = PolicyEvaluator(
                load_matrix(config),
                strict_instances=config.strict_instances,
            )
        self._evaluator = evaluator

    @property
    def evaluator(self) -> PolicyEvaluator:
        return self._evaluator

    @property
    def matrix(self) -> PolicyMatrix:
        return self._evaluator.matrix

    # ==================== Authorization Methods ====================

    def check(
        self,
        subject: Subject,
        kind: str,
        action: str,
        instance: Any = None,
    ) -> Decision:
        """
        Evaluate a request and return the full decision without raising.

        Example:
            >>> decision = enforcer.check(subject, "posts", "update", post)
            >>> if not decision.allowed:
            ...     print(f"Denied: {decision.reason}")
        """
        return self._evaluator.decide(subject, kind, action, instance)

    def can(
        self,
        subject: Subject,
        kind: str,
        action: str,
        instance: Any = None,
    ) -> bool:
        """Boolean form of check()."""
        return self.check(subject, kind, action, instance).allowed

    def assert_permission(
        self,
        subject: Subject,
        kind: str,
        action: str,
        instance: Any = None,
    ) -> None:
        """
        Raise unless the subject may perform the action.

        Args:
            subject: The authenticated subject.
            kind: The resource kind.
            action: The action.
            instance: The loaded resource instance, required for
                ownership-dependent actions.

        Raises:
            PermissionDenied: If the policy denies the request.

        Example:
            >>> enforcer.assert_permission(subject, "posts", "update", post)
        """
        decision = self.check(subject, kind, action, instance)
        if not decision.allowed:
            logger.info(
                f"Permission denied: subject={subject.id}, role={subject.role_name}, "
                f"kind={kind}, action={action}"
            )
            raise PermissionDenied(
                subject_id=subject.id,
                kind=kind,
                action=action,
                reason=decision.reason,
            )

    def require_role(self, subject: Subject | None, *roles: Role | str) -> None:
        """
        Raise unless the subject holds one of the given roles.

        Used to gate whole surfaces (e.g. the moderation dashboard)
        where no resource instance is involved.

        Raises:
            PermissionDenied: If the subject is missing or lacks every role.
        """
        required = [role_name(r) for r in roles]
        if subject is None:
            logger.warning(f"Role check attempted without a subject (requires {required})")
            raise PermissionDenied(
                subject_id="anonymous",
                kind="roles",
                action="access",
                reason="No authenticated subject",
            )
        if not subject.has_role(*roles):
            logger.warning(
                f"Role check denied: subject={subject.id}, role={subject.role_name}, "
                f"required={required}"
            )
            raise PermissionDenied(
                subject_id=subject.id,
                kind="roles",
                action="access",
                reason=f"Requires one of roles: {', '.join(required)}",
            )
        logger.debug(f"Role check granted: subject={subject.id}, role={subject.role_name}")

    # ==================== Decorator ====================

    def authorize(
        self,
        kind: str,
        action: str,
        instance_param: str | None = None,
        subject_param: str = "subject",
    ) -> Callable[[Callable[P, T]], Callable[P, T]]:
        """
        Decorator that enforces a permission before the function runs.

        The subject is read from the ``subject_param`` argument, or from
        the current subject context when the argument is absent. The
        instance is read from ``instance_param`` when given.

        Args:
            kind: The resource kind.
            action: The action.
            instance_param: Name of the parameter holding the resource
                instance. None for instance-free actions like create.
            subject_param: Name of the parameter holding the Subject.

        Example:
            >>> @enforcer.authorize("posts", "delete", instance_param="post")
            ... async def delete_post(post: dict, subject: Subject) -> None:
            ...     await repository.delete(post["id"])
        """

        def decorator(func: Callable[P, T]) -> Callable[P, T]:
            signature = inspect.signature(func)

            def enforce(args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
                bound = signature.bind_partial(*args, **kwargs)
                subject = bound.arguments.get(subject_param) or get_current_subject()
                if subject is None:
                    raise PermissionDenied(
                        subject_id="anonymous",
                        kind=kind,
                        action=action,
                        reason="No authenticated subject",
                    )
                instance = bound.arguments.get(instance_param) if instance_param else None
                self.assert_permission(subject, kind, action, instance)

            if inspect.iscoroutinefunction(func):
                @functools.wraps(func)
                async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                    enforce(args, kwargs)
                    return await func(*args, **kwargs)

                return async_wrapper  # type: ignore

            @functools.wraps(func)
            def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                enforce(args, kwargs)
                return func(*args, **kwargs)

            return sync_wrapper

        return decorator


# Global enforcer instance for convenience
_default_enforcer: Enforcer | None = None
_default_enforcer_lock = threading.Lock()


def get_default_enforcer() -> Enforcer:
    """
    Get the process-wide enforcer.

    Wraps the process-wide evaluator, so the module-level evaluate() and
    assert_permission() always read the same matrix. The matrix is loaded
    from RoleguardConfig.from_env() on first use, so a bad policy document
    fails the first call, which should happen at startup.
    """
    global _default_enforcer
    if _default_enforcer is not None:
        return _default_enforcer
    with _default_enforcer_lock:
        # Double-check after acquiring lock
        if _default_enforcer is None:
            _default_enforcer = Enforcer(evaluator=get_default_evaluator())
        return _default_enforcer


def reset_default_enforcer() -> None:
    """Drop the process-wide enforcer and evaluator. Primarily useful for testing."""
    global _default_enforcer
    with _default_enforcer_lock:
        _default_enforcer = None
    reset_default_evaluator()


def assert_permission(
    subject: Subject,
    kind: str,
    action: str,
    instance: Any = None,
) -> None:
    """
    Raise PermissionDenied unless the default enforcer allows the request.

    Example:
        >>> assert_permission(subject, "notifications", "update", notification)
    """
    get_default_enforcer().assert_permission(subject, kind, action, instance)
