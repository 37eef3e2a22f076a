"""
Policy evaluator for roleguard.

The evaluator is the one function that turns a (subject, kind, action,
instance) request into a decision by looking up the matrix cell and
resolving it. Both the server guard and the client capability query
call into it, which is what keeps them from disagreeing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any, TypeVar

from roleguard.config import RoleguardConfig, load_matrix
from roleguard.exceptions import MissingInstanceError
from roleguard.policies.matrix import PolicyMatrix
from roleguard.types import Decision, Subject

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PolicyEvaluator:
    """
    Evaluates requests against a policy matrix.

    Lookup order:
        1. Fetch the cell for (subject.role, kind, action).
        2. No cell: deny (fail closed).
        3. Allow/Deny: return the literal.
        4. Predicate: resolve it against the instance. Without an
           instance the call is a caller error: denied, or raised as
           MissingInstanceError when ``strict_instances`` is set.

    Evaluation is synchronous and pure; it performs no I/O and keeps no
    state between calls.

    Example:
        >>> evaluator = PolicyEvaluator(build_default_matrix())
        >>> evaluator.evaluate(student, "posts", "create")
        True
        >>> evaluator.evaluate(student, "posts", "update", {"authorId": "other"})
        False

    Args:
        matrix: The policy matrix to evaluate against.
        strict_instances: Raise instead of denying when an
            instance-dependent rule is evaluated without an instance.
    """

    def __init__(self, matrix: PolicyMatrix, strict_instances: bool = False) -> None:
        self.matrix = matrix
        self.strict_instances = strict_instances

    def decide(
        self,
        subject: Subject,
        kind: str,
        action: str,
        instance: Any = None,
    ) -> Decision:
        """
        Evaluate a request and return the full decision.

        Args:
            subject: The authenticated subject.
            kind: The resource kind (e.g. "posts").
            action: The action (e.g. "update").
            instance: The resource instance, required by predicate cells.

        Returns:
            Decision with the outcome, the reason and the deciding cell.

        Raises:
            MissingInstanceError: In strict mode, when a predicate cell is
                reached without an instance.
        """
        role = subject.role_name
        logger.debug(
            f"Evaluating: subject={subject.id}, role={role}, kind={kind}, action={action}"
        )

        cell = self.matrix.cell(role, kind, action)
        if cell is None:
            return Decision.deny(
                reason=f"No rule for {role} to {action} {kind}",
                metadata={"role": role},
            )

        if cell.requires_instance and instance is None:
            if self.strict_instances:
                raise MissingInstanceError(kind, action)
            logger.warning(
                f"Rule '{cell.name}' for {role} to {action} {kind} needs a resource "
                f"instance but none was supplied; denying"
            )
            return Decision.deny(
                reason=f"Rule '{cell.name}' needs a resource instance",
                cell=cell.name,
                metadata={"role": role},
            )

        allowed = cell.resolve(subject, instance)
        verdict = "allows" if allowed else "denies"
        decision = Decision(
            allowed=allowed,
            reason=f"Rule '{cell.name}' {verdict} {role} to {action} {kind}",
            cell=cell.name,
            metadata={"role": role},
        )
        logger.debug(f"Result: allowed={allowed}, reason={decision.reason}")
        return decision

    def evaluate(
        self,
        subject: Subject,
        kind: str,
        action: str,
        instance: Any = None,
    ) -> bool:
        """Evaluate a request to a boolean."""
        return self.decide(subject, kind, action, instance).allowed

    def permitted(
        self,
        subject: Subject,
        kind: str,
        action: str,
        instances: Iterable[T],
    ) -> list[T]:
        """
        Filter a collection to the instances the subject may act on.

        Order is preserved.

        Example:
            >>> editable = evaluator.permitted(student, "posts", "update", posts)
        """
        return [
            instance
            for instance in instances
            if self.evaluate(subject, kind, action, instance)
        ]

    def explain(
        self,
        subject: Subject,
        kind: str,
        action: str,
        instance: Any = None,
    ) -> dict[str, Any]:
        """
        Explain a decision.

        Provides the lookup trail of a decision, useful for debugging
        a rule that does not behave as expected.
        """
        decision = self.decide(subject, kind, action, instance)
        cell = self.matrix.cell(subject.role_name, kind, action)

        explanation: dict[str, Any] = {
            "decision": "ALLOW" if decision.allowed else "DENY",
            "reason": decision.reason,
            "subject": subject.to_dict(),
            "request": {
                "kind": kind,
                "action": action,
                "has_instance": instance is not None,
            },
            "cell": repr(cell) if cell is not None else None,
        }
        if self.matrix.registry.has(kind):
            explanation["declared_actions"] = sorted(self.matrix.registry.actions_for(kind))
        return explanation


# Global evaluator instance for convenience
_default_evaluator: PolicyEvaluator | None = None
_default_evaluator_lock = threading.Lock()


def get_default_evaluator() -> PolicyEvaluator:
    """
    Get the process-wide evaluator.

    Built on first use from RoleguardConfig.from_env(), the same
    configuration the default enforcer reads, so both answer from one
    matrix.
    """
    global _default_evaluator
    if _default_evaluator is not None:
        return _default_evaluator
    with _default_evaluator_lock:
        # Double-check after acquiring lock
        if _default_evaluator is None:
            config = RoleguardConfig.from_env()
            _default_evaluator = PolicyEvaluator(
                load_matrix(config),
                strict_instances=config.strict_instances,
            )
        return _default_evaluator


def reset_default_evaluator() -> None:
    """Drop the process-wide evaluator. Primarily useful for testing."""
    global _default_evaluator
    with _default_evaluator_lock:
        _default_evaluator = None


def evaluate(
    subject: Subject,
    kind: str,
    action: str,
    instance: Any = None,
) -> bool:
    """
    Evaluate a request with the process-wide evaluator.

    Example:
        >>> evaluate(Subject("m1", Role.MODERATOR), "posts", "update", {"authorId": "m1"})
        True
    """
    return get_default_evaluator().evaluate(subject, kind, action, instance)
