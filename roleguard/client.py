"""
Client capability query for roleguard.

The capability query answers "should this control be shown?" for UI
rendering code. It is advisory only; the server enforcer is the security
boundary. It is built from the policy document the server matrix
exports, so it runs the same rules through the same evaluator rather
than keeping a second hand-written copy.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from roleguard.evaluator import PolicyEvaluator
from roleguard.exceptions import MissingInstanceError, PolicyConfigurationError
from roleguard.policies.document import PolicyDocument, matrix_from_document
from roleguard.policies.matrix import PolicyMatrix
from roleguard.policies.registry import ResourceRegistry
from roleguard.types import Subject

logger = logging.getLogger(__name__)


class CapabilityQuery:
    """
    Read-only mirror of the policy evaluator for UI decisions.

    Same contract as PolicyEvaluator.evaluate, except that it never
    raises: a logged-out user or a missing instance simply yields False.

    Example:
        >>> query = CapabilityQuery(document_from_server)
        >>> if query.can_perform(user, "posts", "update", post):
        ...     render_edit_button()

    Args:
        document: The policy document exported by the server (mapping,
            JSON string, or validated PolicyDocument).
        registry: Registry to validate the document against.
    """

    def __init__(
        self,
        document: PolicyDocument | Mapping[str, Any] | str | bytes,
        registry: ResourceRegistry | None = None,
    ) -> None:
        self._matrix = matrix_from_document(document, registry=registry)
        self._evaluator = PolicyEvaluator(self._matrix)

    @classmethod
    def from_matrix(cls, matrix: PolicyMatrix) -> CapabilityQuery:
        """Build the mirror of a server matrix via its exported document."""
        return cls(matrix.to_document(), registry=matrix.registry)

    @property
    def matrix(self) -> PolicyMatrix:
        return self._matrix

    def can_perform(
        self,
        subject: Subject | None,
        kind: str,
        action: str,
        instance: Any = None,
    ) -> bool:
        """
        Decide whether to offer an action in the UI.

        Safe to call on every render: pure, and never raises.
        """
        if subject is None:
            return False
        try:
            return self._evaluator.evaluate(subject, kind, action, instance)
        except MissingInstanceError:
            return False

    def bind(self, subject: Subject | None) -> BoundCapabilities:
        """Bind the query to the current user."""
        return BoundCapabilities(self, subject)

    def fingerprint(self) -> str:
        return self._matrix.fingerprint()


class BoundCapabilities:
    """
    Capability query bound to one subject.

    The UI-side equivalent of a ``useCan`` hook: built once per render
    from the signed-in user, then asked about each control.

    Example:
        >>> caps = query.bind(current_user)
        >>> caps.actions("posts", post)
        {'create': True, 'delete': False, 'read': True, 'report': True, 'update': False}
    """

    def __init__(self, query: CapabilityQuery, subject: Subject | None) -> None:
        self.query = query
        self.subject = subject

    def can(self, kind: str, action: str, instance: Any = None) -> bool:
        return self.query.can_perform(self.subject, kind, action, instance)

    def actions(self, kind: str, instance: Any = None) -> dict[str, bool]:
        """Map every declared action of a kind to whether it can be offered."""
        registry = self.query.matrix.registry
        if not registry.has(kind):
            return {}
        return {
            action: self.can(kind, action, instance)
            for action in sorted(registry.actions_for(kind))
        }


def verify_mirror(matrix: PolicyMatrix, query: CapabilityQuery) -> None:
    """
    Check that a client query evaluates the same rules as a server matrix.

    Raises:
        PolicyConfigurationError: If the fingerprints differ.
    """
    server = matrix.fingerprint()
    client = query.fingerprint()
    if server != client:
        raise PolicyConfigurationError(
            config_key="client_policy",
            expected=server,
            received=client,
        )
    logger.debug(f"Client policy mirrors server policy ({server})")
