"""
roleguard: role and ownership authorization policy engine.

roleguard decides whether an authenticated subject may perform an action
on a resource kind, including ownership-sensitive decisions such as "a
STUDENT may update a post only if they wrote it". The same policy matrix
drives the authoritative server check and the advisory client check.

Basic Usage:
    >>> from roleguard import Enforcer, Role, Subject
    >>>
    >>> enforcer = Enforcer()
    >>> student = Subject(id="u1", role=Role.STUDENT)
    >>>
    >>> # Server side, before the mutation
    >>> enforcer.assert_permission(student, "posts", "update", {"authorId": "u1"})
    >>>
    >>> # Client side, to decide which controls to render
    >>> from roleguard import CapabilityQuery
    >>> query = CapabilityQuery.from_matrix(enforcer.matrix)
    >>> query.can_perform(student, "posts", "delete", {"authorId": "u2"})
    False
"""

__version__ = "0.1.0"

from roleguard.client import BoundCapabilities, CapabilityQuery, verify_mirror
from roleguard.config import RoleguardConfig, load_matrix
from roleguard.core import (
    Enforcer,
    assert_permission,
    get_current_subject,
    get_default_enforcer,
    reset_default_enforcer,
    subject_context,
)
from roleguard.evaluator import (
    PolicyEvaluator,
    evaluate,
    get_default_evaluator,
    reset_default_evaluator,
)
from roleguard.exceptions import (
    MissingInstanceError,
    PermissionDenied,
    PolicyConfigurationError,
    RoleguardError,
    UnknownResourceError,
)
from roleguard.policies import (
    ALLOW,
    DENY,
    NOT_AUTHOR,
    OWNER,
    RECEIVER,
    PolicyCell,
    PolicyMatrix,
    Predicate,
    ResourceRegistry,
    ResourceSpec,
    build_default_matrix,
    is_not_author,
    is_owner,
    is_receiver,
    resolve_author,
    resolve_user,
)
from roleguard.types import Decision, Role, Subject

__all__ = [
    # Version
    "__version__",
    # Core types
    "Role",
    "Subject",
    "Decision",
    # Guard
    "Enforcer",
    "assert_permission",
    "get_default_enforcer",
    "reset_default_enforcer",
    "subject_context",
    "get_current_subject",
    # Evaluator
    "PolicyEvaluator",
    "evaluate",
    "get_default_evaluator",
    "reset_default_evaluator",
    # Client mirror
    "CapabilityQuery",
    "BoundCapabilities",
    "verify_mirror",
    # Policy data
    "PolicyMatrix",
    "PolicyCell",
    "Predicate",
    "ALLOW",
    "DENY",
    "OWNER",
    "RECEIVER",
    "NOT_AUTHOR",
    "ResourceRegistry",
    "ResourceSpec",
    "build_default_matrix",
    # Ownership
    "resolve_author",
    "resolve_user",
    "is_owner",
    "is_receiver",
    "is_not_author",
    # Configuration
    "RoleguardConfig",
    "load_matrix",
    # Exceptions
    "RoleguardError",
    "PermissionDenied",
    "PolicyConfigurationError",
    "UnknownResourceError",
    "MissingInstanceError",
]
