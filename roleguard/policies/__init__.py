"""
Policy building blocks for roleguard.

This package holds the data side of the engine: the resource registry,
the ownership resolver, the policy cells, the matrix that arranges them,
and the declarative document form of the matrix.

Quick Start:
    >>> from roleguard.policies import PolicyMatrix, OWNER, ALLOW
    >>> from roleguard.types import Role
    >>>
    >>> matrix = PolicyMatrix({
    ...     Role.ADMIN: {"posts": {"update": ALLOW}},
    ...     Role.MODERATOR: {"posts": {"update": OWNER}},
    ...     Role.STUDENT: {"posts": {"update": OWNER}},
    ...     Role.GUEST: {},
    ... })
"""

from roleguard.policies.builtin import (
    BUILTIN_CELLS,
    NOT_AUTHOR,
    OWNER,
    RECEIVER,
    cell_from_token,
    token_for_cell,
)
from roleguard.policies.cells import (
    ALLOW,
    DENY,
    Allow,
    Deny,
    PolicyCell,
    Predicate,
    coerce_cell,
)
from roleguard.policies.default import DEFAULT_RULES, build_default_matrix
from roleguard.policies.document import (
    PolicyDocument,
    dump_policy_document,
    load_policy_document,
    matrix_from_document,
    parse_policy_document,
)
from roleguard.policies.matrix import PolicyMatrix
from roleguard.policies.ownership import (
    is_not_author,
    is_owner,
    is_receiver,
    resolve_author,
    resolve_user,
)
from roleguard.policies.registry import (
    COMMENTS,
    NOTIFICATIONS,
    POSTS,
    ResourceRegistry,
    ResourceSpec,
    build_default_registry,
    get_default_registry,
)

__all__ = [
    # Cells
    "PolicyCell",
    "Allow",
    "Deny",
    "Predicate",
    "ALLOW",
    "DENY",
    "OWNER",
    "RECEIVER",
    "NOT_AUTHOR",
    "BUILTIN_CELLS",
    "coerce_cell",
    "cell_from_token",
    "token_for_cell",
    # Ownership
    "resolve_author",
    "resolve_user",
    "is_owner",
    "is_receiver",
    "is_not_author",
    # Registry
    "ResourceSpec",
    "ResourceRegistry",
    "build_default_registry",
    "get_default_registry",
    "POSTS",
    "COMMENTS",
    "NOTIFICATIONS",
    # Matrix
    "PolicyMatrix",
    "DEFAULT_RULES",
    "build_default_matrix",
    # Documents
    "PolicyDocument",
    "parse_policy_document",
    "load_policy_document",
    "matrix_from_document",
    "dump_policy_document",
]
