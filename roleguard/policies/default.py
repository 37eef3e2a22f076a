"""
Reference policy matrix.

Notes on the rules below:

- ``report`` is a self-report guard for every role: anyone may report
  content except their own.
- Moderators may delete anything but only edit what they wrote. They
  curate by removal, not by rewriting other people's content.
- Notifications are private to their addressee. No role, ADMIN included,
  has blanket access to them.
"""

from __future__ import annotations

from roleguard.policies.builtin import NOT_AUTHOR, OWNER, RECEIVER
from roleguard.policies.cells import ALLOW
from roleguard.policies.matrix import PolicyMatrix
from roleguard.policies.registry import COMMENTS, NOTIFICATIONS, POSTS, ResourceRegistry
from roleguard.types import Role

_NOTIFICATIONS = {
    "read": RECEIVER,
    "update": RECEIVER,
    "delete": RECEIVER,
}

DEFAULT_RULES = {
    Role.ADMIN: {
        POSTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": ALLOW,
            "delete": ALLOW,
            "report": NOT_AUTHOR,
        },
        COMMENTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": ALLOW,
            "delete": ALLOW,
            "report": NOT_AUTHOR,
        },
        NOTIFICATIONS: _NOTIFICATIONS,
    },
    Role.MODERATOR: {
        POSTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": OWNER,
            "delete": ALLOW,
            "report": NOT_AUTHOR,
        },
        COMMENTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": OWNER,
            "delete": ALLOW,
            "report": NOT_AUTHOR,
        },
        NOTIFICATIONS: _NOTIFICATIONS,
    },
    Role.STUDENT: {
        POSTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": OWNER,
            "delete": OWNER,
            "report": NOT_AUTHOR,
        },
        COMMENTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": OWNER,
            "delete": OWNER,
            "report": NOT_AUTHOR,
        },
        NOTIFICATIONS: _NOTIFICATIONS,
    },
    Role.GUEST: {
        POSTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": OWNER,
            "delete": OWNER,
            "report": NOT_AUTHOR,
        },
        COMMENTS: {
            "create": ALLOW,
            "read": ALLOW,
            "update": OWNER,
            "delete": OWNER,
            "report": NOT_AUTHOR,
        },
        NOTIFICATIONS: _NOTIFICATIONS,
    },
}


def build_default_matrix(registry: ResourceRegistry | None = None) -> PolicyMatrix:
    """Build the reference matrix against the given (or default) registry."""
    return PolicyMatrix(DEFAULT_RULES, registry=registry)
