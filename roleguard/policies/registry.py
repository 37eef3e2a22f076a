"""
Resource registry for roleguard.

The registry is the closed catalogue of resource kinds the policy matrix
may talk about. Each kind declares the actions meaningful for it and the
ownership relation its instances carry. The registry is filled once at
startup and then frozen; the matrix validates every cell against it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from roleguard.exceptions import PolicyConfigurationError, UnknownResourceError

logger = logging.getLogger(__name__)

Ownership = Literal["author", "user"]

POSTS = "posts"
COMMENTS = "comments"
NOTIFICATIONS = "notifications"


@dataclass(frozen=True)
class ResourceSpec:
    """
    Declaration of one resource kind.

    Attributes:
        kind: The resource kind name used in the matrix (e.g. "posts").
        actions: The closed set of actions meaningful for this kind.
        ownership: The relation that identifies the owning subject.
            "author" instances expose ``author.id`` or ``authorId``;
            "user" instances expose ``user.id`` or ``userId``.

    Example:
        >>> ResourceSpec("notifications", {"read", "update", "delete"}, "user")
    """

    kind: str
    actions: frozenset[str]
    ownership: Ownership = "author"

    def __init__(
        self,
        kind: str,
        actions: Iterable[str],
        ownership: Ownership = "author",
    ) -> None:
        if isinstance(actions, (str, bytes)):
            raise PolicyConfigurationError(
                config_key=f"{kind}.actions",
                expected="a collection of action names",
                received=actions,
            )
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "actions", frozenset(actions))
        object.__setattr__(self, "ownership", ownership)

    def allows_action(self, action: str) -> bool:
        """Check if an action is declared for this kind."""
        return action in self.actions


class ResourceRegistry:
    """
    Registry of resource kinds.

    Features:
        - Construction-time validation (non-empty action sets, known
          ownership relations)
        - Freezing: once frozen, the registry rejects new registrations
        - Thread-safe operations

    Example:
        >>> registry = ResourceRegistry()
        >>> registry.register(ResourceSpec("posts", {"create", "read"}))
        >>> registry.freeze()
        >>> registry.actions_for("posts")
        frozenset({'create', 'read'})

    Thread Safety:
        All operations are thread-safe via internal locking.
    """

    def __init__(self, specs: Iterable[ResourceSpec] | None = None) -> None:
        self._specs: dict[str, ResourceSpec] = {}
        self._frozen = False
        self._lock = threading.RLock()
        for spec in specs or ():
            self.register(spec)

    def register(self, spec: ResourceSpec) -> None:
        """
        Register a resource kind.

        Args:
            spec: The resource declaration.

        Raises:
            PolicyConfigurationError: If the registry is frozen, the action
                set is empty, or the ownership relation is unknown.
        """
        with self._lock:
            if self._frozen:
                raise PolicyConfigurationError(
                    config_key=spec.kind,
                    expected="registration before the registry is frozen",
                    received="register() after freeze()",
                )
            if not spec.actions:
                raise PolicyConfigurationError(
                    config_key=f"{spec.kind}.actions",
                    expected="a non-empty action set",
                    received=sorted(spec.actions),
                )
            if spec.ownership not in ("author", "user"):
                raise PolicyConfigurationError(
                    config_key=f"{spec.kind}.ownership",
                    expected="one of: author, user",
                    received=spec.ownership,
                )

            if spec.kind in self._specs:
                logger.warning(
                    f"Overwriting resource kind '{spec.kind}': "
                    f"{sorted(self._specs[spec.kind].actions)} -> {sorted(spec.actions)}"
                )
            self._specs[spec.kind] = spec
            logger.debug(f"Registered resource kind '{spec.kind}' with actions {sorted(spec.actions)}")

    def freeze(self) -> ResourceRegistry:
        """Reject any further registration. Returns self for chaining."""
        with self._lock:
            self._frozen = True
        return self

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def get(self, kind: str) -> ResourceSpec:
        """
        Get the declaration for a resource kind.

        Raises:
            UnknownResourceError: If the kind was never registered.
        """
        with self._lock:
            spec = self._specs.get(kind)
            if spec is None:
                raise UnknownResourceError(kind, sorted(self._specs))
            return spec

    def has(self, kind: str) -> bool:
        with self._lock:
            return kind in self._specs

    def actions_for(self, kind: str) -> frozenset[str]:
        """Return the declared action set of a kind."""
        return self.get(kind).actions

    def kinds(self) -> list[str]:
        """List registered kinds in sorted order."""
        with self._lock:
            return sorted(self._specs)

    def __contains__(self, kind: object) -> bool:
        return isinstance(kind, str) and self.has(kind)

    def __iter__(self):
        with self._lock:
            return iter([self._specs[k] for k in sorted(self._specs)])


def build_default_registry() -> ResourceRegistry:
    """
    Build the frozen registry of the reference resource kinds.

    Notifications have no ``create`` action: they are generated by the
    system, never by a subject.
    """
    return ResourceRegistry(
        [
            ResourceSpec(POSTS, {"create", "read", "update", "delete", "report"}, "author"),
            ResourceSpec(COMMENTS, {"create", "read", "update", "delete", "report"}, "author"),
            ResourceSpec(NOTIFICATIONS, {"read", "update", "delete"}, "user"),
        ]
    ).freeze()


# Global registry instance for convenience
_default_registry: ResourceRegistry | None = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> ResourceRegistry:
    """
    Get the process-wide registry of reference kinds.

    Creates it on first use.
    """
    global _default_registry
    if _default_registry is not None:
        return _default_registry
    with _default_registry_lock:
        # Double-check after acquiring lock
        if _default_registry is None:
            _default_registry = build_default_registry()
        return _default_registry
