"""
Policy cells for roleguard.

A policy cell is the rule for one (role, resource kind, action) triple.
Cells form a closed tagged variant:

- ``Allow``: always permitted.
- ``Deny``: never permitted (equivalent to an absent cell).
- ``Predicate``: decided at runtime by inspecting the resource instance.

Keeping the variant explicit means the evaluator matches on the cell type
instead of guessing whether a value is a boolean or a function.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from roleguard.types import Subject

PredicateFn = Callable[["Subject", Any], bool]


class PolicyCell(ABC):
    """
    Abstract base class for all policy cells.

    Attributes:
        name: Token naming the cell in a policy document ("allow",
            "deny", or a predicate name). Anonymous predicates have None.
    """

    name: str | None = None

    @property
    @abstractmethod
    def requires_instance(self) -> bool:
        """Whether resolving this cell needs a concrete resource instance."""

    @abstractmethod
    def resolve(self, subject: Subject, instance: Any = None) -> bool:
        """Resolve the cell to a boolean for a subject and instance."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class Allow(PolicyCell):
    """Static grant. Never inspects the instance."""

    name = "allow"

    @property
    def requires_instance(self) -> bool:
        return False

    def resolve(self, subject: Subject, instance: Any = None) -> bool:
        return True

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Allow)

    def __hash__(self) -> int:
        return hash(self.name)


class Deny(PolicyCell):
    """Static refusal. Equivalent to leaving the cell out of the matrix."""

    name = "deny"

    @property
    def requires_instance(self) -> bool:
        return False

    def resolve(self, subject: Subject, instance: Any = None) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Deny)

    def __hash__(self) -> int:
        return hash(self.name)


class Predicate(PolicyCell):
    """
    Runtime rule over (subject, instance).

    Predicates must be pure: the same subject and instance always give
    the same answer, and nothing is written. A named predicate can be
    exported to a policy document; an anonymous one cannot.

    Example:
        >>> from roleguard.policies.ownership import is_owner
        >>> OWNER = Predicate(is_owner, name="owner")
        >>> OWNER.resolve(subject, {"authorId": subject.id})
        True
    """

    def __init__(self, fn: PredicateFn, name: str | None = None) -> None:
        if not callable(fn):
            raise TypeError(f"Predicate expects a callable, got {type(fn).__name__}")
        self.fn = fn
        self.name = name

    @property
    def requires_instance(self) -> bool:
        return True

    def resolve(self, subject: Subject, instance: Any = None) -> bool:
        return bool(self.fn(subject, instance))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Predicate):
            return False
        if self.name is not None or other.name is not None:
            return self.name == other.name
        return self.fn is other.fn

    def __hash__(self) -> int:
        return hash(self.name) if self.name is not None else hash(self.fn)

    def __repr__(self) -> str:
        if self.name is None:
            return f"Predicate({getattr(self.fn, '__name__', self.fn)!r})"
        return f"Predicate({self.name!r})"


ALLOW = Allow()
DENY = Deny()


def coerce_cell(value: Any) -> PolicyCell:
    """
    Convert a matrix literal to a PolicyCell.

    ``True``/``False`` become ALLOW/DENY and a bare callable becomes an
    anonymous Predicate.

    Raises:
        TypeError: For any other value.
    """
    if isinstance(value, PolicyCell):
        return value
    if value is True:
        return ALLOW
    if value is False:
        return DENY
    if callable(value):
        return Predicate(value)
    raise TypeError(f"Cannot use {type(value).__name__} as a policy cell")
