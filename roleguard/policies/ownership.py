"""
Ownership resolution for roleguard.

Resource instances reach the policy engine in whatever shape the query
that loaded them produced: a nested relation (``{"author": {"id": ...}}``)
or a flat foreign key (``{"authorId": ...}``). This module is the single
place that translates either shape into an owning subject id. Policy
predicates must go through these functions and never read the ownership
fields themselves.

Instances may be mappings or plain objects (dataclasses, ORM rows), and
both the camelCase and snake_case spellings of the flat field are read.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from roleguard.types import Subject

_MISSING = object()


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return _MISSING
    if isinstance(obj, Mapping):
        return obj.get(name, _MISSING)
    try:
        return getattr(obj, name, _MISSING)
    except Exception:
        # Lazy ORM relations may raise when they were not loaded.
        return _MISSING


def _as_id(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    return None


def _resolve(resource: Any, relation: str, flat_fields: tuple[str, ...]) -> str | None:
    nested = _field(resource, relation)
    if nested is not _MISSING and nested is not None:
        owner = _as_id(_field(nested, "id"))
        if owner is not None:
            return owner

    for name in flat_fields:
        owner = _as_id(_field(resource, name))
        if owner is not None:
            return owner
    return None


def resolve_author(resource: Any) -> str | None:
    """
    Extract the author id of a resource.

    The nested ``author.id`` wins over the flat ``authorId`` when both are
    present, since it comes from a fresh join. Only a missing or null
    ``author.id`` falls through to ``authorId``; an empty string is kept.

    Returns:
        The author id, or None when the instance carries neither field.
        Never raises.

    Example:
        >>> resolve_author({"author": {"id": "u1"}})
        'u1'
        >>> resolve_author({"authorId": "u1"})
        'u1'
        >>> resolve_author({}) is None
        True
    """
    return _resolve(resource, "author", ("authorId", "author_id"))


def resolve_user(resource: Any) -> str | None:
    """
    Extract the addressed-to user id of a resource (notifications).

    Same precedence as resolve_author: ``user.id`` before ``userId``.
    """
    return _resolve(resource, "user", ("userId", "user_id"))


def is_owner(subject: Subject, resource: Any) -> bool:
    """Check if the subject authored the resource."""
    owner = resolve_author(resource)
    return owner is not None and subject.id == owner


def is_receiver(subject: Subject, resource: Any) -> bool:
    """Check if the resource is addressed to the subject."""
    receiver = resolve_user(resource)
    return receiver is not None and subject.id == receiver


def is_not_author(subject: Subject, resource: Any) -> bool:
    """
    Self-report guard: true unless the subject authored the resource.

    A resource without author information is not the subject's own, so
    it passes.
    """
    return subject.id != resolve_author(resource)
