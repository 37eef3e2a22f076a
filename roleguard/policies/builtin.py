"""
Built-in policy cells for roleguard.

The named predicates here are composed from the ownership resolver and
are the only instance-dependent rules the reference matrix uses. Their
names double as the tokens of the declarative policy document.
"""

from __future__ import annotations

import logging

from roleguard.exceptions import PolicyConfigurationError
from roleguard.policies.cells import ALLOW, DENY, PolicyCell, Predicate
from roleguard.policies.ownership import is_not_author, is_owner, is_receiver

logger = logging.getLogger(__name__)

OWNER = Predicate(is_owner, name="owner")
RECEIVER = Predicate(is_receiver, name="receiver")
NOT_AUTHOR = Predicate(is_not_author, name="not_author")

BUILTIN_CELLS: dict[str, PolicyCell] = {
    cell.name: cell  # type: ignore[misc]
    for cell in (ALLOW, DENY, OWNER, RECEIVER, NOT_AUTHOR)
}


def cell_from_token(token: str) -> PolicyCell:
    """
    Look up a built-in cell by its document token.

    Args:
        token: One of "allow", "deny", "owner", "receiver", "not_author".

    Raises:
        PolicyConfigurationError: If the token names no built-in cell.

    Example:
        >>> cell_from_token("owner") is OWNER
        True
    """
    cell = BUILTIN_CELLS.get(token)
    if cell is None:
        raise PolicyConfigurationError(
            config_key="rule",
            expected=f"one of: {', '.join(sorted(BUILTIN_CELLS))}",
            received=token,
        )
    return cell


def token_for_cell(cell: PolicyCell) -> str:
    """
    Return the document token of a cell.

    Raises:
        PolicyConfigurationError: For anonymous or unknown predicates,
            which have no portable representation.
    """
    if cell.name is not None and BUILTIN_CELLS.get(cell.name) == cell:
        return cell.name
    logger.debug(f"Cell {cell!r} has no document token")
    raise PolicyConfigurationError(
        config_key="rule",
        expected="a built-in cell with a document token",
        received=repr(cell),
    )
