"""
Policy matrix for roleguard.

The matrix is the single declarative table of authorization rules,
indexed role first, then resource kind, then action. It is validated in
full when it is built and is read-only afterwards, so it can be shared by
any number of concurrent evaluations without locking.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from roleguard.exceptions import PolicyConfigurationError
from roleguard.policies.builtin import token_for_cell
from roleguard.policies.cells import PolicyCell, coerce_cell
from roleguard.policies.registry import ResourceRegistry, get_default_registry
from roleguard.types import Role, role_name

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = 1

RulesLiteral = Mapping[Any, Mapping[str, Mapping[str, Any]]]


class PolicyMatrix:
    """
    Immutable role × resource kind × action table of policy cells.

    Construction rejects:
        - roles outside the declared role set,
        - declared roles without a row,
        - resource kinds missing from the registry,
        - actions not declared for their resource kind,
        - values that are not cells, booleans or callables.

    Any triple without a cell is denied by the evaluator.

    Args:
        rules: Role-major mapping ``{role: {kind: {action: cell}}}``.
            Cells may be PolicyCell instances, booleans or callables.
        registry: The resource registry to validate against. Defaults
            to the process-wide registry of reference kinds.
        roles: The declared role set. Defaults to every Role member.

    Example:
        >>> matrix = PolicyMatrix({
        ...     Role.ADMIN: {"posts": {"create": True, "update": True}},
        ...     Role.MODERATOR: {"posts": {"create": True, "update": OWNER}},
        ...     Role.STUDENT: {},
        ...     Role.GUEST: {},
        ... })
        >>> matrix.cell(Role.MODERATOR, "posts", "update")
        Predicate('owner')
    """

    def __init__(
        self,
        rules: RulesLiteral,
        registry: ResourceRegistry | None = None,
        roles: Iterable[Role | str] | None = None,
    ) -> None:
        self._registry = registry or get_default_registry()
        declared = [role_name(r) for r in (roles if roles is not None else Role)]
        self._roles: tuple[str, ...] = tuple(declared)
        self._rows = MappingProxyType(self._build(rules))
        logger.debug(
            f"Built policy matrix: {len(self._roles)} roles, "
            f"{sum(1 for _ in self.iter_cells())} cells"
        )

    def _build(
        self, rules: RulesLiteral
    ) -> dict[str, Mapping[str, Mapping[str, PolicyCell]]]:
        declared = set(self._roles)
        rows: dict[str, Mapping[str, Mapping[str, PolicyCell]]] = {}

        for raw_role, kinds in rules.items():
            role = role_name(raw_role)
            if role not in declared:
                raise PolicyConfigurationError(
                    config_key=role,
                    expected=f"one of: {', '.join(self._roles)}",
                    received=role,
                )
            if role in rows:
                raise PolicyConfigurationError(
                    config_key=role,
                    expected="one row per role",
                    received="duplicate row",
                )

            row: dict[str, Mapping[str, PolicyCell]] = {}
            for kind, actions in kinds.items():
                if not self._registry.has(kind):
                    raise PolicyConfigurationError(
                        config_key=f"{role}.{kind}",
                        expected=f"one of: {', '.join(self._registry.kinds())}",
                        received=kind,
                    )
                allowed_actions = self._registry.actions_for(kind)
                cells: dict[str, PolicyCell] = {}
                for action, value in actions.items():
                    key = f"{role}.{kind}.{action}"
                    if action not in allowed_actions:
                        raise PolicyConfigurationError(
                            config_key=key,
                            expected=f"one of: {', '.join(sorted(allowed_actions))}",
                            received=action,
                        )
                    try:
                        cells[action] = coerce_cell(value)
                    except TypeError as e:
                        raise PolicyConfigurationError(
                            config_key=key,
                            expected="a policy cell, a boolean or a predicate",
                            received=value,
                        ) from e
                row[kind] = MappingProxyType(cells)
            rows[role] = MappingProxyType(row)

        missing = [role for role in self._roles if role not in rows]
        if missing:
            raise PolicyConfigurationError(
                config_key="roles",
                expected=f"a row for every declared role ({', '.join(self._roles)})",
                received=f"missing rows: {', '.join(missing)}",
            )
        return rows

    @property
    def registry(self) -> ResourceRegistry:
        return self._registry

    def roles(self) -> tuple[str, ...]:
        """Declared roles, in declaration order."""
        return self._roles

    def kinds_for(self, role: Role | str) -> list[str]:
        """Resource kinds a role has any cell for."""
        row = self._rows.get(role_name(role), {})
        return sorted(row)

    def cell(self, role: Role | str, kind: str, action: str) -> PolicyCell | None:
        """
        Look up the cell of a triple.

        Returns:
            The cell, or None when the triple is undeclared (including
            unknown roles and kinds).
        """
        row = self._rows.get(role_name(role))
        if row is None:
            return None
        actions = row.get(kind)
        if actions is None:
            return None
        return actions.get(action)

    def iter_cells(self) -> Iterator[tuple[str, str, str, PolicyCell]]:
        """Yield ``(role, kind, action, cell)`` for every declared cell."""
        for role in self._roles:
            for kind, actions in self._rows.get(role, {}).items():
                for action, cell in actions.items():
                    yield role, kind, action, cell

    def to_document(self) -> dict[str, Any]:
        """
        Export the matrix as a declarative policy document.

        The document only contains tokens ("allow", "deny", "owner", ...),
        so it can be versioned, reviewed and shipped to the client build.

        Raises:
            PolicyConfigurationError: If a cell is an anonymous predicate.
        """
        roles: dict[str, dict[str, dict[str, str]]] = {}
        for role in self._roles:
            roles[role] = {}
            for kind in sorted(self._rows[role]):
                actions = self._rows[role][kind]
                roles[role][kind] = {
                    action: token_for_cell(actions[action]) for action in sorted(actions)
                }
        return {"version": DOCUMENT_VERSION, "roles": roles}

    def fingerprint(self) -> str:
        """
        Digest of the canonical policy document.

        Two matrices with the same rules have the same fingerprint,
        regardless of how they were built.

        Returns:
            The digest as a hex string prefixed with 'sha256:'.
        """
        canonical = json.dumps(self.to_document(), sort_keys=True, separators=(",", ":"))
        return f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PolicyMatrix):
            return NotImplemented
        return self._roles == other._roles and self._plain() == other._plain()

    __hash__ = None  # type: ignore[assignment]

    def _plain(self) -> dict[str, dict[str, dict[str, PolicyCell]]]:
        return {
            role: {kind: dict(actions) for kind, actions in row.items()}
            for role, row in self._rows.items()
        }

    def __repr__(self) -> str:
        return f"PolicyMatrix(roles={list(self._roles)})"
