"""
Declarative policy documents for roleguard.

A policy document is the portable, reviewable form of a policy matrix:
plain JSON with rule tokens instead of functions. The server exports its
matrix as a document and the client capability query is rebuilt from that
same document, so both sides evaluate identical rules.

Document shape::

    {
        "version": 1,
        "roles": {
            "STUDENT": {
                "posts": {"create": "allow", "update": "owner", ...},
                ...
            },
            ...
        }
    }

Documents are validated with Pydantic before any cell is built.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from roleguard.exceptions import PolicyConfigurationError
from roleguard.policies.builtin import cell_from_token
from roleguard.policies.matrix import DOCUMENT_VERSION, PolicyMatrix
from roleguard.policies.registry import ResourceRegistry
from roleguard.types import Role

logger = logging.getLogger(__name__)

RuleToken = Literal["allow", "deny", "owner", "receiver", "not_author"]


class PolicyDocument(BaseModel):
    """
    Pydantic model of a policy document.

    Only the shape and the rule tokens are checked here; role, kind and
    action names are checked against the registry when the matrix is
    built.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: Literal[1] = DOCUMENT_VERSION
    roles: dict[str, dict[str, dict[str, RuleToken]]]


def _configuration_error(error: ValidationError) -> PolicyConfigurationError:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "document"
    return PolicyConfigurationError(
        config_key=location,
        expected=first.get("msg"),
        received=first.get("input"),
    )


def parse_policy_document(data: Mapping[str, Any] | str | bytes) -> PolicyDocument:
    """
    Validate a policy document.

    Args:
        data: A mapping, or a JSON string/bytes.

    Raises:
        PolicyConfigurationError: If the document is malformed.

    Example:
        >>> doc = parse_policy_document('{"version": 1, "roles": {}}')
    """
    try:
        if isinstance(data, (str, bytes)):
            return PolicyDocument.model_validate_json(data)
        return PolicyDocument.model_validate(data)
    except ValidationError as e:
        raise _configuration_error(e) from e


def load_policy_document(path: str | Path) -> PolicyDocument:
    """
    Read and validate a policy document from a JSON file.

    Raises:
        PolicyConfigurationError: If the file cannot be read or is invalid.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyConfigurationError(
            config_key="policy_path",
            expected="a readable JSON policy document",
            received=str(path),
        ) from e
    logger.debug(f"Loaded policy document from {path}")
    return parse_policy_document(raw)


def matrix_from_document(
    document: PolicyDocument | Mapping[str, Any] | str | bytes,
    registry: ResourceRegistry | None = None,
    roles: Iterable[Role | str] | None = None,
) -> PolicyMatrix:
    """
    Build a policy matrix from a document.

    Args:
        document: A validated PolicyDocument, or raw data to validate.
        registry: Registry to validate kinds and actions against.
        roles: Declared role set. Defaults to every Role member.

    Raises:
        PolicyConfigurationError: If the document is malformed or names
            unknown roles, kinds or actions.
    """
    if not isinstance(document, PolicyDocument):
        document = parse_policy_document(document)

    rules = {
        role: {
            kind: {action: cell_from_token(token) for action, token in actions.items()}
            for kind, actions in kinds.items()
        }
        for role, kinds in document.roles.items()
    }
    return PolicyMatrix(rules, registry=registry, roles=roles)


def dump_policy_document(matrix: PolicyMatrix, indent: int | None = 2) -> str:
    """Serialize a matrix to a JSON policy document."""
    return json.dumps(matrix.to_document(), indent=indent, sort_keys=True)
