"""
Configuration for roleguard.

The engine has two knobs: where the policy matrix comes from (the
built-in reference matrix or a JSON policy document), and whether a
predicate rule evaluated without an instance is denied or raised.
Loading happens once at startup, before any request is served.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from roleguard.exceptions import PolicyConfigurationError
from roleguard.policies.default import build_default_matrix
from roleguard.policies.document import load_policy_document, matrix_from_document
from roleguard.policies.matrix import PolicyMatrix
from roleguard.policies.registry import ResourceRegistry

logger = logging.getLogger(__name__)

ENV_POLICY_PATH = "ROLEGUARD_POLICY_PATH"
ENV_STRICT_INSTANCES = "ROLEGUARD_STRICT_INSTANCES"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise PolicyConfigurationError(
        config_key=key,
        expected="a boolean (true/false, 1/0, yes/no, on/off)",
        received=value,
    )


@dataclass(frozen=True)
class RoleguardConfig:
    """
    Engine configuration.

    Attributes:
        policy_path: Path of a JSON policy document. None selects the
            built-in reference matrix.
        strict_instances: Raise MissingInstanceError instead of denying
            when an instance-dependent rule gets no instance.

    Example:
        >>> config = RoleguardConfig(policy_path=Path("policy.json"))
        >>> config = RoleguardConfig.from_env()
    """

    policy_path: Path | None = None
    strict_instances: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RoleguardConfig:
        """
        Build a configuration from environment variables.

        Reads ROLEGUARD_POLICY_PATH and ROLEGUARD_STRICT_INSTANCES.

        Raises:
            PolicyConfigurationError: If a variable has an invalid value.
        """
        env = os.environ if environ is None else environ
        raw_path = env.get(ENV_POLICY_PATH)
        strict = _parse_bool(ENV_STRICT_INSTANCES, env.get(ENV_STRICT_INSTANCES, ""))
        return cls(
            policy_path=Path(raw_path) if raw_path else None,
            strict_instances=strict,
        )


def load_matrix(
    config: RoleguardConfig | None = None,
    registry: ResourceRegistry | None = None,
) -> PolicyMatrix:
    """
    Load the policy matrix selected by a configuration.

    Raises:
        PolicyConfigurationError: If the policy document cannot be read
            or fails validation. Treat this as fatal.
    """
    config = config or RoleguardConfig()
    if config.policy_path is None:
        logger.debug("Using the built-in reference policy matrix")
        return build_default_matrix(registry)

    logger.info(f"Loading policy matrix from {config.policy_path}")
    document = load_policy_document(config.policy_path)
    return matrix_from_document(document, registry=registry)
