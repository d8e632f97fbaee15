# Loads control policies from serialized data.

import json
import logging

from intercept_proxy.control_policy.control_policy import ControlPolicy

from .exceptions import PolicyLoadError
from .serialization import SerializedPolicy

logger = logging.getLogger(__name__)


def load_policy(serialized_policy: SerializedPolicy) -> "ControlPolicy":
    """
    Loads a ControlPolicy instance from its serialized type and config.

    Args:
        serialized_policy: A SerializedPolicy object.

    Returns:
        An instantiated ControlPolicy object.

    Raises:
        PolicyLoadError: If the policy type is unknown or the config is malformed.
    """
    # Import the policy registry here to avoid circular import
    from .registry import POLICY_NAME_TO_CLASS

    policy_type = serialized_policy.type
    policy_config = serialized_policy.config

    if not isinstance(policy_type, str):
        raise PolicyLoadError(f"Policy 'type' must be a string, got: {type(policy_type)}")
    if not isinstance(policy_config, dict):
        raise PolicyLoadError(f"Policy 'config' must be a dictionary, got: {type(policy_config)}")

    policy_class = POLICY_NAME_TO_CLASS.get(policy_type)
    if policy_class is None:
        raise PolicyLoadError(
            f"Unknown policy type: '{policy_type}'. Available policies: {list(POLICY_NAME_TO_CLASS.keys())}"
        )

    try:
        instance = policy_class.from_serialized({**policy_config, "type": policy_type})
    except PolicyLoadError:
        raise
    except Exception as e:
        logger.error(f"Error instantiating policy '{policy_type}': {e}", exc_info=True)
        raise PolicyLoadError(f"Error instantiating policy '{policy_type}': {e}") from e

    logger.info(f"Successfully loaded policy: {getattr(instance, 'name', policy_type)}")
    return instance


def load_policy_from_file(filepath: str) -> "ControlPolicy":
    """Load a policy configuration from a JSON file of the form ``{"type": ..., "config": {...}}``."""
    try:
        with open(filepath, "r") as f:
            raw_policy_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PolicyLoadError(f"Could not read policy file {filepath}: {e}") from e

    if not isinstance(raw_policy_data, dict):
        raise PolicyLoadError(f"Policy data loaded from {filepath} must be a dictionary, got {type(raw_policy_data)}")

    policy_type = raw_policy_data.get("type")
    policy_config = raw_policy_data.get("config")

    if not isinstance(policy_type, str):
        raise PolicyLoadError(
            f"Policy file {filepath} must contain a 'type' field as a string. Got: {type(policy_type)}"
        )
    if not isinstance(policy_config, dict):
        raise PolicyLoadError(
            f"Policy file {filepath} must contain a 'config' field as a dictionary. Got: {type(policy_config)}"
        )

    return load_policy(SerializedPolicy(type=policy_type, config=policy_config))
