"""The on-disk shape of a policy: a registered type name plus its settings."""

from dataclasses import dataclass
from typing import Any, Dict

# Keyword arguments for a policy class, as read from JSON
PolicyConfig = Dict[str, Any]


@dataclass
class SerializedPolicy:
    """One ``{"type": ..., "config": ...}`` entry of a policy file.

    Attributes:
        type (str): Name the policy class is registered under, e.g. "ContentFilter".
        config (PolicyConfig): Field values for that class.
    """

    type: str
    config: PolicyConfig
