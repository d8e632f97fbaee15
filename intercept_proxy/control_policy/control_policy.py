"""Base class for the steps a request passes through on its way to the backend."""

import abc
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from intercept_proxy.control_policy.serialization import PolicyConfig
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.transaction import Transaction


class ControlPolicy(BaseModel, abc.ABC):
    """One step of the interception pipeline.

    A policy is configured once, from settings or a policy file, and applied to
    every request. State shared between requests lives on the
    DependencyContainer, never on the policy.

    Attributes:
        name (Optional[str]): Label used in log lines.
        type (str): Name the class is registered under; filled in when omitted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: Optional[str] = None
    type: str = ""
    logger: logging.Logger = Field(default_factory=lambda: logging.getLogger(__name__), exclude=True)

    def __init__(self, **data: Any) -> None:
        if "type" not in data:
            data["type"] = self.registered_type()
        super().__init__(**data)

    @classmethod
    def registered_type(cls) -> str:
        from intercept_proxy.control_policy.registry import POLICY_CLASS_TO_NAME

        try:
            return POLICY_CLASS_TO_NAME[cls]
        except KeyError:
            raise ValueError(f"{cls.__name__} has no entry in the policy registry") from None

    @abc.abstractmethod
    async def apply(self, transaction: Transaction, container: DependencyContainer) -> Transaction:
        """Act on one request.

        Raises:
            ControlPolicyError: To stop the request before it reaches the backend.
        """

    @classmethod
    def from_serialized(cls, config: PolicyConfig) -> "ControlPolicy":
        """Builds this policy from the ``config`` part of a policy file entry."""
        return cls.model_validate(config)
