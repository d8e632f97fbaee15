# Serial Policy that applies a sequence of other policies.

from typing import List, Optional

from pydantic import Field

from intercept_proxy.control_policy.control_policy import ControlPolicy
from intercept_proxy.control_policy.exceptions import ControlPolicyError, PolicyLoadError
from intercept_proxy.control_policy.loader import load_policy
from intercept_proxy.control_policy.serialization import PolicyConfig, SerializedPolicy
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.transaction import Transaction


class SerialPolicy(ControlPolicy):
    """
    Applies an ordered list of policies to each request.

    The first policy that raises stops the chain; the exception reaches the
    orchestrator unchanged.

    Attributes:
        policies (List[ControlPolicy]): The member policies, in application order.
    """

    name: Optional[str] = Field(default="SerialPolicy")
    policies: List[ControlPolicy] = Field(default_factory=list)

    async def apply(self, transaction: Transaction, container: DependencyContainer) -> Transaction:
        if not self.policies:
            self.logger.warning(f"[{transaction.transaction_id}] SerialPolicy '{self.name}' has no policies.")

        for position, policy in enumerate(self.policies, start=1):
            member = policy.name or policy.__class__.__name__
            self.logger.debug(
                f"[{transaction.transaction_id}] {self.name} step {position}/{len(self.policies)}: {member}"
            )
            try:
                transaction = await policy.apply(transaction, container)
            except ControlPolicyError as e:
                self.logger.info(f"[{transaction.transaction_id}] {member} stopped {self.name}: {e.__class__.__name__}")
                raise
            except Exception as e:
                self.logger.error(
                    f"[{transaction.transaction_id}] {member} failed inside {self.name}: {e}",
                    exc_info=True,
                )
                raise
        return transaction

    def __repr__(self) -> str:
        members = ", ".join(f"{p.name} <{p.__class__.__name__}>" for p in self.policies)
        return f"<{self.name}(policies=[{members}])>"

    @classmethod
    def from_serialized(cls, config: PolicyConfig) -> "SerialPolicy":
        """
        Builds the chain from ``{"name": ..., "policies": [{"type": ..., "config": ...}, ...]}``.

        Raises:
            PolicyLoadError: If 'policies' is missing or not a list, or a member fails to load.
        """
        entries = config.get("policies")
        if entries is None:
            raise PolicyLoadError("SerialPolicy config missing 'policies' list.")
        if not isinstance(entries, list):
            raise PolicyLoadError(f"SerialPolicy 'policies' must be a list, got {type(entries).__name__}")

        members = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict) or not isinstance(entry.get("type"), str):
                raise PolicyLoadError(f"Member policy at index {index} needs a string 'type' field.")
            try:
                members.append(load_policy(SerializedPolicy(type=entry["type"], config=entry.get("config", {}))))
            except PolicyLoadError as e:
                raise PolicyLoadError(f"Failed to load member policy at index {index}: {e}") from e

        return cls(name=config.get("name") or "SerialPolicy", policies=members)
