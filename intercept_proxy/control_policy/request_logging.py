"""Control Policy for logging request details."""

from typing import Optional

from pydantic import Field

from intercept_proxy.control_policy.control_policy import ControlPolicy
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.events import RequestReceived
from intercept_proxy.core.transaction import Transaction


class RequestLoggingPolicy(ControlPolicy):
    """Records every received request, with its body and request ID, in the event log."""

    name: Optional[str] = Field(default="RequestLoggingPolicy")

    async def apply(self, transaction: Transaction, container: DependencyContainer) -> Transaction:
        """Logs request details and returns the transaction unmodified."""
        request = transaction.request
        container.event_log.record(
            RequestReceived(
                method=request.method,
                request_id=transaction.transaction_id,
                body=request.content,
                host=request.host,
            )
        )
        return transaction
