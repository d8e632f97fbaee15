"""Control Policy for throttling requests that repeat the previous request body."""

import asyncio
from typing import Optional

from pydantic import Field, NonNegativeFloat

from intercept_proxy.control_policy.control_policy import ControlPolicy
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.events import DelayFailed
from intercept_proxy.core.transaction import Transaction


class DuplicateDelayPolicy(ControlPolicy):
    """Holds back the response when a body equals the previously accepted one.

    The shared slot lives in ``container.duplicate_tracker`` and is updated
    exactly once per request, before the delay starts and before forwarding.

    Attributes:
        delay_seconds (Optional[float]): Overrides DUPLICATE_DELAY_SECONDS from settings.
    """

    name: Optional[str] = Field(default="DuplicateDelayPolicy")
    delay_seconds: Optional[NonNegativeFloat] = Field(default=None)

    async def apply(self, transaction: Transaction, container: DependencyContainer) -> Transaction:
        delay = await container.duplicate_tracker.check_and_update(transaction.request.content)
        transaction.data["duplicate_delayed"] = delay
        if not delay:
            return transaction

        delay_seconds = self.delay_seconds
        if delay_seconds is None:
            delay_seconds = container.settings.get_duplicate_delay_seconds()
        self.logger.info(
            f"[{transaction.transaction_id}] Duplicate request body, delaying for {delay_seconds}s ({self.name})."
        )
        try:
            await asyncio.sleep(delay_seconds)
        except Exception as e:
            # The request still goes through, undelayed
            container.event_log.record(
                DelayFailed(method=transaction.request.method, request_id=transaction.transaction_id, error=str(e))
            )
        return transaction
