"""
Control Policy for rejecting requests whose body contains a filtered substring.

A rejected request is answered with 401 and never reaches the backend.
"""

from typing import Optional

from fastapi import status
from pydantic import Field, field_validator

from intercept_proxy.control_policy.control_policy import ControlPolicy
from intercept_proxy.control_policy.exceptions import FilteredContentError
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.events import RequestRejected
from intercept_proxy.core.transaction import Transaction

def is_blocked(body: str, needle: str) -> bool:
    """Case-sensitive substring check of the request body."""
    return needle in body


class ContentFilterPolicy(ControlPolicy):
    """Blocks requests whose body contains ``filtered_string``.

    Attributes:
        filtered_string (Optional[str]): Overrides FILTERED_STRING from settings.
    """

    name: Optional[str] = Field(default="ContentFilterPolicy")
    filtered_string: Optional[str] = Field(default=None)

    @field_validator("filtered_string")
    @classmethod
    def validate_filtered_string(cls, value: Optional[str]) -> Optional[str]:
        # "" is a substring of every body and would block all traffic
        if value == "":
            raise ValueError("filtered_string cannot be empty.")
        return value

    async def apply(self, transaction: Transaction, container: DependencyContainer) -> Transaction:
        """
        Checks the request body against the filtered substring.

        Args:
            transaction: The current transaction.
            container: The application dependency container.

        Returns:
            The unmodified transaction if the body is allowed.

        Raises:
            FilteredContentError: If the body contains the filtered substring.
        """
        filtered_string = self.filtered_string or container.settings.get_filtered_string()
        if not is_blocked(transaction.request.content, filtered_string):
            return transaction

        status_code = status.HTTP_401_UNAUTHORIZED
        container.event_log.record(
            RequestRejected(
                method=transaction.request.method,
                request_id=transaction.transaction_id,
                status_code=status_code,
                filtered_string=filtered_string,
            )
        )
        self.logger.warning(f"[{transaction.transaction_id}] Request body contains filtered content ({self.name}).")
        raise FilteredContentError(
            f"Request body contains '{filtered_string}'.", status_code=status_code, policy_name=self.name
        )
