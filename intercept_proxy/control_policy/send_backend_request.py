import logging
from typing import Iterable, List, Optional, Tuple

import httpx
from pydantic import Field

from intercept_proxy.control_policy.control_policy import ControlPolicy
from intercept_proxy.control_policy.exceptions import ForwardingError
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.events import ForwardingFailed
from intercept_proxy.core.transaction import ProxyRequest, Transaction

logger = logging.getLogger(__name__)

# RFC 9110 hop-by-hop headers, which describe one connection and are not forwarded
HOP_BY_HOP_HEADERS = frozenset(
    {
        b"connection",
        b"keep-alive",
        b"proxy-authenticate",
        b"proxy-authorization",
        b"te",
        b"trailer",
        b"trailers",
        b"transfer-encoding",
        b"upgrade",
    }
)


def strip_hop_by_hop_headers(headers: Iterable[Tuple[bytes, bytes]]) -> List[Tuple[bytes, bytes]]:
    """Drops hop-by-hop headers from raw header pairs, keeping everything else byte for byte."""
    return [(key, value) for key, value in headers if key.lower() not in HOP_BY_HOP_HEADERS]


def build_backend_url(backend_url: str, request: ProxyRequest) -> str:
    url = f"{backend_url.rstrip('/')}/{request.path.lstrip('/')}"
    if request.query:
        url = f"{url}?{request.query}"
    return url


class SendBackendRequestPolicy(ControlPolicy):
    """
    Policy responsible for sending requests to the backend.

    The buffered body is written exactly once, with the incoming method, path,
    query string and headers. The backend response is opened in streaming mode
    and stored on the transaction; whoever relays it must close it.

    Attributes:
        backend_url (Optional[str]): Overrides the backend URL from settings.
    """

    name: Optional[str] = Field(default="SendBackendRequestPolicy")
    backend_url: Optional[str] = Field(default=None)

    async def apply(self, transaction: Transaction, container: DependencyContainer) -> Transaction:
        """
        Sends the request to the backend.

        Args:
            transaction: The current transaction, containing the request to be sent.
            container: The application dependency container, providing settings and the HTTP client.

        Returns:
            The transaction, with ``response`` set to the streaming backend response.

        Raises:
            ForwardingError: If the backend cannot be reached or the request cannot be written.
        """
        request = transaction.request
        backend_url = self.backend_url or container.settings.get_backend_url()
        full_url = build_backend_url(backend_url, request)

        self.logger.info(f"[{transaction.transaction_id}] Sending {request.method} request to {full_url} ({self.name})")

        # Built directly so the client's default headers are not merged in
        backend_request = httpx.Request(
            method=request.method,
            url=full_url,
            headers=strip_hop_by_hop_headers(request.raw_headers()),
            content=request.body,
            extensions={"timeout": container.http_client.timeout.as_dict()},
        )
        try:
            transaction.response = await container.http_client.send(backend_request, stream=True)
        except httpx.HTTPError as e:
            self.logger.error(f"[{transaction.transaction_id}] Error during backend request: {e!r} ({self.name})")
            container.event_log.record(
                ForwardingFailed(
                    method=request.method,
                    request_id=transaction.transaction_id,
                    backend_url=full_url,
                    error=repr(e),
                )
            )
            raise ForwardingError(f"Could not forward request to backend: {e!r}", policy_name=self.name) from e

        self.logger.info(
            f"[{transaction.transaction_id}] Received backend response with status "
            f"{transaction.response.status_code} ({self.name})"
        )
        return transaction
