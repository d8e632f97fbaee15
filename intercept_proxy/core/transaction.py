from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import httpx
from pydantic import BaseModel, ConfigDict, Field

from intercept_proxy.core.request_id import generate_request_id

# HTTP header bytes map one-to-one onto latin-1 code points
HEADER_ENCODING = "latin-1"


class ProxyRequest(BaseModel):
    """An incoming HTTP request with its body fully buffered."""

    method: str = Field()
    path: str = Field(default="/")
    query: str = Field(default="")
    # Ordered, duplicates preserved; names compare case-insensitively.
    # Decoded with HEADER_ENCODING, so raw_headers() gives back the received bytes.
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: bytes = Field(default=b"")
    content: str = Field(default="")

    def get_header(self, name: str) -> Optional[str]:
        """Returns the first value of a header, matching the name case-insensitively."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def raw_headers(self) -> List[Tuple[bytes, bytes]]:
        return [(key.encode(HEADER_ENCODING), value.encode(HEADER_ENCODING)) for key, value in self.headers]

    @property
    def host(self) -> Optional[str]:
        return self.get_header("host")


class Transaction(BaseModel):
    """A single request passing through the proxy.

    Attributes:
        transaction_id: Unique identifier for the request, surfaced in the event
            log and in the ``x-proxy-request-id`` response header.
        request: The buffered incoming request.
        response: The backend response, opened in streaming mode, once forwarded.
        data: A general-purpose dictionary for policies to share information.
    """

    transaction_id: UUID = Field(default_factory=generate_request_id)
    request: ProxyRequest
    response: Optional[httpx.Response] = Field(default=None, exclude=True)
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(arbitrary_types_allowed=True)
