"""Buffering of incoming request bodies."""

import logging
from dataclasses import dataclass
from typing import AsyncIterable

from intercept_proxy.control_policy.exceptions import BodyReadError

logger = logging.getLogger(__name__)

BODY_ENCODING = "utf-8"


@dataclass(frozen=True)
class CollectedBody:
    """A fully drained request body.

    Attributes:
        raw: The exact bytes received, forwarded to the backend as-is.
        text: The bytes decoded as UTF-8, used by the interception policies.
            Undecodable sequences are replaced rather than rejected.
    """

    raw: bytes
    text: str


def decode_body(raw: bytes) -> str:
    return raw.decode(BODY_ENCODING, errors="replace")


async def collect_body(stream: AsyncIterable[bytes]) -> CollectedBody:
    """
    Drains a request body stream into memory.

    Args:
        stream: The incoming body as an async iterable of byte chunks.

    Returns:
        The complete body. A partial body is never returned.

    Raises:
        BodyReadError: If the stream fails before it is exhausted.
    """
    chunks: list[bytes] = []
    try:
        async for chunk in stream:
            chunks.append(chunk)
    except Exception as e:
        raise BodyReadError(f"Error getting message body: {e}") from e

    raw = b"".join(chunks)
    logger.debug(f"Collected request body of {len(raw)} bytes in {len(chunks)} chunks")
    return CollectedBody(raw=raw, text=decode_body(raw))
