"""Events written to the proxy's request and error logs."""

import abc
import logging
from datetime import UTC, datetime
from typing import ClassVar, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from intercept_proxy.core.logging import EVENT_LOGGER_NAME


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class ProxyEvent(BaseModel, abc.ABC):
    """Base class for a single event log record.

    Attributes:
        level: The logging level the event is recorded at.
        timestamp: ISO-8601 time the event was created.
    """

    level: ClassVar[int] = logging.INFO

    timestamp: str = Field(default_factory=_now_iso)

    @abc.abstractmethod
    def message(self) -> str:
        """Render the event as a single log line."""
        raise NotImplementedError


class ProxyStarted(ProxyEvent):
    """The listener is up and accepting requests."""

    host: str
    port: int

    def message(self) -> str:
        return f"Proxy running at http://{self.host}:{self.port}/"


class RequestReceived(ProxyEvent):
    """A request body was collected and the request was tagged."""

    method: str
    request_id: UUID
    body: str
    host: Optional[str] = None

    def message(self) -> str:
        return f"{self.method} REQUEST: {self.request_id} {self.body} to {self.host} at {self.timestamp}."


class RequestRejected(ProxyEvent):
    """A request body contained the filtered substring."""

    level: ClassVar[int] = logging.ERROR

    method: str
    request_id: UUID
    status_code: int
    filtered_string: str

    def message(self) -> str:
        return (
            f"{self.method} REQUEST: {self.request_id} rejected with {self.status_code}: "
            f"{self.filtered_string} at {self.timestamp}"
        )


class BodyReadFailed(ProxyEvent):
    """The incoming body stream could not be drained."""

    level: ClassVar[int] = logging.ERROR

    method: str
    error: str

    def message(self) -> str:
        return f"Error getting message body: {self.method} {self.error} at {self.timestamp}"


class DelayFailed(ProxyEvent):
    """The duplicate-body delay did not complete normally."""

    level: ClassVar[int] = logging.ERROR

    method: str
    request_id: UUID
    error: str

    def message(self) -> str:
        return f"error after timeout: {self.method} {self.request_id} {self.error} at {self.timestamp}"


class ForwardingFailed(ProxyEvent):
    """The request could not be sent to the backend."""

    level: ClassVar[int] = logging.ERROR

    method: str
    request_id: UUID
    backend_url: str
    error: str

    def message(self) -> str:
        return (
            f"Error piping request: {self.method} {self.request_id} to {self.backend_url}: "
            f"{self.error} at {self.timestamp}"
        )


class EventLog:
    """Append-only sink for proxy events.

    Events are written through the ``intercept_proxy.events`` logger, whose file
    handlers are set up by :func:`intercept_proxy.core.logging.setup_event_log_handlers`.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(EVENT_LOGGER_NAME)

    def record(self, event: ProxyEvent) -> None:
        """Append one event at its own level."""
        self.logger.log(event.level, event.message(), extra={"event": event.__class__.__name__})
