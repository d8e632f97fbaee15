# Dependency Injection Container.

import httpx

from intercept_proxy.core.duplicate_tracker import DuplicateBodyTracker
from intercept_proxy.core.events import EventLog
from intercept_proxy.settings import Settings


class DependencyContainer:
    """Holds shared dependencies for the application.

    This class is responsible for holding all shared dependencies for the application.
    It is used to inject dependencies into the application and to make it easier to mock dependencies for testing.
    Each application instance owns its own container, so the duplicate-body slot is never a module global.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        event_log: EventLog,
        duplicate_tracker: DuplicateBodyTracker,
    ) -> None:
        """
        Initializes the container.

        Args:
            settings: Application settings.
            http_client: Shared asynchronous HTTP client used to reach the backend.
            event_log: Sink for request and error events.
            duplicate_tracker: The last-accepted-body slot shared by all requests.
        """
        self.settings = settings
        self.http_client = http_client
        self.event_log = event_log
        self.duplicate_tracker = duplicate_tracker
