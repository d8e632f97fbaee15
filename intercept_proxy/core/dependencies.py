import logging

import httpx
from fastapi import Depends, HTTPException, Request, status

from intercept_proxy.control_policy.content_filter import ContentFilterPolicy
from intercept_proxy.control_policy.control_policy import ControlPolicy
from intercept_proxy.control_policy.duplicate_delay import DuplicateDelayPolicy
from intercept_proxy.control_policy.exceptions import PolicyLoadError
from intercept_proxy.control_policy.loader import load_policy_from_file
from intercept_proxy.control_policy.request_logging import RequestLoggingPolicy
from intercept_proxy.control_policy.send_backend_request import SendBackendRequestPolicy
from intercept_proxy.control_policy.serial_policy import SerialPolicy
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.duplicate_tracker import DuplicateBodyTracker
from intercept_proxy.core.events import EventLog
from intercept_proxy.settings import Settings

logger = logging.getLogger(__name__)

# --- Dependency Providers --- #


def get_dependencies(request: Request) -> DependencyContainer:
    """Dependency to retrieve the DependencyContainer from application state."""
    dependencies: DependencyContainer | None = getattr(request.app.state, "dependencies", None)
    if dependencies is None:
        logger.critical(
            "DependencyContainer not found in application state. "
            "This indicates a critical setup error in the application lifespan."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error: Application dependencies not initialized.",
        )
    return dependencies


def build_default_policy(settings: Settings) -> ControlPolicy:
    """The interception pipeline used when no policy file is configured."""
    return SerialPolicy(
        name="InterceptionPipeline",
        policies=[
            RequestLoggingPolicy(),
            ContentFilterPolicy(filtered_string=settings.get_filtered_string()),
            DuplicateDelayPolicy(delay_seconds=settings.get_duplicate_delay_seconds()),
            SendBackendRequestPolicy(),
        ],
    )


async def get_main_control_policy(
    dependencies: DependencyContainer = Depends(get_dependencies),
) -> ControlPolicy:
    """
    Dependency to load and provide the main ControlPolicy instance.

    Loads the policy file named by POLICY_FILEPATH if set, otherwise builds the
    default pipeline from settings. Policies are stateless; the duplicate-body
    slot they share lives on the container.
    """
    settings = dependencies.settings
    policy_filepath = settings.get_policy_filepath()
    if not policy_filepath:
        return build_default_policy(settings)

    logger.debug(f"Loading main control policy from file: {policy_filepath}")
    try:
        return load_policy_from_file(policy_filepath)
    except PolicyLoadError as e:
        logger.exception(f"Failed to load main control policy from '{policy_filepath}': {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: Could not load main control policy. {e}",
        )


async def initialize_app_dependencies(app_settings: Settings) -> DependencyContainer:
    """Initialize and configure core application dependencies.

    Args:
        app_settings: The application settings instance.

    Returns:
        A DependencyContainer instance populated with initialized dependencies.

    Raises:
        RuntimeError: If the dependency container cannot be created.
    """
    logger.info("Initializing core application dependencies...")

    # No deadline unless BACKEND_TIMEOUT_SECONDS is set
    timeout = httpx.Timeout(app_settings.get_backend_timeout())
    http_client = httpx.AsyncClient(timeout=timeout, follow_redirects=False)
    logger.info("HTTP Client initialized for DependencyContainer.")

    try:
        dependencies = DependencyContainer(
            settings=app_settings,
            http_client=http_client,
            event_log=EventLog(),
            duplicate_tracker=DuplicateBodyTracker(),
        )
        logger.info("Dependency Container created successfully.")
        return dependencies
    except Exception as container_exc:
        logger.critical(f"Failed to create Dependency Container instance: {container_exc}", exc_info=True)
        await http_client.aclose()
        logger.info("HTTP client closed due to Dependency Container instantiation failure.")
        raise RuntimeError(f"Failed to create Dependency Container instance: {container_exc}") from container_exc
