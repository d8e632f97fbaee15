import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from intercept_proxy.core.dependencies import initialize_app_dependencies
from intercept_proxy.core.events import ProxyStarted
from intercept_proxy.core.logging import setup_logging
from intercept_proxy.proxy.server import PROXY_PATH, proxy_endpoint
from intercept_proxy.settings import Settings

setup_logging()


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Owns the proxy's shared resources for one run of the application.

    Startup builds a fresh DependencyContainer, so the duplicate-body slot is
    empty for every run, and writes the "Proxy running" line to the request
    log. Shutdown closes the backend HTTP client.

    Raises:
        RuntimeError: If the container cannot be built, e.g. because of invalid settings.
    """
    settings = Settings()
    try:
        dependencies = await initialize_app_dependencies(settings)
    except Exception as init_exc:
        logger.critical(f"Could not initialize proxy dependencies: {init_exc}", exc_info=True)
        raise RuntimeError(
            f"Application startup failed due to dependency initialization error: {init_exc}"
        ) from init_exc
    app.state.dependencies = dependencies

    dependencies.event_log.record(ProxyStarted(host=settings.get_proxy_host(), port=settings.get_proxy_port()))
    logger.info(f"Forwarding every request to {settings.get_backend_url()}.")

    yield

    await dependencies.http_client.aclose()
    logger.info("Backend HTTP client closed; proxy stopped.")


app = FastAPI(
    title="Intercept Proxy",
    description="A transparent forwarding proxy that inspects request bodies before forwarding them.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

# methods=None: every HTTP method, including extension methods, is proxied
app.add_route(PROXY_PATH, proxy_endpoint, methods=None, include_in_schema=False)
