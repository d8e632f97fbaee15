import logging

from fastapi import Request, Response

from intercept_proxy.core.dependencies import get_dependencies, get_main_control_policy
from intercept_proxy.proxy.orchestration import run_policy_flow

logger = logging.getLogger(__name__)

PROXY_PATH = "/{full_path:path}"


async def proxy_endpoint(request: Request) -> Response:
    """
    Forwards one request of any method on any path.

    Mounted as a plain Starlette route with ``methods=None``, so extension
    methods such as PROPFIND reach the backend like GET or POST do.
    """
    dependencies = get_dependencies(request)
    main_policy = await get_main_control_policy(dependencies)

    client_ip = request.client.host if request.client else "unknown"
    logger.info(
        f"{request.method} {request.url.path} from {client_ip}",
        extra={"method": request.method, "path": request.url.path, "client_ip": client_ip},
    )

    response = await run_policy_flow(request=request, main_policy=main_policy, dependencies=dependencies)

    logger.info(
        f"{request.method} {request.url.path} answered {response.status_code}",
        extra={"method": request.method, "path": request.url.path, "status_code": response.status_code},
    )
    return response
