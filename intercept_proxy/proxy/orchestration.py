import logging
import time
from typing import AsyncIterator

import fastapi
import httpx
from fastapi import status
from fastapi.responses import JSONResponse, StreamingResponse

from intercept_proxy.control_policy.control_policy import ControlPolicy
from intercept_proxy.control_policy.exceptions import (
    BodyReadError,
    ControlPolicyError,
    FilteredContentError,
)
from intercept_proxy.control_policy.send_backend_request import strip_hop_by_hop_headers
from intercept_proxy.core.body import CollectedBody, collect_body
from intercept_proxy.core.dependency_container import DependencyContainer
from intercept_proxy.core.events import BodyReadFailed, ForwardingFailed
from intercept_proxy.core.logging import create_debug_response, log_policy_execution
from intercept_proxy.core.request_id import REQUEST_ID_HEADER
from intercept_proxy.core.transaction import HEADER_ENCODING, ProxyRequest, Transaction

logger = logging.getLogger(__name__)


def _initialize_transaction(request: fastapi.Request, body: CollectedBody) -> Transaction:
    proxy_request = ProxyRequest(
        method=request.method,
        path=request.url.path,
        query=request.url.query,
        headers=[(key.decode(HEADER_ENCODING), value.decode(HEADER_ENCODING)) for key, value in request.headers.raw],
        body=body.raw,
        content=body.text,
    )
    return Transaction(request=proxy_request)


async def _relay_backend_response(
    transaction: Transaction, backend_response: httpx.Response, dependencies: DependencyContainer
) -> StreamingResponse:
    """Streams the backend response to the client verbatim, tagged with the request ID."""

    async def relay_body() -> AsyncIterator[bytes]:
        try:
            async for chunk in backend_response.aiter_raw():
                yield chunk
        except httpx.HTTPError as e:
            logger.error(f"[{transaction.transaction_id}] Backend response stream failed: {e!r}")
            dependencies.event_log.record(
                ForwardingFailed(
                    method=transaction.request.method,
                    request_id=transaction.transaction_id,
                    backend_url=str(backend_response.request.url),
                    error=repr(e),
                )
            )
            raise
        finally:
            await backend_response.aclose()

    try:
        headers = strip_hop_by_hop_headers(backend_response.headers.raw)
        request_id = str(transaction.transaction_id).encode(HEADER_ENCODING)
        headers.append((REQUEST_ID_HEADER.encode(HEADER_ENCODING), request_id))
        response = StreamingResponse(relay_body(), status_code=backend_response.status_code)
        # Raw bytes as received; repeated headers such as set-cookie stay separate
        response.raw_headers = [(key.lower(), value) for key, value in headers]
    except Exception:
        # relay_body never started, so its finally will not close the upstream response
        await backend_response.aclose()
        raise
    return response


def _policy_error_response(e: ControlPolicyError, transaction: Transaction, dependencies: DependencyContainer):
    if isinstance(e, FilteredContentError):
        # Rejections carry no body and no custom headers
        return fastapi.Response(status_code=e.status_code or status.HTTP_401_UNAUTHORIZED)

    status_code = e.status_code or status.HTTP_400_BAD_REQUEST
    policy_name = e.policy_name or "unknown"
    dev_mode = dependencies.settings.dev_mode()
    debug_details = {"error_type": e.__class__.__name__, "policy_name": policy_name} if dev_mode else None
    content = create_debug_response(
        status_code=status_code,
        message=f"Policy error in '{policy_name}': {e.detail}",
        transaction_id=str(transaction.transaction_id),
        details=debug_details,
        include_debug_info=dev_mode,
    )
    return JSONResponse(status_code=status_code, content=content)


async def run_policy_flow(
    request: fastapi.Request,
    main_policy: ControlPolicy,
    dependencies: DependencyContainer,
) -> fastapi.Response:
    """
    Buffers the request body, runs the main ControlPolicy and builds the client response.

    Args:
        request: The incoming FastAPI request.
        main_policy: The main policy instance to execute.
        dependencies: The application's dependency container.

    Returns:
        The streamed backend response on success, 401 with an empty body for
        filtered content, or a JSON error response for any other failure.
    """
    # 1. Collect the body before any policy runs
    try:
        body = await collect_body(request.stream())
    except BodyReadError as e:
        dependencies.event_log.record(BodyReadFailed(method=request.method, error=repr(e.__cause__ or e)))
        logger.warning(f"Aborting {request.method} {request.url.path}: {e.detail}")
        return JSONResponse(status_code=e.status_code or status.HTTP_400_BAD_REQUEST, content={"detail": e.detail})

    transaction = _initialize_transaction(request, body)
    transaction_id = str(transaction.transaction_id)
    policy_name = main_policy.name or main_policy.__class__.__name__

    # 2. Apply the main policy
    policy_start_time = time.time()
    try:
        transaction = await main_policy.apply(transaction, dependencies)
    except ControlPolicyError as e:
        log_policy_execution(
            transaction_id,
            policy_name,
            "rejected" if isinstance(e, FilteredContentError) else "error",
            duration=time.time() - policy_start_time,
            error=str(e),
            details={"error_type": e.__class__.__name__, "failed_policy": e.policy_name or "unknown"},
        )
        return _policy_error_response(e, transaction, dependencies)
    except Exception as e:
        logger.exception(
            f"Unhandled exception during policy flow - transaction {transaction_id}",
            extra={"transaction_id": transaction_id, "error_type": e.__class__.__name__},
        )
        content = create_debug_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message="Internal Server Error",
            transaction_id=transaction_id,
            details={"error_type": e.__class__.__name__, "error": str(e)},
            include_debug_info=dependencies.settings.dev_mode(),
        )
        content["policy_name"] = policy_name
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    log_policy_execution(
        transaction_id,
        policy_name,
        "completed",
        duration=time.time() - policy_start_time,
        details={"has_response": transaction.response is not None},
    )

    # 3. Relay the backend response
    if transaction.response is None:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal Server Error: No backend response",
                "transaction_id": transaction_id,
                "policy_name": policy_name,
            },
        )
    return await _relay_backend_response(transaction, transaction.response, dependencies)
