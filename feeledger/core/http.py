"""Shared async HTTP client for the fee backend."""

import logging
from typing import Any, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from feeledger.core.config import settings
from feeledger.core.exceptions import RemoteApiError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def _log_request(request: httpx.Request) -> None:
    logger.debug("API request: %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    logger.debug("API response: %s %s", response.status_code, response.request.url)


def create_api_client(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    token: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build the AsyncClient used by every service. ``transport`` is for tests and in-process backends."""
    headers = {"Accept": "application/json"}
    token = token if token is not None else settings.fee_api_token
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(
        base_url=base_url or settings.fee_api_base_url,
        timeout=timeout if timeout is not None else settings.fee_api_timeout_seconds,
        headers=headers,
        transport=transport,
        event_hooks={"request": [_log_request], "response": [_log_response]},
    )


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)


async def send(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    failure_message: str,
    **kwargs: Any,
) -> httpx.Response:
    """Issue one request; transport errors and non-2xx statuses become RemoteApiError."""
    try:
        response = await client.request(method, path, **kwargs)
    except httpx.TimeoutException as e:
        logger.error("Request timeout: %s %s", method, path)
        raise RemoteApiError(f"{failure_message}: request timed out") from e
    except httpx.HTTPError as e:
        logger.error("Network error: %s %s: %s", method, path, e)
        raise RemoteApiError(f"{failure_message}: {type(e).__name__}") from e

    if not response.is_success:
        detail = _error_detail(response)
        logger.error("Server error: %s %s -> %s %s", method, path, response.status_code, detail)
        raise RemoteApiError(f"{failure_message}: {detail}", upstream_status=response.status_code)
    return response


def json_body(response: httpx.Response, failure_message: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise RemoteApiError(f"{failure_message}: response is not JSON", response.status_code) from e


def parse_model(model: Type[ModelT], body: Any, failure_message: str) -> ModelT:
    """Validate a response body; a malformed payload counts as a failed call."""
    try:
        return model.model_validate(body)
    except ValidationError as e:
        logger.error("%s: unexpected response shape: %s", failure_message, e)
        raise RemoteApiError(f"{failure_message}: unexpected response") from e


def attachment_disposition(filename: str) -> str:
    """Content-Disposition with an ASCII ``filename`` fallback and the UTF-8 name in ``filename*``."""
    fallback = "".join(c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"
