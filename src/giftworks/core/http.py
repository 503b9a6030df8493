"""Outbound HTTP helpers shared by the provider clients.

Every provider call goes through :func:`send` so that transport failures,
non-2xx statuses and unparseable bodies all surface as
:class:`~giftworks.core.errors.UpstreamError` with the upstream body attached.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from giftworks.core.errors import UpstreamError

logger = logging.getLogger(__name__)


BINARY_CONTENT_TYPES = ("image/", "application/octet-stream")


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    if response.headers.get("content-type", "").startswith(BINARY_CONTENT_TYPES):
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


async def send(
    http: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    action: str,
    check: bool = True,
    **kwargs: Any,
) -> tuple[httpx.Response, Any]:
    """Send one request and decode the JSON body.

    Args:
        http: Shared async client.
        method: HTTP method.
        url: Absolute URL.
        action: Short description used in error messages, e.g.
            ``"create image"``.
        check: When ``True`` a non-2xx status raises ``UpstreamError``.
            When ``False`` the response is returned as-is for relaying.
        **kwargs: Forwarded to :meth:`httpx.AsyncClient.request`.

    Returns:
        Tuple of ``(response, decoded body)``.  The body is the parsed JSON,
        the raw text when the body is not JSON, or ``None`` when empty or
        binary (images are read from ``response.content``).

    Raises:
        UpstreamError: On transport failure, or on a non-2xx status when
            ``check`` is set.
    """
    try:
        response = await http.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        logger.error("Request to %s failed: %s", url, exc)
        raise UpstreamError(f"Failed to {action}: {exc}") from exc

    body = _decode_body(response)
    if check and not response.is_success:
        logger.error("%s %s returned %s: %s", method, url, response.status_code, body)
        raise UpstreamError(
            f"Failed to {action}",
            status=response.status_code,
            body=body,
        )
    return response, body
