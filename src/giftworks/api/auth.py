from __future__ import annotations

import secrets

from fastapi import Depends, Header

from giftworks.api.dependencies import get_config
from giftworks.core.config import GiftworksConfig
from giftworks.core.errors import UnauthorizedError


def require_api_key(
    x_api_key: str | None = Header(default=None),
    config: GiftworksConfig = Depends(get_config),
) -> None:
    """Reject the request unless ``x-api-key`` matches the configured secret.

    With no secret configured every gated request is rejected.
    """
    expected = config.server_api_key
    if not x_api_key or not expected:
        raise UnauthorizedError()
    if not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        raise UnauthorizedError()
