"""FastAPI dependencies that expose process-wide state to route handlers."""

from __future__ import annotations

import httpx
from fastapi import Request

from giftworks.core.config import GiftworksConfig


def get_config(request: Request) -> GiftworksConfig:
    return request.app.state.config


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client
