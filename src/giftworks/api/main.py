"""Giftworks image proxy: FastAPI application.

This module defines the application factory, all REST routes, the error
handlers that translate service-layer exceptions into HTTP responses, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The application is a stateless proxy:

- **Configuration** is loaded once into a frozen
  :class:`~giftworks.core.config.GiftworksConfig` and stored on
  ``app.state.config``.
- **Outbound HTTP** goes through one shared ``httpx.AsyncClient`` opened in
  the lifespan handler and stored on ``app.state.http_client``.
- **Image generation** routes are thin adapters over
  :class:`~giftworks.core.jobs.JobRunner`; each builds a generation request
  and lets the runner submit and poll it.
- **Fulfillment** routes reshape the body and relay Printify's answer.

Endpoints
---------
========  ==========================  ======  ====================================
Method    Path                        Gated   Purpose
========  ==========================  ======  ====================================
POST      ``/api/generate-image``     yes     Face swap (+ compression/watermark)
POST      ``/api/upscale-image``      yes     Super-resolution upscale
POST      ``/api/text2image``         yes     Text-to-image generation
GET       ``/api/get-countries``      yes     Bundled country list
GET       ``/api/keep-alive``         no      Liveness ping
POST      ``/api/create-product``     no      Printify product creation
POST      ``/api/create-product-2``   no      Product creation, caller-built variants
POST      ``/api/calculate-shipping`` no      Printify shipping quote relay
========  ==========================  ======  ====================================

Usage
-----
CLI (installed entry point)::

    giftworks

Direct invocation::

    python -m giftworks.api.main
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from giftworks import __version__
from giftworks.api.auth import require_api_key
from giftworks.api.dependencies import get_config, get_http_client
from giftworks.api.models import (
    CreateProductRequest,
    CreateProductV2Request,
    GenerateImageRequest,
    Text2ImageRequest,
    UpscaleImageRequest,
)
from giftworks.core.compression import TinifyClient
from giftworks.core.config import GiftworksConfig, load_config
from giftworks.core.countries import load_countries
from giftworks.core.errors import GiftworksError, UnauthorizedError
from giftworks.core.fulfillment import PrintifyClient
from giftworks.core.imagepipeline import FaceSwapRequest, TextToImageRequest, UpscaleRequest
from giftworks.core.jobs import JobRunner
from giftworks.core.watermark import Watermarker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
gated = [Depends(require_api_key)]


# ---------------------------------------------------------------------------
# Image generation routes.
# ---------------------------------------------------------------------------


@router.post("/generate-image", dependencies=gated)
async def generate_image(
    req: GenerateImageRequest,
    config: GiftworksConfig = Depends(get_config),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> dict:
    """Swap the uploaded face into the target image.

    When compression is enabled both input URLs are replaced by their
    compressed copies first.  When watermarking is enabled the response
    carries the watermarked CDN copy as ``previewUrl`` and the clean image as
    ``productUrl``; otherwise it is ``{"url": ...}``.
    """
    logger.info("Received Request: %s %s", req.uploaded_image, req.target_image)
    source, target = req.uploaded_image, req.target_image

    if config.compression_enabled:
        tinify = TinifyClient.from_config(http, config)
        source = await tinify.compress(source)
        target = await tinify.compress(target)

    runner = JobRunner.from_config(http, config)
    job = await runner.run(FaceSwapRequest(source_image_url=source, target_image_url=target))
    generated = job.first_url

    if not config.watermark_enabled:
        return {"url": generated}

    preview = await Watermarker.from_config(http, config).apply(generated)
    return {"previewUrl": preview, "productUrl": generated}


@router.post("/upscale-image", dependencies=gated)
async def upscale_image(
    req: UpscaleImageRequest,
    config: GiftworksConfig = Depends(get_config),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> dict:
    runner = JobRunner.from_config(http, config)
    job = await runner.run(UpscaleRequest.from_config(req.image, config))
    return {"url": job.first_url}


@router.post("/text2image", dependencies=gated)
async def text_to_image(
    req: Text2ImageRequest,
    config: GiftworksConfig = Depends(get_config),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> dict:
    """Generate images from a prompt.

    ``url`` is the first result; ``urls`` lists every sample the model
    returned.
    """
    logger.info("Received Request: %s", req.prompt)
    runner = JobRunner.from_config(http, config)
    job = await runner.run(TextToImageRequest.from_config(req.prompt, config))
    return {"url": job.first_url, "urls": list(job.result_urls)}


# ---------------------------------------------------------------------------
# Static data and liveness.
# ---------------------------------------------------------------------------


@router.get("/get-countries", dependencies=gated)
def get_countries(config: GiftworksConfig = Depends(get_config)) -> list[dict]:
    logger.info("Received Countries Request")
    return load_countries(config.countries_csv)


@router.get("/keep-alive", response_class=PlainTextResponse)
async def keep_alive(config: GiftworksConfig = Depends(get_config)) -> str:
    await asyncio.sleep(config.keep_alive_delay)
    return "Server Alive"


# ---------------------------------------------------------------------------
# Fulfillment routes.
# ---------------------------------------------------------------------------


def _product_summary(product: dict) -> dict:
    return {
        "images": product.get("images"),
        "variants": product.get("variants"),
        "id": product.get("id"),
    }


@router.post("/create-product")
async def create_product(
    req: CreateProductRequest,
    config: GiftworksConfig = Depends(get_config),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> dict:
    """Create a product with one price applied to every catalog variant."""
    printify = PrintifyClient.from_config(http, config)
    product = await printify.create_product(req.to_spec())
    return _product_summary(product)


@router.post("/create-product-2")
async def create_product_v2(
    req: CreateProductV2Request,
    config: GiftworksConfig = Depends(get_config),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> dict:
    """Create a product whose variant list is supplied by the caller."""
    printify = PrintifyClient.from_config(http, config)
    product = await printify.create_product(req.to_spec())
    return _product_summary(product)


@router.post("/calculate-shipping")
async def calculate_shipping(
    body: Any = Body(...),
    authorization: str | None = Header(default=None),
    config: GiftworksConfig = Depends(get_config),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    logger.info("calculating shipping...")
    printify = PrintifyClient.from_config(http, config)
    status, upstream = await printify.calculate_shipping(authorization, body)
    if upstream is None:
        return Response(status_code=status)
    return JSONResponse(status_code=status, content=upstream)


# ---------------------------------------------------------------------------
# Error translation.
# ---------------------------------------------------------------------------


async def _unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    logger.warning("Unauthorized request to %s", request.url.path)
    return JSONResponse(status_code=401, content={"message": "Unauthorized"})


async def _service_error_handler(request: Request, exc: GiftworksError) -> JSONResponse:
    logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc), "kind": exc.kind},
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc), "kind": "internal"})


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shared HTTP client on startup and close it on shutdown.

    A client injected through :func:`create_app` is left alone; its owner is
    responsible for closing it.
    """
    owns_client = app.state.http_client is None
    if owns_client:
        app.state.http_client = httpx.AsyncClient(timeout=app.state.config.http_timeout)
        logger.info("HTTP client opened.")

    yield

    if owns_client:
        await app.state.http_client.aclose()
        app.state.http_client = None
        logger.info("HTTP client closed.")


def create_app(
    config: GiftworksConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to use.  Loaded from the environment when omitted.
        http_client: Outbound client to use instead of the one the lifespan
            handler would open.  Tests pass a client backed by
            ``httpx.MockTransport``.

    Returns:
        The configured application.
    """
    app = FastAPI(
        title="Giftworks Image Proxy",
        description="Image generation proxy and print-on-demand fulfillment relay.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config or load_config()
    app.state.http_client = http_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(UnauthorizedError, _unauthorized_handler)
    app.add_exception_handler(GiftworksError, _service_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Host, port and log level come from the ``GIFTWORKS_SERVER_HOST``,
    ``GIFTWORKS_SERVER_PORT`` and ``GIFTWORKS_LOG_LEVEL`` environment
    variables.  Registered as the ``giftworks`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    config: GiftworksConfig = app.state.config
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host=config.server_host, port=config.server_port)


if __name__ == "__main__":
    main()
