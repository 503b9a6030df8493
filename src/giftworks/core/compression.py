"""Optional input-image compression through the Tinify API.

When enabled, each face-swap input URL is replaced by the URL of its
compressed copy before the job is submitted.  Any failure aborts the request.
"""

from __future__ import annotations

import logging

import httpx

from giftworks.core.config import GiftworksConfig
from giftworks.core.errors import CompressionError, UpstreamError
from giftworks.core.http import send

logger = logging.getLogger(__name__)


class TinifyClient:
    def __init__(self, http: httpx.AsyncClient, *, api_key: str, url: str) -> None:
        self.http = http
        self.auth = httpx.BasicAuth("api", api_key)
        self.url = url

    @classmethod
    def from_config(cls, http: httpx.AsyncClient, config: GiftworksConfig) -> TinifyClient:
        return cls(http, api_key=config.tinify_api_key or "", url=config.tinify_url)

    async def compress(self, image_url: str) -> str:
        """Compress the image at ``image_url`` and return the output URL.

        Raises:
            CompressionError: The service rejected the image or returned no
                output URL.
        """
        try:
            _, body = await send(
                self.http,
                "POST",
                self.url,
                action="compress image",
                json={"source": {"url": image_url}},
                auth=self.auth,
            )
        except UpstreamError as exc:
            logger.error("Error compressing image %s: %s", image_url, exc.body)
            raise CompressionError(str(exc)) from exc

        output = body.get("output") if isinstance(body, dict) else None
        if not isinstance(output, dict) or not output.get("url"):
            raise CompressionError("Compression response did not include an output url")

        logger.info("Compressed %s -> %s", image_url, output["url"])
        return output["url"]
