"""CDN upload through the ImageKit upload API."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from giftworks.core.config import GiftworksConfig
from giftworks.core.errors import UpstreamError, WatermarkError
from giftworks.core.http import send

logger = logging.getLogger(__name__)


def watermarked_filename(now: datetime | None = None) -> str:
    """Build the upload name ``hg-watermarked-image-<ms>-<day>-<month>-<year>.png``.

    ``month`` is the calendar month, 1 to 12.
    """
    now = now or datetime.now()
    millis = int(now.timestamp() * 1000)
    return f"hg-watermarked-image-{millis}-{now.day}-{now.month}-{now.year}.png"


class ImageKitUploader:
    """Upload encoded images and return their public CDN URL.

    ImageKit authenticates server-side uploads with HTTP Basic, using the
    private key as the username and an empty password.
    """

    def __init__(self, http: httpx.AsyncClient, *, private_key: str, upload_url: str) -> None:
        self.http = http
        self.auth = httpx.BasicAuth(private_key, "")
        self.upload_url = upload_url

    @classmethod
    def from_config(cls, http: httpx.AsyncClient, config: GiftworksConfig) -> ImageKitUploader:
        return cls(
            http,
            private_key=config.imagekit_private_key or "",
            upload_url=config.imagekit_upload_url,
        )

    async def upload(self, data: bytes, filename: str, content_type: str = "image/png") -> str:
        try:
            _, body = await send(
                self.http,
                "POST",
                self.upload_url,
                action="upload image to CDN",
                files={"file": (filename, data, content_type)},
                data={"fileName": filename},
                auth=self.auth,
            )
        except UpstreamError as exc:
            raise WatermarkError(str(exc)) from exc

        url = body.get("url") if isinstance(body, dict) else None
        if not url:
            raise WatermarkError("CDN upload response did not include a url")

        logger.info("Image uploaded successfully: %s", url)
        return url
