"""Watermark compositing for generated face-swap images.

The generated image is downloaded, a local watermark asset (PNG with an alpha
channel) is composited onto it, and the result is uploaded to the CDN.  Two
placements are supported:

``tiled``
    The watermark is scaled to ``scale`` x image width and stamped on a 4x4
    grid starting at the top-left corner.  With the default scale of 0.3 the
    stamps overlap slightly, which is the intended look.
``single-corner``
    One watermark, scaled the same way, placed 10 px from the left and bottom
    edges.

Opacity multiplies the watermark's own alpha channel, so transparent areas
of the asset stay transparent.

Pillow work is CPU-bound and runs in a worker thread via
:func:`asyncio.to_thread` so the event loop keeps serving other requests.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

import httpx
from PIL import Image, UnidentifiedImageError

from giftworks.core.cdn import ImageKitUploader, watermarked_filename
from giftworks.core.config import GiftworksConfig
from giftworks.core.errors import UpstreamError, WatermarkError
from giftworks.core.http import send

logger = logging.getLogger(__name__)

GRID_DIVISIONS = 4
CORNER_PADDING = 10


@dataclass(frozen=True)
class WatermarkOptions:
    opacity: float = 0.5
    placement: Literal["tiled", "single-corner"] = "tiled"
    scale: float = 0.3

    @classmethod
    def from_config(cls, config: GiftworksConfig) -> WatermarkOptions:
        return cls(
            opacity=config.watermark_opacity,
            placement=config.watermark_placement,
            scale=config.watermark_scale,
        )


def stamp_positions(
    image_size: tuple[int, int],
    stamp_size: tuple[int, int],
    placement: str,
) -> list[tuple[int, int]]:
    """Return the top-left corner of every watermark stamp.

    Positions are clamped to be non-negative; stamps that run past the
    right or bottom edge are clipped when composited.
    """
    width, height = image_size
    _, stamp_height = stamp_size

    if placement == "single-corner":
        return [(CORNER_PADDING, max(0, height - stamp_height - CORNER_PADDING))]

    if placement == "tiled":
        xs = [round(i * width / GRID_DIVISIONS) for i in range(GRID_DIVISIONS)]
        ys = [round(i * height / GRID_DIVISIONS) for i in range(GRID_DIVISIONS)]
        return [(x, y) for y in ys for x in xs]

    raise ValueError(f"Unknown watermark placement: {placement}")


def prepare_stamp(mark: Image.Image, target_width: int, opacity: float) -> Image.Image:
    """Scale the watermark to ``target_width`` (keeping its aspect ratio) and fade it."""
    mark = mark.convert("RGBA")
    target_width = max(1, target_width)
    target_height = max(1, round(target_width * mark.height / mark.width))
    stamp = mark.resize((target_width, target_height), Image.Resampling.LANCZOS)

    if opacity < 1.0:
        alpha = stamp.getchannel("A").point(lambda value: round(value * opacity))
        stamp.putalpha(alpha)
    return stamp


def composite(image: Image.Image, mark: Image.Image, options: WatermarkOptions) -> Image.Image:
    """Composite ``mark`` onto a copy of ``image`` according to ``options``."""
    base = image.convert("RGBA")
    stamp = prepare_stamp(mark, round(base.width * options.scale), options.opacity)

    for position in stamp_positions(base.size, stamp.size, options.placement):
        base.alpha_composite(stamp, dest=position)
    return base


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def load_asset(path: Path) -> Image.Image:
    try:
        with Image.open(path) as mark:
            mark.load()
            return mark.copy()
    except (OSError, UnidentifiedImageError) as exc:
        raise WatermarkError(f"Cannot load watermark asset {path}: {exc}") from exc


class Watermarker:
    """Download a generated image, watermark it, and publish it to the CDN."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        uploader: ImageKitUploader,
        *,
        asset_path: Path,
        options: WatermarkOptions,
    ) -> None:
        self.http = http
        self.uploader = uploader
        self.asset_path = asset_path
        self.options = options

    @classmethod
    def from_config(cls, http: httpx.AsyncClient, config: GiftworksConfig) -> Watermarker:
        return cls(
            http,
            ImageKitUploader.from_config(http, config),
            asset_path=config.watermark_path,
            options=WatermarkOptions.from_config(config),
        )

    async def fetch_image(self, url: str) -> Image.Image:
        try:
            response, _ = await send(self.http, "GET", url, action="download generated image")
        except UpstreamError as exc:
            raise WatermarkError(str(exc)) from exc
        try:
            with Image.open(io.BytesIO(response.content)) as image:
                image.load()
                return image.copy()
        except (OSError, UnidentifiedImageError) as exc:
            raise WatermarkError(f"Generated image could not be decoded: {exc}") from exc

    def _render(self, image: Image.Image) -> bytes:
        mark = load_asset(self.asset_path)
        return encode_png(composite(image, mark, self.options))

    async def apply(self, image_url: str) -> str:
        """Watermark the image at ``image_url`` and return its CDN URL."""
        image = await self.fetch_image(image_url)
        data = await asyncio.to_thread(self._render, image)
        logger.info(
            "Watermarked %s (%s placement, opacity %.2f)",
            image_url,
            self.options.placement,
            self.options.opacity,
        )
        return await self.uploader.upload(data, watermarked_filename())
