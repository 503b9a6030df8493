"""Print-on-demand fulfillment through the Printify API.

Product creation is a three-call sequence:

1. fetch the catalog variants for the blueprint / print provider pair,
2. upload the product image by URL,
3. create the product with every catalog variant enabled and one print-area
   group covering all variants.

The front print area carries the uploaded image; every other position gets
the shop's placeholder image.  Geometry comes from the print area itself when
the caller supplies one, otherwise from the request-wide ``x``/``y``/``scale``.

Shipping calculation is a straight relay: the caller's body and
``Authorization`` header are forwarded and the upstream answer is returned
untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from giftworks.core.config import GiftworksConfig
from giftworks.core.errors import UpstreamError
from giftworks.core.http import send

logger = logging.getLogger(__name__)

FRONT_POSITION = "front"


@dataclass(frozen=True)
class PrintArea:
    position: str
    x: float | None = None
    y: float | None = None
    scale: float | None = None


@dataclass(frozen=True)
class ProductSpec:
    """Everything needed to create one product.

    ``price`` is either a single price applied to every catalog variant or a
    caller-built list of variant objects that is sent as-is.
    """

    blueprint_id: int
    provider_id: int
    file_name: str
    image_url: str
    product_name: str
    price: Any
    token: str
    print_areas: tuple[PrintArea, ...] = field(default_factory=tuple)
    x: float = 0.5
    y: float = 0.5
    scale: float = 1.0


def build_variants(spec: ProductSpec, variant_ids: list[int]) -> list[dict[str, Any]]:
    if isinstance(spec.price, list):
        return spec.price
    return [{"id": variant_id, "price": spec.price} for variant_id in variant_ids]


def build_placeholder(
    spec: ProductSpec,
    area: PrintArea,
    uploaded_image_id: str,
    placeholder_image_id: str,
) -> dict[str, Any]:
    image_id = uploaded_image_id if area.position == FRONT_POSITION else placeholder_image_id
    return {
        "position": area.position,
        "images": [
            {
                "id": image_id,
                "x": spec.x if area.x is None else area.x,
                "y": spec.y if area.y is None else area.y,
                "scale": spec.scale if area.scale is None else area.scale,
                "angle": 0,
            }
        ],
    }


def build_product_payload(
    spec: ProductSpec,
    variant_ids: list[int],
    uploaded_image_id: str,
    placeholder_image_id: str,
) -> dict[str, Any]:
    """Reshape a :class:`ProductSpec` into Printify's product-creation body."""
    return {
        "title": spec.product_name,
        "description": spec.product_name,
        "blueprint_id": spec.blueprint_id,
        "print_provider_id": spec.provider_id,
        "variants": build_variants(spec, variant_ids),
        "print_areas": [
            {
                "variant_ids": list(variant_ids),
                "placeholders": [
                    build_placeholder(spec, area, uploaded_image_id, placeholder_image_id)
                    for area in spec.print_areas
                ],
            }
        ],
    }


class PrintifyClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        base_url: str,
        shop_id: str,
        placeholder_image_id: str,
    ) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.shop_id = shop_id
        self.placeholder_image_id = placeholder_image_id

    @classmethod
    def from_config(cls, http: httpx.AsyncClient, config: GiftworksConfig) -> PrintifyClient:
        return cls(
            http,
            base_url=config.printify_base_url,
            shop_id=config.printify_shop_id,
            placeholder_image_id=config.printify_placeholder_image_id,
        )

    async def get_variant_ids(self, token: str, blueprint_id: int, provider_id: int) -> list[int]:
        _, body = await send(
            self.http,
            "GET",
            f"{self.base_url}/catalog/blueprints/{blueprint_id}"
            f"/print_providers/{provider_id}/variants.json",
            action="fetch catalog variants",
            headers={"Authorization": token},
        )
        variants = body.get("variants") if isinstance(body, dict) else None
        if not isinstance(variants, list):
            raise UpstreamError("Catalog response did not include variants", body=body)
        return [variant["id"] for variant in variants]

    async def upload_image(self, token: str, file_name: str, image_url: str) -> str:
        _, body = await send(
            self.http,
            "POST",
            f"{self.base_url}/uploads/images.json",
            action="upload product image",
            json={"file_name": file_name, "url": image_url},
            headers={"Authorization": token},
        )
        image_id = body.get("id") if isinstance(body, dict) else None
        if not image_id:
            raise UpstreamError("Image upload response did not include an id", body=body)
        logger.info("Uploaded product image %s as %s", file_name, image_id)
        return str(image_id)

    async def create_product(self, spec: ProductSpec) -> dict[str, Any]:
        """Run the full product-creation sequence and return the product body."""
        variant_ids = await self.get_variant_ids(spec.token, spec.blueprint_id, spec.provider_id)
        image_id = await self.upload_image(spec.token, spec.file_name, spec.image_url)
        payload = build_product_payload(spec, variant_ids, image_id, self.placeholder_image_id)

        _, body = await send(
            self.http,
            "POST",
            f"{self.base_url}/shops/{self.shop_id}/products.json",
            action="create product",
            json=payload,
            headers={"Authorization": spec.token},
        )
        logger.info("Product res: %s", body)
        return body if isinstance(body, dict) else {}

    async def calculate_shipping(
        self,
        authorization: str | None,
        body: Any,
    ) -> tuple[int, Any]:
        """Forward a shipping quote request and return ``(status, body)`` unchanged."""
        headers = {"Authorization": authorization} if authorization else {}
        response, upstream_body = await send(
            self.http,
            "POST",
            f"{self.base_url}/shops/{self.shop_id}/orders/shipping.json",
            action="calculate shipping",
            check=False,
            json=body,
            headers=headers,
        )
        logger.info("Shipping Response: %s", upstream_body)
        return response.status_code, upstream_body
