"""Pydantic request models for the Giftworks API.

Field names follow Python conventions; the JSON keys the frontend sends are
declared as aliases (``uploadedImage``, ``blueprintId`` and so on).  Both
spellings are accepted.

Models
------
GenerateImageRequest
    Payload for ``POST /api/generate-image`` (face swap).
UpscaleImageRequest
    Payload for ``POST /api/upscale-image``.
Text2ImageRequest
    Payload for ``POST /api/text2image``.
CreateProductRequest / CreateProductV2Request
    Payloads for ``POST /api/create-product`` and ``/api/create-product-2``.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from giftworks.core.fulfillment import PrintArea, ProductSpec


class _AliasedModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateImageRequest(_AliasedModel):
    """Request body for ``POST /api/generate-image``.

    Attributes:
        uploaded_image: URL of the face to swap in.
        target_image: URL of the image that receives the face.
    """

    uploaded_image: str = Field(..., alias="uploadedImage", description="Source face URL.")
    target_image: str = Field(..., alias="targetImage", description="Target image URL.")


class UpscaleImageRequest(_AliasedModel):
    image: str = Field(..., description="URL of the image to upscale.")


class Text2ImageRequest(_AliasedModel):
    prompt: str = Field(..., description="Text prompt for the generation model.")


class PrintAreaModel(_AliasedModel):
    position: str
    x: float | None = None
    y: float | None = None
    scale: float | None = None


class CreateProductRequest(_AliasedModel):
    """Request body for ``POST /api/create-product``.

    ``print_areas`` accepts either bare position names (``"front"``) or
    objects with their own geometry.  ``token`` is the caller's Printify
    ``Authorization`` value and is forwarded on every upstream call.
    """

    blueprint_id: int = Field(..., alias="blueprintId")
    provider_id: int = Field(..., alias="providerId")
    file_name: str = Field(..., alias="fileName")
    image_url: str = Field(..., alias="imageUrl")
    product_name: str = Field(..., alias="productName")
    price: Union[int, float, list[dict[str, Any]]] = Field(
        ...,
        description="Price for every variant, or a list of variant objects.",
    )
    print_areas: list[Union[str, PrintAreaModel]] = Field(..., alias="printAreas")
    x: float = 0.5
    y: float = 0.5
    scale: float = 1.0
    token: str

    def to_spec(self) -> ProductSpec:
        areas = tuple(
            PrintArea(position=area)
            if isinstance(area, str)
            else PrintArea(position=area.position, x=area.x, y=area.y, scale=area.scale)
            for area in self.print_areas
        )
        return ProductSpec(
            blueprint_id=self.blueprint_id,
            provider_id=self.provider_id,
            file_name=self.file_name,
            image_url=self.image_url,
            product_name=self.product_name,
            price=self.price,
            token=self.token,
            print_areas=areas,
            x=self.x,
            y=self.y,
            scale=self.scale,
        )


class CreateProductV2Request(CreateProductRequest):
    """Same as :class:`CreateProductRequest` but ``price`` is the variant list itself."""

    price: list[dict[str, Any]] = Field(
        ...,
        description="Variant objects sent verbatim as the product's variants.",
    )
