"""Configuration management for the Giftworks image proxy.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the GIFTWORKS_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (GIFTWORKS_* prefix)
2. .env file in the project root
3. Default values defined in GiftworksConfig

Example .env file:
    GIFTWORKS_SERVER_API_KEY=change-me
    GIFTWORKS_IMAGEPIPELINE_API_KEY=ip-...
    GIFTWORKS_T2I_MODEL_ID=sdxl-base
    GIFTWORKS_WATERMARK_ENABLED=true

Immutability
------------
The settings object is frozen.  It is built once by
:func:`giftworks.api.main.create_app` and handed to route handlers through a
FastAPI dependency; request logic never reads ``os.environ`` directly.

Usage Example
-------------
    from giftworks.core.config import load_config

    config = load_config()
    print(config.imagepipeline_base_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COUNTRIES_CSV = Path(__file__).resolve().parent.parent / "data" / "countryList.csv"


class GiftworksConfig(BaseSettings):
    """Main configuration for the Giftworks image proxy.

    Attributes
    ----------
    Server:
        server_host, server_port : bind address for uvicorn
        log_level : root logging level used by the CLI entry point
        server_api_key : secret expected in the ``x-api-key`` header

    Generation provider:
        imagepipeline_base_url, imagepipeline_api_key
        poll_interval : seconds between status queries
        poll_max_attempts : maximum number of status queries per job
        poll_timeout : overall polling deadline in seconds
        http_timeout : per-request timeout for outbound calls

    Text-to-image model parameters:
        t2i_* : forwarded verbatim to the text-to-image submission

    Post-processing:
        compression_enabled, tinify_* : optional input compression
        watermark_* , imagekit_* : optional watermarking and CDN upload

    Fulfillment:
        printify_base_url, printify_shop_id, printify_placeholder_image_id

    Notes
    -----
    - Configuration is immutable after initialization
    - To modify config, set environment variables and restart the application
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GIFTWORKS_",
        case_sensitive=False,
        frozen=True,
    )

    # Server
    server_host: str = Field(default="0.0.0.0", description="Server bind address")
    server_port: int = Field(default=8080, ge=1, le=65535, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level for the CLI entry point")
    server_api_key: str | None = Field(
        default=None,
        description="Value required in the x-api-key header on gated routes",
    )

    # Generation provider
    imagepipeline_base_url: str = Field(default="https://api.imagepipeline.io")
    imagepipeline_api_key: str = Field(default="", description="Sent as the API-Key header")

    # Polling
    poll_interval: float = Field(default=2.0, ge=0.0, description="Seconds between polls")
    poll_max_attempts: int = Field(default=150, ge=1, description="Status queries per job")
    poll_timeout: float = Field(default=300.0, gt=0.0, description="Polling deadline in seconds")
    http_timeout: float = Field(default=60.0, gt=0.0, description="Outbound request timeout")

    # Upscale
    upscale_model_name: str = Field(default="RealESRGAN_x4plus")
    upscale_scale_factor: int = Field(default=4, ge=1, le=8)
    upscale_tile: int = Field(default=150, ge=0)

    # Text-to-image model parameters
    t2i_model_id: str | None = None
    t2i_negative_prompt: str | None = None
    t2i_num_inference_steps: int | None = Field(default=None, ge=1)
    t2i_samples: int | None = Field(default=None, ge=1)
    t2i_guidance_scale: float | None = None
    t2i_width: int | None = Field(default=None, ge=64)
    t2i_height: int | None = Field(default=None, ge=64)
    t2i_lora_models: str | None = None
    t2i_lora_weights: float | None = None
    t2i_scheduler: str | None = None
    t2i_seed: int | None = None
    t2i_clip_skip: int | None = None
    t2i_safety_checker: bool = False
    t2i_ip_adapter_image: str | None = None
    t2i_ip_adapter: str | None = None
    t2i_ip_adapter_scale: float | None = None
    t2i_webhook: str | None = None

    # Compression
    compression_enabled: bool = Field(default=False)
    tinify_api_key: str | None = None
    tinify_url: str = Field(default="https://api.tinify.com/shrink")

    # Watermark
    watermark_enabled: bool = Field(default=False)
    watermark_path: Path = Field(
        default=Path("assets/watermark.png"),
        description="PNG watermark asset with an alpha channel",
    )
    watermark_opacity: float = Field(default=0.5, ge=0.0, le=1.0)
    watermark_placement: Literal["tiled", "single-corner"] = Field(default="tiled")
    watermark_scale: float = Field(
        default=0.3,
        gt=0.0,
        le=1.0,
        description="Watermark width as a fraction of the image width",
    )

    # CDN
    imagekit_private_key: str | None = None
    imagekit_upload_url: str = Field(default="https://upload.imagekit.io/api/v1/files/upload")

    # Fulfillment
    printify_base_url: str = Field(default="https://api.printify.com/v1")
    printify_shop_id: str = Field(default="14354198")
    printify_placeholder_image_id: str = Field(
        default="6751df108e4ed254fc7d1019",
        description="Image id used for every print area other than the front",
    )

    # Misc
    countries_csv: Path = Field(default=DEFAULT_COUNTRIES_CSV)
    keep_alive_delay: float = Field(default=2.0, ge=0.0)

    @model_validator(mode="after")
    def _check_post_processing(self) -> GiftworksConfig:
        if self.compression_enabled and not self.tinify_api_key:
            raise ValueError("compression_enabled requires tinify_api_key")
        if self.watermark_enabled and not self.imagekit_private_key:
            raise ValueError("watermark_enabled requires imagekit_private_key")
        return self


def load_config(**overrides) -> GiftworksConfig:
    """Build the process-wide configuration.

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        A frozen :class:`GiftworksConfig`.
    """
    return GiftworksConfig(**overrides)
