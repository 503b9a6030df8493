"""Generation requests for the ImagePipeline provider.

Three job shapes are supported, each a frozen dataclass that knows its submit
path, its status path and its JSON payload:

========================  ===========================  ================================
Request                   Submit path                  Status path
========================  ===========================  ================================
:class:`FaceSwapRequest`  ``/faceswap/v1``             ``/faceswap/v1/status``
:class:`UpscaleRequest`   ``/superresolution/v1``      ``/superresolution/v1/status``
:class:`TextToImage...`   ``/sdxl/text2image/v1``      ``/sd/text2image/v1/status``
========================  ===========================  ================================

The text-to-image status path lives under ``/sd/`` rather than ``/sdxl/``;
that is how the provider exposes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from giftworks.core.config import GiftworksConfig
from giftworks.core.jobs import GenerationRequest


@dataclass(frozen=True)
class FaceSwapRequest(GenerationRequest):
    source_image_url: str
    target_image_url: str

    kind = "face swap"
    submit_path = "/faceswap/v1"
    status_path = "/faceswap/v1/status"

    def payload(self) -> dict[str, Any]:
        return {
            "input_face": self.source_image_url,
            "input_image": self.target_image_url,
        }


@dataclass(frozen=True)
class UpscaleRequest(GenerationRequest):
    image_url: str
    model_name: str = "RealESRGAN_x4plus"
    scale_factor: int = 4
    tile: int = 150

    kind = "upscale"
    submit_path = "/superresolution/v1"
    status_path = "/superresolution/v1/status"

    @classmethod
    def from_config(cls, image_url: str, config: GiftworksConfig) -> UpscaleRequest:
        return cls(
            image_url=image_url,
            model_name=config.upscale_model_name,
            scale_factor=config.upscale_scale_factor,
            tile=config.upscale_tile,
        )

    def payload(self) -> dict[str, Any]:
        return {
            "model_name": self.model_name,
            "init_image": self.image_url,
            "scale_factor": self.scale_factor,
            "tile": self.tile,
        }


@dataclass(frozen=True)
class TextToImageRequest(GenerationRequest):
    """A text-to-image job.

    ``model_parameters`` holds everything besides the prompt, already in the
    provider's field names.  Build it with :meth:`from_config`.
    """

    prompt: str
    model_parameters: tuple[tuple[str, Any], ...] = ()

    kind = "text-to-image"
    submit_path = "/sdxl/text2image/v1"
    status_path = "/sd/text2image/v1/status"

    @classmethod
    def from_config(cls, prompt: str, config: GiftworksConfig) -> TextToImageRequest:
        params: dict[str, Any] = {
            "model_id": config.t2i_model_id,
            "negative_prompt": config.t2i_negative_prompt,
            "num_inference_step": config.t2i_num_inference_steps,
            "samples": config.t2i_samples,
            "guidance_scale": config.t2i_guidance_scale,
            "width": config.t2i_width,
            "height": config.t2i_height,
            "scheduler": config.t2i_scheduler,
            "seed": config.t2i_seed,
            "clip_skip": config.t2i_clip_skip,
            "safety_checker": config.t2i_safety_checker,
            "ip_adapter_image": config.t2i_ip_adapter_image,
            "webhook": config.t2i_webhook,
        }
        # The provider takes these as parallel lists.
        if config.t2i_lora_models is not None:
            params["lora_models"] = [config.t2i_lora_models]
        if config.t2i_lora_weights is not None:
            params["lora_weights"] = [config.t2i_lora_weights]
        if config.t2i_ip_adapter is not None:
            params["ip_adapter"] = [config.t2i_ip_adapter]
        if config.t2i_ip_adapter_scale is not None:
            params["ip_adapter_scale"] = [config.t2i_ip_adapter_scale]

        kept = tuple((key, value) for key, value in params.items() if value is not None)
        return cls(prompt=prompt, model_parameters=kept)

    def payload(self) -> dict[str, Any]:
        return {"prompt": self.prompt, **dict(self.model_parameters)}
