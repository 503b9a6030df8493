"""Service layer for the Giftworks image proxy.

- **config**: Immutable settings loaded from ``GIFTWORKS_*`` environment variables
- **jobs**: Submit-and-poll routine shared by every generation route
- **imagepipeline**: Face swap, upscale and text-to-image job shapes
- **compression**, **watermark**, **cdn**: Optional face-swap post-processing
- **fulfillment**: Printify product creation and shipping relay
- **countries**: Bundled country list
"""

from giftworks.core.config import GiftworksConfig, load_config
from giftworks.core.jobs import Job, JobRunner, JobStatus

__all__ = [
    "GiftworksConfig",
    "Job",
    "JobRunner",
    "JobStatus",
    "load_config",
]
