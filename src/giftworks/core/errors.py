"""Error taxonomy for the Giftworks image proxy.

Service modules raise these exceptions; :mod:`giftworks.api.main` maps them
to HTTP responses.  Each subclass carries a short ``kind`` string that is
echoed in the JSON error body so callers can tell a timed-out job apart from
a failed one.
"""

from __future__ import annotations


class GiftworksError(Exception):
    """Base class for every error raised by the service layer."""

    kind = "internal"
    status_code = 500


class UpstreamError(GiftworksError):
    """An outbound API answered with a non-2xx status or could not be reached."""

    kind = "upstream"

    def __init__(self, message: str, *, status: int | None = None, body: object = None):
        super().__init__(message)
        self.status = status
        self.body = body


class JobFailedError(GiftworksError):
    """The generation provider reported a terminal FAILURE status."""

    kind = "job_failed"

    def __init__(self, job_id: str, reason: str):
        super().__init__(f"Failure to generate image: {reason}")
        self.job_id = job_id
        self.reason = reason


class JobTimeoutError(GiftworksError):
    """The poll budget ran out before the job reached a terminal status."""

    kind = "timeout"
    status_code = 504

    def __init__(self, job_id: str, attempts: int):
        super().__init__(f"Job {job_id} did not finish after {attempts} status checks")
        self.job_id = job_id
        self.attempts = attempts


class CompressionError(GiftworksError):
    kind = "compression"


class WatermarkError(GiftworksError):
    kind = "watermark"


class UnauthorizedError(Exception):
    """Raised by the API-key gate.  Rendered as ``{"message": "Unauthorized"}``."""
