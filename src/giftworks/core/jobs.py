"""Asynchronous job submission and polling.

Every image-generation route follows the same pattern: submit a job
description to the generation provider, receive a job id, then query the
status endpoint at a fixed cadence until the job reaches a terminal status.
:class:`JobRunner` implements that pattern once; each route supplies a
:class:`GenerationRequest` that knows its endpoints and payload.

State Machine
-------------
::

    SUBMITTED -> POLLING -> SUCCEEDED
                         -> FAILED      (JobFailedError)
                         -> TIMED_OUT   (JobTimeoutError)

Status Decoding
---------------
Each status response is decoded once into a tagged variant:

- :class:`Pending` -- any status other than ``SUCCESS`` / ``FAILURE``
- :class:`Succeeded` -- carries the normalized tuple of result URLs
- :class:`Failed` -- carries the provider's error message

The poll loop is bounded by both an attempt cap and a wall-clock deadline
(``tenacity`` ``stop_after_attempt | stop_after_delay``).  There is no
cancellation: a poll loop runs to completion even if the client disconnects.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from giftworks.core.config import GiftworksConfig
from giftworks.core.errors import JobFailedError, JobTimeoutError, UpstreamError
from giftworks.core.http import send

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


@dataclass
class Job:
    """A generation job tracked by the provider.

    Attributes:
        id: Provider-assigned job identifier.
        status: Last observed status.
        result_urls: Result URLs, populated once the job succeeds.
    """

    id: str
    status: JobStatus = JobStatus.PENDING
    result_urls: tuple[str, ...] = field(default_factory=tuple)

    @property
    def first_url(self) -> str:
        """The first result URL, for routes that return a single image."""
        if not self.result_urls:
            raise UpstreamError(f"Job {self.id} has no result URLs")
        return self.result_urls[0]


@dataclass(frozen=True)
class Pending:
    raw_status: str | None


@dataclass(frozen=True)
class Succeeded:
    urls: tuple[str, ...]


@dataclass(frozen=True)
class Failed:
    reason: str


PollOutcome = Union[Pending, Succeeded, Failed]


def normalize_urls(value: Any) -> tuple[str, ...]:
    """Normalize a ``download_urls`` field to a tuple of strings.

    The provider sometimes returns a single URL and sometimes a list; nested
    lists are flattened one level.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    urls: list[str] = []
    for item in value:
        if isinstance(item, (list, tuple)):
            urls.extend(str(x) for x in item)
        elif item is not None:
            urls.append(str(item))
    return tuple(urls)


def decode_poll_response(payload: Any) -> PollOutcome:
    """Decode one status response body into a :data:`PollOutcome`."""
    if not isinstance(payload, dict):
        return Pending(raw_status=None)

    status = payload.get("status")
    if status == JobStatus.SUCCESS.value:
        return Succeeded(urls=normalize_urls(payload.get("download_urls")))
    if status == JobStatus.FAILURE.value:
        return Failed(reason=str(payload.get("error") or "unknown error"))
    return Pending(raw_status=status)


class GenerationRequest(ABC):
    """Base class for the three job shapes sent to the generation provider.

    Subclasses are frozen dataclasses that define :attr:`kind`,
    :attr:`submit_path`, :attr:`status_path` and :meth:`payload`.
    """

    kind: str = ""
    submit_path: str = ""
    status_path: str = ""

    @abstractmethod
    def payload(self) -> dict[str, Any]:
        """JSON body for the submit call."""


class JobRunner:
    """Submit a :class:`GenerationRequest` and poll it until it is terminal.

    Args:
        http: Shared async HTTP client.
        base_url: Provider base URL.
        api_key: Value for the ``API-Key`` header.
        poll_interval: Fixed delay in seconds between status queries.  The
            first query also happens one interval after submission.
        max_attempts: Maximum number of status queries.
        timeout: Polling deadline in seconds.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        base_url: str,
        api_key: str,
        poll_interval: float = 2.0,
        max_attempts: int = 150,
        timeout: float = 300.0,
    ) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.timeout = timeout

    @classmethod
    def from_config(cls, http: httpx.AsyncClient, config: GiftworksConfig) -> JobRunner:
        return cls(
            http,
            base_url=config.imagepipeline_base_url,
            api_key=config.imagepipeline_api_key,
            poll_interval=config.poll_interval,
            max_attempts=config.poll_max_attempts,
            timeout=config.poll_timeout,
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "API-Key": self.api_key}

    async def submit(self, request: GenerationRequest) -> Job:
        """Submit the job.  A non-2xx response is fatal and never polled."""
        _, body = await send(
            self.http,
            "POST",
            f"{self.base_url}{request.submit_path}",
            action=f"create {request.kind} job",
            json=request.payload(),
            headers=self._headers,
        )
        job_id = body.get("id") if isinstance(body, dict) else None
        if not job_id:
            raise UpstreamError(f"Provider did not return a job id for {request.kind}", body=body)

        logger.info("Created %s job: %s", request.kind, job_id)
        return Job(id=str(job_id))

    async def poll_once(self, request: GenerationRequest, job: Job) -> PollOutcome:
        """Issue a single status query and decode it."""
        _, body = await send(
            self.http,
            "GET",
            f"{self.base_url}{request.status_path}/{job.id}",
            action="poll",
            headers=self._headers,
        )
        outcome = decode_poll_response(body)
        if isinstance(outcome, Pending):
            logger.info("Polling status for %s: %s", job.id, outcome.raw_status)
        return outcome

    async def wait(self, request: GenerationRequest, job: Job) -> Job:
        """Poll ``job`` until it succeeds, fails, or the poll budget runs out.

        Raises:
            UpstreamError: A status query returned non-2xx.
            JobFailedError: The provider reported ``FAILURE``.
            JobTimeoutError: The attempt cap or deadline was reached.
        """
        await asyncio.sleep(self.poll_interval)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts) | stop_after_delay(self.timeout),
            wait=wait_fixed(self.poll_interval),
            retry=retry_if_result(lambda outcome: isinstance(outcome, Pending)),
        )
        try:
            outcome = await retrying(self.poll_once, request, job)
        except RetryError as exc:
            attempts = exc.last_attempt.attempt_number
            logger.error("Job %s still pending after %d polls", job.id, attempts)
            raise JobTimeoutError(job.id, attempts) from exc

        if isinstance(outcome, Failed):
            job.status = JobStatus.FAILURE
            logger.error("Job %s failed: %s", job.id, outcome.reason)
            raise JobFailedError(job.id, outcome.reason)

        job.status = JobStatus.SUCCESS
        job.result_urls = outcome.urls
        logger.info("Job %s succeeded: %s", job.id, list(outcome.urls))
        return job

    async def run(self, request: GenerationRequest) -> Job:
        """Submit ``request`` and wait for its terminal status."""
        job = await self.submit(request)
        return await self.wait(request, job)
