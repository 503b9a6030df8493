"""Tests for giftworks.core.jobs: submit-and-poll routine.

Tests cover:
- Decoding status bodies into Pending / Succeeded / Failed.
- Normalizing single-URL and list ``download_urls``.
- Submission failures that must never start polling.
- Poll sequences ending in SUCCESS, FAILURE, non-2xx, or timeout.
"""

from __future__ import annotations

import httpx
import pytest
from conftest import IMAGEPIPELINE

from giftworks.core.errors import JobFailedError, JobTimeoutError, UpstreamError
from giftworks.core.imagepipeline import FaceSwapRequest, UpscaleRequest
from giftworks.core.jobs import (
    Failed,
    GenerationRequest,
    Job,
    JobRunner,
    JobStatus,
    Pending,
    Succeeded,
    decode_poll_response,
    normalize_urls,
)

SUBMIT = f"{IMAGEPIPELINE}/faceswap/v1"
STATUS = f"{IMAGEPIPELINE}/faceswap/v1/status/job-1"
REQUEST = FaceSwapRequest(source_image_url="https://x/face.png", target_image_url="https://x/t.png")


@pytest.fixture
def runner(http_client) -> JobRunner:
    return JobRunner(
        http_client,
        base_url=IMAGEPIPELINE,
        api_key="ip-key",
        poll_interval=0.0,
        max_attempts=4,
        timeout=30.0,
    )


class TestNormalizeUrls:
    def test_single_string(self):
        assert normalize_urls("https://x/a.png") == ("https://x/a.png",)

    def test_list(self):
        assert normalize_urls(["a", "b"]) == ("a", "b")

    def test_nested_list_flattened(self):
        assert normalize_urls([["a", "b"], "c"]) == ("a", "b", "c")

    def test_none(self):
        assert normalize_urls(None) == ()


class TestDecodePollResponse:
    def test_success(self):
        outcome = decode_poll_response({"status": "SUCCESS", "download_urls": ["X"]})
        assert outcome == Succeeded(urls=("X",))

    def test_failure_carries_reason(self):
        outcome = decode_poll_response({"status": "FAILURE", "error": "nsfw detected"})
        assert outcome == Failed(reason="nsfw detected")

    def test_failure_without_reason(self):
        assert decode_poll_response({"status": "FAILURE"}) == Failed(reason="unknown error")

    @pytest.mark.parametrize("status", ["PENDING", "PROCESSING", "queued", None])
    def test_other_statuses_are_pending(self, status):
        assert isinstance(decode_poll_response({"status": status}), Pending)

    def test_non_dict_body_is_pending(self):
        assert isinstance(decode_poll_response("not json"), Pending)


class TestJob:
    def test_first_url(self):
        job = Job(id="1", status=JobStatus.SUCCESS, result_urls=("a", "b"))
        assert job.first_url == "a"

    def test_first_url_without_results(self):
        with pytest.raises(UpstreamError):
            Job(id="1").first_url


class TestGenerationRequest:
    def test_payload_is_abstract(self):
        with pytest.raises(TypeError):
            GenerationRequest()

    def test_subclass_without_payload_cannot_be_built(self):
        class Incomplete(GenerationRequest):
            kind = "incomplete"

        with pytest.raises(TypeError):
            Incomplete()


class TestJobRunner:
    @pytest.mark.anyio
    async def test_success_on_first_poll(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"id": "job-1"})
        upstream.json("GET", STATUS, {"status": "SUCCESS", "download_urls": ["X"]})

        job = await runner.run(REQUEST)

        assert job.status is JobStatus.SUCCESS
        assert job.first_url == "X"
        assert len(upstream.calls("GET", STATUS)) == 1

    @pytest.mark.anyio
    async def test_submission_payload_and_headers(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"id": "job-1"})
        upstream.json("GET", STATUS, {"status": "SUCCESS", "download_urls": ["X"]})

        await runner.run(REQUEST)

        submitted = upstream.calls("POST", SUBMIT)[0]
        assert submitted.headers["API-Key"] == "ip-key"
        assert upstream.sent_json("POST", SUBMIT) == {
            "input_face": "https://x/face.png",
            "input_image": "https://x/t.png",
        }
        assert upstream.calls("GET", STATUS)[0].headers["API-Key"] == "ip-key"

    @pytest.mark.anyio
    async def test_pending_then_success_polls_twice(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"id": "job-1"})
        upstream.json(
            "GET",
            STATUS,
            {"status": "PENDING"},
            {"status": "SUCCESS", "download_urls": "Y"},
        )

        job = await runner.run(REQUEST)

        assert job.result_urls == ("Y",)
        assert len(upstream.calls("GET", STATUS)) == 2

    @pytest.mark.anyio
    async def test_failure_raises_with_reason(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"id": "job-1"})
        upstream.json("GET", STATUS, {"status": "PENDING"}, {"status": "FAILURE", "error": "bad face"})

        with pytest.raises(JobFailedError, match="bad face") as excinfo:
            await runner.run(REQUEST)

        assert excinfo.value.job_id == "job-1"
        assert len(upstream.calls("GET", STATUS)) == 2

    @pytest.mark.anyio
    async def test_submit_error_never_polls(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"error": "invalid key"}, status=401)

        with pytest.raises(UpstreamError) as excinfo:
            await runner.run(REQUEST)

        assert excinfo.value.status == 401
        assert excinfo.value.body == {"error": "invalid key"}
        assert upstream.calls("GET", STATUS) == []

    @pytest.mark.anyio
    async def test_submit_without_id(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"status": "queued"})

        with pytest.raises(UpstreamError, match="job id"):
            await runner.run(REQUEST)

    @pytest.mark.anyio
    async def test_poll_error_stops_loop(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"id": "job-1"})
        upstream.json("GET", STATUS, {"message": "boom"}, status=502)

        with pytest.raises(UpstreamError, match="poll"):
            await runner.run(REQUEST)

        assert len(upstream.calls("GET", STATUS)) == 1

    @pytest.mark.anyio
    async def test_pending_forever_times_out(self, runner, upstream):
        upstream.json("POST", SUBMIT, {"id": "job-1"})
        upstream.json("GET", STATUS, {"status": "PROCESSING"})

        with pytest.raises(JobTimeoutError) as excinfo:
            await runner.run(REQUEST)

        assert excinfo.value.attempts == 4
        assert len(upstream.calls("GET", STATUS)) == 4

    @pytest.mark.anyio
    async def test_status_path_per_request_kind(self, runner, upstream):
        upstream.json("POST", f"{IMAGEPIPELINE}/superresolution/v1", {"id": "up-9"})
        upstream.json(
            "GET",
            f"{IMAGEPIPELINE}/superresolution/v1/status/up-9",
            {"status": "SUCCESS", "download_urls": ["big.png"]},
        )

        job = await runner.run(UpscaleRequest(image_url="small.png"))

        assert job.id == "up-9"
        assert job.first_url == "big.png"

    @pytest.mark.anyio
    async def test_transport_error_is_upstream_error(self, upstream, http_client):
        def explode(request):
            raise httpx.ConnectError("connection refused", request=request)

        upstream.on("POST", SUBMIT, explode)
        runner = JobRunner(http_client, base_url=IMAGEPIPELINE, api_key="k", poll_interval=0.0)

        with pytest.raises(UpstreamError):
            await runner.run(REQUEST)
