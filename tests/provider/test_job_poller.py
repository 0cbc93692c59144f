import asyncio
import time
import unittest

import httpx

from napkin_mcp_bridge.errors import GenerationTimeoutError, JobFailedError, SubmissionError
from napkin_mcp_bridge.provider.job_poller import (
    ArtifactBytes,
    GenerationNotice,
    JobPoller,
    extract_download_url,
    extract_job_id,
)
from napkin_mcp_bridge.provider.napkin_client import NapkinClient
from tests.provider.fake_napkin import BASE_URL, FakeNapkinApi, RecordingSleep

PNG_URL = "https://x/f.png"
PNG_BYTES = bytes(range(200))


def _png_response() -> httpx.Response:
    return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png; charset=binary"})


class JobPollerTests(unittest.TestCase):
    def _run(self, api: FakeNapkinApi, sleep: RecordingSleep | None = None, **kwargs):
        sleep = sleep or RecordingSleep(api.timeline)
        client = api.client()
        poller = JobPoller(client, sleep=sleep)

        async def scenario():
            try:
                return await poller.submit_and_await(**kwargs)
            finally:
                await client.aclose()

        return asyncio.run(scenario()), sleep

    # -- happy path --

    def test_completed_on_first_poll_returns_artifact(self) -> None:
        api = FakeNapkinApi(
            statuses=[{"status": "completed", "generated_files": [{"url": PNG_URL}]}],
            files={PNG_URL: _png_response()},
        )

        outcome, sleep = self._run(api, content="# Plan\n- step1\n- step2", format="png")

        self.assertIsInstance(outcome, ArtifactBytes)
        self.assertEqual(PNG_BYTES, outcome.data)
        self.assertEqual("image/png", outcome.mime_type)
        self.assertEqual([2.0], sleep.calls)
        self.assertEqual("Bearer test-key", api.download_requests[0].headers["authorization"])

    def test_pending_twice_then_completed_downloads_once_after_polls(self) -> None:
        api = FakeNapkinApi(
            statuses=[
                {"status": "pending"},
                {"status": "pending"},
                {"status": "completed", "generated_files": [{"url": PNG_URL}]},
            ],
            files={PNG_URL: _png_response()},
        )

        outcome, _ = self._run(api, content="x", format="png")

        self.assertIsInstance(outcome, ArtifactBytes)
        self.assertEqual(1, len(api.download_requests))
        self.assertEqual(
            ["create", "sleep", "status", "sleep", "status", "sleep", "status", "download"],
            api.timeline,
        )

    def test_submission_payload_includes_hint_only_when_given(self) -> None:
        api = FakeNapkinApi(
            statuses=[{"status": "completed", "url": PNG_URL}],
            files={PNG_URL: _png_response()},
        )
        self._run(api, content="hello", visual_type="mindmap", format="png")
        self.assertEqual({"content": "hello", "format": "png", "visual_query": "mindmap"}, api.created_payload())

        api = FakeNapkinApi(
            statuses=[{"status": "completed", "url": PNG_URL}],
            files={PNG_URL: _png_response()},
        )
        self._run(api, content="hello")
        self.assertEqual({"content": "hello", "format": "svg"}, api.created_payload())

    def test_request_id_is_accepted_as_job_id(self) -> None:
        api = FakeNapkinApi(
            create_response=httpx.Response(200, json={"request_id": "r-9"}),
            statuses=[{"status": "completed", "url": PNG_URL}],
            files={PNG_URL: _png_response()},
        )
        self._run(api, content="x", format="png")
        self.assertTrue(api.status_requests[0].url.path.endswith("/visual/r-9/status"))

    def test_missing_content_type_falls_back_to_format(self) -> None:
        svg_url = "https://x/f.svg"
        api = FakeNapkinApi(
            statuses=[{"status": "completed", "generated_files": [svg_url]}],
            files={svg_url: httpx.Response(200, content=b"<svg/>")},
        )
        outcome, _ = self._run(api, content="x", format="svg")
        self.assertEqual("image/svg+xml", outcome.mime_type)

    # -- submission failures --

    def test_non_success_submission_embeds_status_and_body(self) -> None:
        api = FakeNapkinApi(create_response=httpx.Response(401, text='{"error":"bad key"}'))

        with self.assertRaises(SubmissionError) as ctx:
            self._run(api, content="x")

        self.assertIn("401", str(ctx.exception))
        self.assertIn('{"error":"bad key"}', str(ctx.exception))
        self.assertEqual([], api.status_requests)

    def test_submission_without_job_id_fails(self) -> None:
        api = FakeNapkinApi(create_response=httpx.Response(200, json={"status": "queued"}))
        with self.assertRaises(SubmissionError) as ctx:
            self._run(api, content="x")
        self.assertIn("job id", str(ctx.exception))

    # -- polling --

    def test_failed_status_raises_with_provider_message(self) -> None:
        api = FakeNapkinApi(statuses=[{"status": "pending"}, {"status": "failed", "error": "content too long"}])
        with self.assertRaises(JobFailedError) as ctx:
            self._run(api, content="x")
        self.assertIn("content too long", str(ctx.exception))
        self.assertEqual(2, len(api.status_requests))

    def test_error_status_without_message_uses_fallback(self) -> None:
        api = FakeNapkinApi(statuses=[{"status": "error"}])
        with self.assertRaises(JobFailedError) as ctx:
            self._run(api, content="x")
        self.assertIn("failed", str(ctx.exception))

    def test_transient_poll_failures_are_skipped(self) -> None:
        api = FakeNapkinApi(
            statuses=[
                503,
                httpx.ConnectError("connection reset"),
                {"status": "completed", "url": PNG_URL},
            ],
            files={PNG_URL: _png_response()},
        )
        outcome, sleep = self._run(api, content="x", format="png")
        self.assertIsInstance(outcome, ArtifactBytes)
        self.assertEqual(3, len(sleep.calls))

    def test_transient_failures_consume_the_attempt_budget(self) -> None:
        api = FakeNapkinApi(statuses=[500] * 12 + [{"status": "completed", "url": PNG_URL}])
        with self.assertRaises(GenerationTimeoutError):
            self._run(api, content="x")
        self.assertEqual(12, len(api.status_requests))

    def test_never_terminal_times_out_after_twelve_attempts(self) -> None:
        api = FakeNapkinApi(statuses=[{"status": "processing"}] * 20)

        with self.assertRaises(GenerationTimeoutError) as ctx:
            self._run(api, content="x")

        self.assertIn("24 seconds", str(ctx.exception))
        self.assertEqual(12, len(api.status_requests))
        self.assertIsInstance(ctx.exception, TimeoutError)

    def test_slow_status_endpoint_cannot_outlast_the_ceiling(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"id": "j1"})
            await asyncio.sleep(0.5)
            return httpx.Response(200, json={"status": "processing"})

        client = NapkinClient("test-key", base_url=BASE_URL, transport=httpx.MockTransport(handler))
        poller = JobPoller(client, poll_interval=0.01, max_attempts=4)

        async def scenario():
            try:
                return await poller.submit_and_await("x")
            finally:
                await client.aclose()

        started = time.monotonic()
        with self.assertRaises(GenerationTimeoutError) as ctx:
            asyncio.run(scenario())
        elapsed = time.monotonic() - started

        self.assertIn("0.04 seconds", str(ctx.exception))
        self.assertLess(elapsed, 0.4)

    # -- completed without a retrievable file --

    def test_completed_without_url_returns_notice_with_payload(self) -> None:
        api = FakeNapkinApi(statuses=[{"status": "completed", "note": "odd"}])
        outcome, _ = self._run(api, content="x")
        self.assertIsInstance(outcome, GenerationNotice)
        self.assertIn('"note": "odd"', outcome.text)

    def test_failed_download_returns_notice_with_status_and_url(self) -> None:
        api = FakeNapkinApi(
            statuses=[{"status": "completed", "url": PNG_URL}],
            files={PNG_URL: httpx.Response(403, text="expired link")},
        )
        outcome, _ = self._run(api, content="x")
        self.assertIsInstance(outcome, GenerationNotice)
        self.assertIn("403", outcome.text)
        self.assertIn(PNG_URL, outcome.text)


class ExtractionTests(unittest.TestCase):
    def test_job_id_prefers_id_over_request_id(self) -> None:
        self.assertEqual("a", extract_job_id({"id": "a", "request_id": "b"}))
        self.assertEqual("b", extract_job_id({"request_id": "b"}))
        self.assertIsNone(extract_job_id({}))

    def test_download_url_prefers_generated_files(self) -> None:
        status = {"generated_files": [{"url": "https://a"}, {"url": "https://b"}], "url": "https://c"}
        self.assertEqual("https://a", extract_download_url(status))
        self.assertEqual("https://c", extract_download_url({"generated_files": [], "url": "https://c"}))
        self.assertIsNone(extract_download_url({"generated_files": [{}]}))


if __name__ == "__main__":
    unittest.main()
