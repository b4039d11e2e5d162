"""Tests that concurrent requests keep codes unique and clicks complete.

The app serves requests concurrently on one event loop. These tests drive
many simultaneous requests through the ASGI app against the in-memory store.
"""

import asyncio
import pytest


@pytest.mark.asyncio
class TestConcurrentConnections:
    """Prove the server handles many simultaneous requests."""

    async def test_concurrent_shorten_requests(self, client):
        """Many concurrent POST /shorten with different URLs; all succeed and codes are unique."""
        concurrency = 30
        urls = [f"https://example.com/page_{i}" for i in range(concurrency)]
        tasks = [client.post("/shorten", json={"url": url}) for url in urls]
        responses = await asyncio.gather(*tasks, return_exceptions=True)

        short_codes = []
        for i, r in enumerate(responses):
            if isinstance(r, Exception):
                pytest.fail(f"Request {i} raised: {r}")
            assert r.status_code == 201, f"Request {i}: status {r.status_code} body={r.text}"
            data = r.json()
            assert data["originalUrl"] == urls[i]
            short_codes.append(data["shortCode"])

        assert len(short_codes) == len(set(short_codes)), "All short codes must be unique under concurrency"

    async def test_concurrent_same_custom_code(self, client):
        """Concurrent claims of one custom code: exactly one wins, the rest get 400."""
        concurrency = 20
        tasks = [
            client.post("/shorten", json={"url": f"https://example.com/{i}", "customCode": "contested"})
            for i in range(concurrency)
        ]
        responses = await asyncio.gather(*tasks)

        statuses = sorted(r.status_code for r in responses)
        assert statuses == [201] + [400] * (concurrency - 1)

        links = (await client.get("/all")).json()
        assert [link["shortCode"] for link in links] == ["contested"]

    async def test_concurrent_redirect_requests(self, client):
        """N concurrent redirects all succeed and record exactly N clicks."""
        create_resp = await client.post(
            "/shorten",
            json={"url": "https://example.com/redirect-target"},
        )
        assert create_resp.status_code == 201
        short_code = create_resp.json()["shortCode"]

        concurrency = 40
        tasks = [
            client.get(f"/{short_code}", follow_redirects=False)
            for _ in range(concurrency)
        ]
        responses = await asyncio.gather(*tasks, return_exceptions=True)

        for i, r in enumerate(responses):
            if isinstance(r, Exception):
                pytest.fail(f"Request {i} raised: {r}")
            assert r.status_code == 302, f"Request {i}: status {r.status_code}"
            assert r.headers.get("location") == "https://example.com/redirect-target"

        links = (await client.get("/all")).json()
        assert len(links[0]["clicks"]) == concurrency

    async def test_concurrent_mixed_reads_and_redirects(self, client):
        """Listing while redirects are in flight always succeeds."""
        create_resp = await client.post("/shorten", json={"url": "https://example.com/mixed"})
        short_code = create_resp.json()["shortCode"]

        tasks = (
            [client.get(f"/{short_code}", follow_redirects=False) for _ in range(25)]
            + [client.get("/all") for _ in range(25)]
        )
        responses = await asyncio.gather(*tasks)

        assert all(r.status_code in (200, 302) for r in responses)
        final = (await client.get("/all")).json()
        assert len(final[0]["clicks"]) == 25
