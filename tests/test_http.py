"""
Tests for the async HTTP client and URL helpers.
"""

import asyncio
import unittest

import aiohttp

from domain_finder.http import (
    AsyncHttpClient,
    ProbeResult,
    hostname_from_href,
    is_public_hostname,
    registered_domain,
    unwrap_redirect,
    validate_url,
)


class FakeResponse:
    def __init__(self, status=200, body=""):
        self.status = status
        self.body = body

    async def text(self, errors="strict"):
        return self.body


class FakeRequest:
    """Mimics the context manager returned by aiohttp session methods."""

    def __init__(self, session, outcome):
        self.session = session
        self.outcome = outcome

    async def __aenter__(self):
        self.session.active += 1
        self.session.max_active = max(self.session.max_active, self.session.active)
        try:
            await asyncio.sleep(self.session.delay)
        finally:
            self.session.active -= 1
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    def __init__(self, head=None, get=None, delay=0.0):
        self.head_outcomes = head or {}
        self.get_outcomes = get or {}
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    def head(self, url, **kwargs):
        self.calls.append(("HEAD", url, kwargs))
        return FakeRequest(self, self.head_outcomes.get(url, aiohttp.ClientConnectionError("refused")))

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return FakeRequest(self, self.get_outcomes.get(url, aiohttp.ClientConnectionError("refused")))

    async def close(self):
        self.closed = True


class TestUrlHelpers(unittest.TestCase):
    """Tests for URL validation and hostname extraction."""

    def test_validate_url(self):
        self.assertTrue(validate_url("https://example.com"))
        self.assertTrue(validate_url("http://example.com/path"))
        self.assertFalse(validate_url(""))
        self.assertFalse(validate_url("example.com"))
        self.assertFalse(validate_url("https://"))
        self.assertFalse(validate_url("ftp://example.com"))
        self.assertFalse(validate_url("javascript:alert(1)"))
        self.assertFalse(validate_url("https://example.com/" + "a" * 2000))

    def test_plain_links(self):
        self.assertEqual(hostname_from_href("https://OpenAI.com/about?x=1"), "openai.com")
        self.assertEqual(hostname_from_href("http://www.example.org"), "www.example.org")
        self.assertEqual(hostname_from_href("//cdn.example.net/x"), "cdn.example.net")

    def test_rejects_unusable_links(self):
        self.assertIsNone(hostname_from_href(""))
        self.assertIsNone(hostname_from_href("javascript:void(0)"))
        self.assertIsNone(hostname_from_href("/relative/path"))
        self.assertIsNone(hostname_from_href("mailto:info@example.com"))

    def test_relative_link_with_base(self):
        self.assertEqual(
            hostname_from_href("/l/?uddg=https%3A%2F%2Fstripe.com%2F", "https://duckduckgo.com/?q=stripe"),
            "stripe.com",
        )

    def test_duckduckgo_redirect(self):
        href = "//duckduckgo.com/l/?uddg=https%3A%2F%2Fwww.example.org%2Fabout&rut=abc"
        self.assertEqual(hostname_from_href(href), "www.example.org")

    def test_bing_redirect(self):
        href = "https://www.bing.com/ck/a?!&&p=abc123&u=a1aHR0cHM6Ly9vcGVuYWkuY29tLw&ntb=1"
        self.assertEqual(unwrap_redirect(href), "https://openai.com/")
        self.assertEqual(hostname_from_href(href), "openai.com")

    def test_non_redirect_unchanged(self):
        self.assertEqual(unwrap_redirect("https://example.com/l/?uddg=x"), "https://example.com/l/?uddg=x")

    def test_public_hostname(self):
        self.assertTrue(is_public_hostname("openai.com"))
        self.assertTrue(is_public_hostname("www.bbc.co.uk"))
        self.assertFalse(is_public_hostname("localhost"))
        self.assertFalse(is_public_hostname("127.0.0.1"))

    def test_registered_domain(self):
        self.assertEqual(registered_domain("www.bing.com"), "bing.com")
        self.assertEqual(registered_domain("shop.example.co.uk"), "example.co.uk")


class TestProbe(unittest.IsolatedAsyncioTestCase):
    """Tests for reachability probing."""

    async def test_http_reachable(self):
        session = FakeSession(head={"http://openai.com": FakeResponse(200)})
        client = AsyncHttpClient(session=session)
        result = await client.probe("openai.com")
        self.assertEqual(result, ProbeResult(True, "http://openai.com"))
        self.assertEqual([c[1] for c in session.calls], ["http://openai.com"])

    async def test_falls_back_to_https(self):
        session = FakeSession(head={
            "http://openai.com": asyncio.TimeoutError(),
            "https://openai.com": FakeResponse(301),
        })
        client = AsyncHttpClient(session=session)
        result = await client.probe("openai.com")
        self.assertEqual(result, ProbeResult(True, "https://openai.com"))
        self.assertEqual(len(session.calls), 2)

    async def test_error_statuses_are_unreachable(self):
        session = FakeSession(head={
            "http://gone.com": FakeResponse(404),
            "https://gone.com": FakeResponse(503),
        })
        client = AsyncHttpClient(session=session)
        result = await client.probe("gone.com")
        self.assertFalse(result.reachable)
        self.assertIsNone(result.url)
        self.assertEqual(len(session.calls), 2)

    async def test_invalid_hostname_is_unreachable(self):
        """IDNA encoding errors raised while connecting mean unreachable."""
        host = "a" * 64 + ".com"
        session = FakeSession(head={
            f"http://{host}": UnicodeError("label empty or too long"),
            f"https://{host}": UnicodeError("label empty or too long"),
        })
        client = AsyncHttpClient(session=session)
        self.assertEqual(await client.probe(host), ProbeResult(False, None))
        self.assertEqual(client.stats["probe_errors"], 2)

    async def test_connection_errors_are_silent(self):
        session = FakeSession()
        client = AsyncHttpClient(session=session)
        result = await client.probe("zzqxw-nonexistent.com")
        self.assertEqual(result, ProbeResult(False, None))
        self.assertEqual(client.stats["probe_errors"], 2)

    async def test_request_carries_timeout(self):
        session = FakeSession(head={"http://openai.com": FakeResponse(200)})
        client = AsyncHttpClient(session=session, probe_timeout=4.0)
        await client.probe("openai.com")
        kwargs = session.calls[0][2]
        self.assertIsInstance(kwargs["timeout"], aiohttp.ClientTimeout)
        self.assertEqual(kwargs["timeout"].total, 4.0)
        self.assertIn("User-Agent", kwargs["headers"])

    async def test_concurrency_is_capped(self):
        outcomes = {f"http://site{i}.com": FakeResponse(200) for i in range(8)}
        session = FakeSession(head=outcomes, delay=0.01)
        client = AsyncHttpClient(concurrency=2, session=session)
        results = await asyncio.gather(*(client.probe(f"site{i}.com") for i in range(8)))
        self.assertTrue(all(r.reachable for r in results))
        self.assertLessEqual(session.max_active, 2)

    async def test_injected_session_is_not_closed(self):
        session = FakeSession()
        async with AsyncHttpClient(session=session):
            pass
        self.assertFalse(session.closed)


class TestFetchText(unittest.IsolatedAsyncioTestCase):
    """Tests for homepage fetching."""

    async def test_returns_body_on_200(self):
        session = FakeSession(get={"http://openai.com": FakeResponse(200, "<title>OpenAI</title>")})
        client = AsyncHttpClient(session=session)
        self.assertEqual(await client.fetch_text("http://openai.com"), "<title>OpenAI</title>")
        self.assertEqual(session.calls[0][2]["timeout"].total, client.fetch_timeout)

    async def test_non_200_returns_none(self):
        session = FakeSession(get={"http://openai.com": FakeResponse(302, "moved")})
        client = AsyncHttpClient(session=session)
        self.assertIsNone(await client.fetch_text("http://openai.com"))

    async def test_errors_return_none(self):
        session = FakeSession(get={"http://openai.com": aiohttp.ClientPayloadError("broken")})
        client = AsyncHttpClient(session=session)
        self.assertIsNone(await client.fetch_text("http://openai.com"))
        self.assertEqual(client.stats["fetch_errors"], 1)

    async def test_value_errors_return_none(self):
        session = FakeSession(get={"http://openai.com": UnicodeError("label empty or too long")})
        client = AsyncHttpClient(session=session)
        self.assertIsNone(await client.fetch_text("http://openai.com"))
        self.assertEqual(client.stats["fetch_errors"], 1)

    async def test_invalid_url_skipped(self):
        session = FakeSession()
        client = AsyncHttpClient(session=session)
        self.assertIsNone(await client.fetch_text("not a url"))
        self.assertEqual(session.calls, [])


if __name__ == "__main__":
    unittest.main()
