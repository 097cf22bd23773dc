"""Tests for the aiohttp-based HTTP client against a local test server."""

import asyncio
import json

import pytest
from aiohttp import test_utils, web
from url2markdown.exceptions import ContentTooLargeError, FetchError, FetchTimeoutError, NetworkError
from url2markdown.http import AsyncHttpClient, HttpResponse
from url2markdown.http.client import decode_body
from url2markdown.http.protocols import parse_charset

ARTICLE = "<html><head><title>Local</title></head><body><p>Hello</p></body></html>"


async def article(request: web.Request) -> web.Response:
    return web.Response(text=ARTICLE, content_type="text/html")


async def redirect(request: web.Request) -> web.Response:
    raise web.HTTPFound("/article")


async def missing(request: web.Request) -> web.Response:
    return web.Response(status=404, text="gone")


async def slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.Response(text=ARTICLE, content_type="text/html")


async def echo_headers(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "user_agent": request.headers.get("User-Agent"),
            "accept_language": request.headers.get("Accept-Language"),
        }
    )


async def large(request: web.Request) -> web.Response:
    return web.Response(body=b"x" * 5000, content_type="text/html")


async def latin1(request: web.Request) -> web.Response:
    body = "<html><body><p>Café crème</p></body></html>".encode("iso-8859-1")
    return web.Response(body=body, content_type="text/html", charset="iso-8859-1")


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/article", article)
    app.router.add_get("/redirect", redirect)
    app.router.add_get("/missing", missing)
    app.router.add_get("/slow", slow)
    app.router.add_get("/headers", echo_headers)
    app.router.add_get("/large", large)
    app.router.add_get("/latin1", latin1)
    return app


class TestAsyncHttpClient:
    """Tests for AsyncHttpClient."""

    @pytest.mark.asyncio
    async def test_fetches_page(self):
        """Test a 200 response is returned with decoded text."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient() as client:
                response = await client.get(str(server.make_url("/article")))
        assert response.status_code == 200
        assert response.text == ARTICLE
        assert response.content_type.startswith("text/html")

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        """Test the final URL after redirects is reported."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient() as client:
                response = await client.get(str(server.make_url("/redirect")))
            final_url = str(server.make_url("/article"))
        assert response.url == final_url
        assert response.text == ARTICLE

    @pytest.mark.asyncio
    async def test_non_2xx_raises_fetch_error(self):
        """Test a 404 becomes FetchError with the status line."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient() as client:
                with pytest.raises(FetchError) as exc_info:
                    await client.get(str(server.make_url("/missing")))
        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Failed to fetch URL: 404 Not Found"

    @pytest.mark.asyncio
    async def test_timeout_raises_with_configured_seconds(self):
        """Test a slow server triggers FetchTimeoutError."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient() as client:
                with pytest.raises(FetchTimeoutError) as exc_info:
                    await client.get(str(server.make_url("/slow")), timeout=0.1)
        assert exc_info.value.timeout == 0.1
        assert exc_info.value.message == "Request timed out after 0.1 seconds"

    @pytest.mark.asyncio
    async def test_sends_browser_headers(self):
        """Test the browser-like User-Agent and Accept-Language are sent."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient() as client:
                response = await client.get(str(server.make_url("/headers")))
        sent = json.loads(response.text)
        assert "Chrome/120" in sent["user_agent"]
        assert sent["accept_language"] == "ja,en-US;q=0.9,en;q=0.8"

    @pytest.mark.asyncio
    async def test_custom_user_agent(self):
        """Test the User-Agent can be overridden."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient(user_agent="custom-agent/1.0") as client:
                response = await client.get(str(server.make_url("/headers")))
        assert json.loads(response.text)["user_agent"] == "custom-agent/1.0"

    @pytest.mark.asyncio
    async def test_size_limit(self):
        """Test bodies over the cap raise ContentTooLargeError."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient(max_content_size=1000) as client:
                with pytest.raises(ContentTooLargeError):
                    await client.get(str(server.make_url("/large")))

    @pytest.mark.asyncio
    async def test_decodes_declared_charset(self):
        """Test the Content-Type charset is used for decoding."""
        async with test_utils.TestServer(make_app()) as server:
            async with AsyncHttpClient() as client:
                response = await client.get(str(server.make_url("/latin1")))
        assert "Café crème" in response.text

    @pytest.mark.asyncio
    async def test_connection_refused_raises_network_error(self):
        """Test transport failures become NetworkError."""
        async with AsyncHttpClient() as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.get("http://127.0.0.1:1/", timeout=5)
        assert not isinstance(exc_info.value, FetchError)
        assert exc_info.value.url == "http://127.0.0.1:1/"

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        """Test using the client outside 'async with' fails loudly."""
        client = AsyncHttpClient()
        with pytest.raises(RuntimeError):
            await client.get("https://example.com")

    def test_headers_property_is_a_copy(self):
        client = AsyncHttpClient()
        client.headers["User-Agent"] = "changed"
        assert client.headers["User-Agent"] != "changed"


class TestHttpResponse:
    """Tests for HttpResponse helpers."""

    def test_charset_and_size(self):
        response = HttpResponse(
            status_code=200,
            content=b"abc",
            text="abc",
            content_type='text/html; charset="ISO-8859-1"',
            headers={},
            url="https://example.com",
        )
        assert response.charset == "ISO-8859-1"
        assert response.size == 3

    def test_parse_charset(self):
        """Test only a real charset parameter is picked up."""
        assert parse_charset("text/html; charset=utf-8") == "utf-8"
        assert parse_charset("text/html") is None
        assert parse_charset("text/html; charset=") is None
        assert parse_charset("charset=utf-8") is None


class TestDecodeBody:
    """Tests for decode_body."""

    def test_empty(self):
        assert decode_body(b"", "text/html") == ""

    def test_declared_charset(self):
        assert decode_body("Crème".encode("latin-1"), "text/html; charset=latin-1") == "Crème"

    def test_unknown_charset_falls_back_to_detection(self):
        """Test a bogus declared charset does not break decoding."""
        assert decode_body(b"plain ascii text", "text/html; charset=bogus") == "plain ascii text"
