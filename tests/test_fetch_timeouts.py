"""
Timeouts against a real socket: the server drips the body out slowly so every
single read is fast but the whole response is not.
"""
import asyncio
import json
import time
from unittest.mock import patch

import httpx
import pytest

from foghorn.features.scan.services.audit_service import AuditFetchError, fetch_audit_report
from foghorn.features.scan.services.sitemap import SitemapFetchError, fetch_sitemap
from foghorn.platform.config import settings

SITEMAP_BODY = (
    "<urlset>"
    + "".join(f"<url><loc>https://a.com/page-{i}</loc></url>" for i in range(8))
    + "</urlset>"
).encode()


@pytest.fixture
async def slow_server():
    servers = []

    async def start(body: bytes, chunk_size: int = 10, interval: float = 0.2, content_type="application/xml"):
        async def handle(reader, writer):
            try:
                await reader.readuntil(b"\r\n\r\n")
                writer.write(
                    b"HTTP/1.1 200 OK\r\n"
                    + f"Content-Type: {content_type}\r\n".encode()
                    + f"Content-Length: {len(body)}\r\n".encode()
                    + b"Connection: close\r\n\r\n"
                )
                await writer.drain()
                for i in range(0, len(body), chunk_size):
                    writer.write(body[i:i + chunk_size])
                    await writer.drain()
                    if interval:
                        await asyncio.sleep(interval)
            except (ConnectionError, asyncio.IncompleteReadError):
                pass
            finally:
                writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        servers.append(server)
        host, port = server.sockets[0].getsockname()[:2]
        return f"http://{host}:{port}"

    yield start

    for server in servers:
        server.close()


@pytest.mark.asyncio
async def test_sitemap_slow_body_times_out(slow_server):
    base_url = await slow_server(SITEMAP_BODY)

    start = time.monotonic()
    with patch.object(settings, "SITEMAP_FETCH_TIMEOUT", 0.5):
        async with httpx.AsyncClient(trust_env=False) as client:
            with pytest.raises(SitemapFetchError) as exc:
                await fetch_sitemap(f"{base_url}/sitemap.xml", client=client)

    assert str(exc.value) == f"Timeout fetching {base_url}/sitemap.xml"
    assert time.monotonic() - start < 2


@pytest.mark.asyncio
async def test_sitemap_fast_body_within_timeout(slow_server):
    base_url = await slow_server(SITEMAP_BODY, chunk_size=len(SITEMAP_BODY), interval=0)

    with patch.object(settings, "SITEMAP_FETCH_TIMEOUT", 2.0):
        async with httpx.AsyncClient(trust_env=False) as client:
            urls = await fetch_sitemap(f"{base_url}/sitemap.xml", client=client)

    assert len(urls) == 8


@pytest.mark.asyncio
async def test_audit_slow_body_times_out(slow_server):
    body = json.dumps({"lighthouseResult": {"categories": {}, "audits": {}}, "padding": "x" * 200}).encode()
    base_url = await slow_server(body, content_type="application/json")

    start = time.monotonic()
    with patch.object(settings, "AUDIT_FETCH_TIMEOUT", 0.5), patch.object(
        settings, "PAGESPEED_API_URL", f"{base_url}/runPagespeed"
    ):
        async with httpx.AsyncClient(trust_env=False) as client:
            with pytest.raises(AuditFetchError) as exc:
                await fetch_audit_report("https://example.com/", client)

    assert str(exc.value) == "Timeout auditing https://example.com/"
    assert time.monotonic() - start < 2
