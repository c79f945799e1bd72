"""Tests for the streaming upload transport against a local server."""
import asyncio
from typing import Any, Dict, List
from unittest.mock import AsyncMock, patch

import pytest
from aiohttp import web

from mxcontent.client import ContentRepoClient
from mxcontent.core.abort import AbortController
from mxcontent.core.api.http_api import HttpApi
from mxcontent.core.exceptions import (
    AbortError,
    UploadTimeoutError,
    ConnectionError,
    ProtocolError,
    MatrixError,
    HTTPError,
)
from mxcontent.core.upload import UploadOptions, UploadProgress, NamedPayload
from mxcontent.core.upload.strategies import StreamingTransport

from tests.helpers import serve, server_config


def recording_handler(received: List[Dict[str, Any]], body: Any = None, status: int = 200):
    async def handler(request: web.Request):
        received.append({
            'query': dict(request.query),
            'headers': dict(request.headers),
            'body': await request.read(),
        })
        return web.json_response(
            body if body is not None else {'content_uri': 'mxc://example.org/abc'},
            status=status
        )
    return handler


class TestStreamingUpload:
    """Test suite for uploads over the streaming transport."""

    @pytest.mark.asyncio
    async def test_wire_format_with_header_token(self):
        """Test method, path, headers, filename and body on the wire."""
        received: List[Dict[str, Any]] = []
        async with serve(recording_handler(received)) as server:
            async with ContentRepoClient(server_config(server)) as client:
                result = await client.upload_content(
                    b"hello world",
                    UploadOptions(name="my file.txt", content_type="text/plain", raw_response=False)
                )

        assert result == {'content_uri': 'mxc://example.org/abc'}
        request = received[0]
        assert request['body'] == b"hello world"
        assert request['query'] == {'filename': 'my file.txt'}
        assert request['headers']['Authorization'] == 'Bearer syt_secret'
        assert request['headers']['Content-Type'] == 'text/plain'

    @pytest.mark.asyncio
    async def test_query_token_mode(self):
        """Test the token is sent as query parameter and never as header."""
        received: List[Dict[str, Any]] = []
        async with serve(recording_handler(received)) as server:
            config = server_config(server, use_authorization_header=False)
            async with ContentRepoClient(config) as client:
                await client.upload_content(b"x", UploadOptions(include_filename=False))

        request = received[0]
        assert request['query'] == {'access_token': 'syt_secret'}
        assert 'Authorization' not in request['headers']
        assert request['headers']['Content-Type'] == 'application/octet-stream'

    @pytest.mark.asyncio
    async def test_only_content_uri(self):
        """Test the resolved value is exactly the content_uri field."""
        received: List[Dict[str, Any]] = []
        async with serve(recording_handler(received)) as server:
            async with ContentRepoClient(server_config(server)) as client:
                result = await client.upload_content(b"x", UploadOptions(only_content_uri=True))

        assert result == 'mxc://example.org/abc'

    @pytest.mark.asyncio
    async def test_raw_response_is_default_for_headless(self):
        """Test the default config resolves to the raw body text."""
        received: List[Dict[str, Any]] = []
        async with serve(recording_handler(received)) as server:
            async with ContentRepoClient(server_config(server)) as client:
                result = await client.upload_content(b"x")

        assert isinstance(result, str)
        assert 'mxc://example.org/abc' in result

    @pytest.mark.asyncio
    async def test_progress_reported_per_chunk(self):
        """Test progress ticks are non-decreasing and end at the total."""
        received: List[Dict[str, Any]] = []
        seen: List[UploadProgress] = []
        payload = b"a" * 10_000
        async with serve(recording_handler(received)) as server:
            config = server_config(server, chunk_size=4096)
            async with ContentRepoClient(config) as client:
                await client.upload_content(payload, UploadOptions(progress_handler=seen.append))

        assert [p.loaded for p in seen] == [4096, 8192, 10_000]
        assert all(p.total == 10_000 for p in seen)
        assert received[0]['body'] == payload

    @pytest.mark.asyncio
    async def test_failing_progress_handler_does_not_fail_upload(self):
        """Test an exception in the caller's handler leaves the transfer intact."""
        received: List[Dict[str, Any]] = []
        calls: List[UploadProgress] = []

        def handler(progress: UploadProgress):
            calls.append(progress)
            raise RuntimeError("boom")

        async with serve(recording_handler(received)) as server:
            config = server_config(server, chunk_size=4)
            async with ContentRepoClient(config) as client:
                future = client.upload_content(
                    b"0123456789", UploadOptions(only_content_uri=True, progress_handler=handler)
                )
                upload = client.get_current_uploads()[0]
                result = await future

        assert result == 'mxc://example.org/abc'
        assert received[0]['body'] == b"0123456789"
        assert [p.loaded for p in calls] == [4, 8, 10]
        assert upload.loaded == 10

    @pytest.mark.asyncio
    async def test_streamed_payload(self):
        """Test async iterables are streamed with unknown total."""
        received: List[Dict[str, Any]] = []
        seen: List[UploadProgress] = []

        async def gen():
            yield b"part1-"
            yield b"part2"

        async with serve(recording_handler(received)) as server:
            async with ContentRepoClient(server_config(server)) as client:
                await client.upload_content(
                    NamedPayload(gen(), name="stream.bin"),
                    UploadOptions(progress_handler=seen.append)
                )

        assert received[0]['body'] == b"part1-part2"
        assert received[0]['query'] == {'filename': 'stream.bin'}
        assert [p.loaded for p in seen] == [6, 11]
        assert all(p.total == 0 for p in seen)

    @pytest.mark.asyncio
    async def test_structured_error(self):
        """Test an error body with errcode becomes MatrixError."""
        received: List[Dict[str, Any]] = []
        handler = recording_handler(received, {'errcode': 'M_TOO_LARGE', 'error': 'too big'}, status=413)
        async with serve(handler) as server:
            async with ContentRepoClient(server_config(server)) as client:
                with pytest.raises(MatrixError) as exc_info:
                    await client.upload_content(b"x")
                assert client.get_current_uploads() == []

        assert exc_info.value.errcode == 'M_TOO_LARGE'
        assert exc_info.value.error == 'too big'
        assert exc_info.value.http_status == 413

    @pytest.mark.asyncio
    async def test_unstructured_error(self):
        """Test a plain-text error becomes HTTPError."""
        async def handler(request):
            await request.read()
            return web.Response(status=502, text="Bad Gateway")

        async with serve(handler) as server:
            async with ContentRepoClient(server_config(server)) as client:
                with pytest.raises(HTTPError) as exc_info:
                    await client.upload_content(b"x")

        assert exc_info.value.http_status == 502

    @pytest.mark.asyncio
    async def test_empty_body(self):
        """Test an empty success body is a protocol error."""
        async def handler(request):
            await request.read()
            return web.Response(status=200, body=b"")

        async with serve(handler) as server:
            async with ContentRepoClient(server_config(server)) as client:
                with pytest.raises(ProtocolError, match="No response body"):
                    await client.upload_content(b"x")

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        """Test a non-JSON success body is a protocol error."""
        async def handler(request):
            await request.read()
            return web.Response(status=200, text="not json")

        async with serve(handler) as server:
            async with ContentRepoClient(server_config(server)) as client:
                with pytest.raises(ProtocolError):
                    await client.upload_content(b"x")

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test an unreachable server is a connection error."""
        async with serve(recording_handler([])) as server:
            config = server_config(server)
        async with ContentRepoClient(config) as client:
            with pytest.raises(ConnectionError):
                await client.upload_content(b"x")
            assert client.get_current_uploads() == []

    @pytest.mark.asyncio
    async def test_cancel_mid_transfer(self):
        """Test cancel_upload rejects with AbortError and clears the registry."""
        release = asyncio.Event()

        async def handler(request):
            await request.read()
            await release.wait()
            return web.json_response({'content_uri': 'mxc://example.org/late'})

        async with serve(handler) as server:
            async with ContentRepoClient(server_config(server)) as client:
                future = client.upload_content(b"x")
                await asyncio.sleep(0.05)

                assert client.cancel_upload(future) is True
                with pytest.raises(AbortError):
                    await future
                assert client.get_current_uploads() == []
                assert client.cancel_upload(future) is False
            release.set()

    @pytest.mark.asyncio
    async def test_stall_times_out(self):
        """Test a transfer without progress is aborted by the watchdog."""
        async def stalled():
            yield b"first"
            await asyncio.sleep(10)
            yield b"never"

        async def handler(request):
            await request.read()
            return web.json_response({'content_uri': 'mxc://example.org/abc'})

        async with serve(handler) as server:
            config = server_config(server, upload_timeout=0.2)
            async with ContentRepoClient(config) as client:
                future = client.upload_content(stalled())
                with pytest.raises(UploadTimeoutError):
                    await future
                assert client.get_current_uploads() == []


class TestStreamingTransportUnits:
    """Test suite for StreamingTransport internals."""

    @pytest.fixture
    def transport(self, config):
        """Create transport instance."""
        return StreamingTransport(HttpApi(config))

    def test_build_url_percent_encodes_filename(self, transport):
        """Test the filename is percent-encoded once."""
        url = transport.build_url("a b&c.png")

        assert url == 'https://matrix.example.org/_matrix/media/r0/upload?filename=a%20b%26c.png'

    def test_build_url_query_token(self, config):
        """Test compatibility mode puts the token in the query."""
        config.use_authorization_header = False
        transport = StreamingTransport(HttpApi(config))

        assert transport.build_url(None) == (
            'https://matrix.example.org/_matrix/media/r0/upload?access_token=syt_secret'
        )
        assert 'Authorization' not in transport.build_headers('image/png')

    def test_build_headers(self, transport):
        """Test content type, bearer token and length headers."""
        headers = transport.build_headers('image/png', 42)

        assert headers == {
            'Content-Type': 'image/png',
            'Authorization': 'Bearer syt_secret',
            'Content-Length': '42',
        }

    def test_status_zero_is_abort(self, transport):
        """Test status 0 yields AbortError without a caller abort."""
        with pytest.raises(AbortError):
            transport._complete((0, '', None), AbortController())

    def test_status_zero_uses_abort_reason(self, transport):
        """Test status 0 after a timeout reports the timeout."""
        controller = AbortController()
        controller.abort(UploadTimeoutError(30))

        with pytest.raises(UploadTimeoutError):
            transport._complete((0, '', None), controller)

    def test_empty_body_with_error_status(self, transport):
        """Test an empty body is a protocol error whatever the status."""
        with pytest.raises(ProtocolError):
            transport._complete((500, '', None), AbortController())

    def test_complete_parses_json(self, transport):
        """Test a success body is parsed."""
        response = transport._complete((200, '{"content_uri": "mxc://a/b"}', 'application/json'), AbortController())

        assert response.data == {'content_uri': 'mxc://a/b'}
        assert response.body == '{"content_uri": "mxc://a/b"}'

    @pytest.mark.asyncio
    async def test_status_zero_through_send(self, transport):
        """Test a torn-down transfer reported as status 0 rejects with AbortError."""
        from mxcontent.core.upload import ProgressChannel, Payload, UploadRequest, Upload

        controller = AbortController()
        request = UploadRequest(
            Upload(id=1, abort_controller=controller),
            Payload.wrap(b"x"),
            'application/octet-stream'
        )
        with patch.object(transport, '_transfer', AsyncMock(return_value=(0, '', None))):
            with pytest.raises(AbortError):
                await transport.send(request, ProgressChannel(), controller)

        assert controller.signal.aborted is False
