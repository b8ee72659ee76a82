"""
Unit tests for the endpoint handlers.
"""

import gzip
from pathlib import Path

import pytest

from rawhttp.handlers import EchoHandler, FileHandler, index, user_agent
from rawhttp.http.request import Headers, HTTPRequest, Method, RequestLine
from rawhttp.http.status_codes import HTTPStatus


def make_request(
    method: Method = Method.GET,
    target: str = "/",
    params: dict = None,
    body: str = None,
    **headers
) -> HTTPRequest:
    return HTTPRequest(
        request_line=RequestLine(method=method, target=target, version="HTTP/1.1"),
        headers=Headers(**headers),
        body=body,
        path_params=params or {},
    )


class TestBasicHandlers:
    """Tests for index and user_agent."""

    def test_index(self):
        """Test that the root answers a bare 200."""
        assert index(make_request()).to_bytes() == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_user_agent(self):
        """Test that the User-Agent value is echoed as text."""
        response = user_agent(make_request(target="/user-agent", user_agent="foo/1.2.3"))

        assert response.to_bytes() == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/plain\r\n"
            b"Content-Length: 9\r\n"
            b"\r\n"
            b"foo/1.2.3"
        )

    def test_user_agent_missing(self):
        """Test that a missing User-Agent gives a bare 200."""
        response = user_agent(make_request(target="/user-agent"))

        assert response.to_bytes() == b"HTTP/1.1 200 OK\r\n\r\n"


class TestEchoHandler:
    """Tests for EchoHandler."""

    def test_plain_echo(self):
        """Test the echo without Accept-Encoding."""
        response = EchoHandler().handle(make_request(params={"text": "abc"}))

        assert response.headers == {"Content-Type": "text/plain", "Content-Length": "3"}
        assert response.body == b"abc"

    def test_empty_echo(self):
        """Test echoing an empty string."""
        response = EchoHandler().handle(make_request(params={"text": ""}))

        assert response.headers["Content-Length"] == "0"
        assert response.body == b""

    def test_gzip_echo(self):
        """Test that gzip is applied when negotiated."""
        response = EchoHandler().handle(make_request(
            params={"text": "abc"}, accept_encoding=["invalid-1", "gzip"]
        ))

        assert list(response.headers) == ["Content-Type", "Content-Encoding", "Content-Length"]
        assert response.headers["Content-Encoding"] == "gzip"
        assert response.headers["Content-Length"] == str(len(response.body))
        assert gzip.decompress(response.body) == b"abc"

    def test_gzip_echo_is_deterministic(self):
        """Test that two identical requests give identical bytes."""
        handler = EchoHandler()
        request = make_request(params={"text": "same"}, accept_encoding=["gzip"])

        assert handler.handle(request).to_bytes() == handler.handle(request).to_bytes()

    def test_identity_echo_has_no_body(self):
        """Test the header-only answer when gzip was not offered."""
        response = EchoHandler().handle(make_request(
            params={"text": "abc"}, accept_encoding=["invalid-encoding"]
        ))

        assert response.to_bytes() == b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\n"

    def test_identity_echo_fixed(self):
        """Test that the fixed mode echoes the text anyway."""
        handler = EchoHandler(legacy_identity_echo=False)
        response = handler.handle(make_request(
            params={"text": "abc"}, accept_encoding=["invalid-encoding"]
        ))

        assert response.body == b"abc"
        assert "Content-Encoding" not in response.headers

    def test_utf8_length(self):
        """Test that Content-Length counts UTF-8 bytes."""
        response = EchoHandler().handle(make_request(params={"text": "é"}))

        assert response.headers["Content-Length"] == "2"


class TestFileHandler:
    """Tests for FileHandler."""

    def test_download(self, files_dir: Path):
        """Test serving an existing file."""
        files_dir.mkdir()
        (files_dir / "a.bin").write_bytes(b"\x00\x01hello")
        handler = FileHandler(files_dir)

        response = handler.download(make_request(params={"name": "a.bin"}))

        assert response.status == HTTPStatus.OK
        assert response.headers == {
            "Content-Type": "application/octet-stream",
            "Content-Length": "7",
        }
        assert response.body == b"\x00\x01hello"

    def test_download_missing(self, files_dir: Path):
        """Test 404 for a missing file and a missing root."""
        handler = FileHandler(files_dir)

        response = handler.download(make_request(params={"name": "nope"}))

        assert response.to_bytes() == b"HTTP/1.1 404 Not Found\r\n\r\n"

    def test_download_directory_is_404(self, files_dir: Path):
        """Test that a directory name is not served."""
        (files_dir / "sub").mkdir(parents=True)
        handler = FileHandler(files_dir)

        assert handler.download(make_request(params={"name": "sub"})).status == HTTPStatus.NOT_FOUND

    def test_upload_creates_root(self, files_dir: Path):
        """Test that the first upload creates the directory."""
        handler = FileHandler(files_dir)

        response = handler.upload(make_request(
            Method.POST, params={"name": "notes.txt"}, body="hello", content_length=5
        ))

        assert response.to_bytes() == b"HTTP/1.1 201 Created\r\n\r\n"
        assert (files_dir / "notes.txt").read_bytes() == b"hello"

    def test_upload_truncates(self, files_dir: Path):
        """Test that an upload replaces the previous contents."""
        files_dir.mkdir()
        (files_dir / "f").write_bytes(b"a much longer previous body")
        handler = FileHandler(files_dir)

        handler.upload(make_request(Method.POST, params={"name": "f"}, body="new", content_length=3))

        assert (files_dir / "f").read_bytes() == b"new"

    def test_upload_zero_length(self, files_dir: Path):
        """Test that Content-Length: 0 writes an empty file."""
        handler = FileHandler(files_dir)

        response = handler.upload(make_request(Method.POST, params={"name": "empty"}, content_length=0))

        assert response.status == HTTPStatus.CREATED
        assert (files_dir / "empty").read_bytes() == b""

    def test_upload_without_length(self, files_dir: Path):
        """Test 411 when Content-Length is absent."""
        handler = FileHandler(files_dir)

        response = handler.upload(make_request(Method.POST, params={"name": "f"}))

        assert response.status == HTTPStatus.LENGTH_REQUIRED
        assert not files_dir.exists()

    def test_upload_write_failure(self, files_dir: Path):
        """Test 500 when the file cannot be written."""
        handler = FileHandler(files_dir)

        response = handler.upload(make_request(
            Method.POST, params={"name": "missing-subdir/f"}, body="x", content_length=1
        ))

        assert response.to_bytes() == b"HTTP/1.1 500 Internal Server Error\r\n\r\n"

    @pytest.mark.parametrize("name", ["../secret", "a/../../secret", "/etc/passwd"])
    def test_traversal_forbidden(self, tmp_path: Path, files_dir: Path, name: str):
        """Test that names escaping the root get 403."""
        files_dir.mkdir()
        (tmp_path / "secret").write_bytes(b"top secret")
        handler = FileHandler(files_dir)

        download = handler.download(make_request(params={"name": name}))
        upload = handler.upload(make_request(Method.POST, params={"name": name}, body="x", content_length=1))

        assert download.status == HTTPStatus.FORBIDDEN
        assert upload.status == HTTPStatus.FORBIDDEN
        assert (tmp_path / "secret").read_bytes() == b"top secret"

    @pytest.mark.parametrize("confine", [True, False])
    def test_nul_byte_in_name(self, files_dir: Path, confine: bool):
        """Test that a NUL byte is a 404 on GET and a 500 on POST."""
        files_dir.mkdir()
        handler = FileHandler(files_dir, confine=confine)

        download = handler.download(make_request(params={"name": "a\x00b"}))
        upload = handler.upload(make_request(
            Method.POST, params={"name": "a\x00b"}, body="x", content_length=1
        ))

        assert download.to_bytes() == b"HTTP/1.1 404 Not Found\r\n\r\n"
        assert upload.to_bytes() == b"HTTP/1.1 500 Internal Server Error\r\n\r\n"
        assert list(files_dir.iterdir()) == []

    def test_unconfined_joins_verbatim(self, tmp_path: Path, files_dir: Path):
        """Test that confinement can be switched off."""
        files_dir.mkdir()
        (tmp_path / "outside").write_bytes(b"out")
        handler = FileHandler(files_dir, confine=False)

        response = handler.download(make_request(params={"name": "../outside"}))

        assert response.status == HTTPStatus.OK
        assert response.body == b"out"
