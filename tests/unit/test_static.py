"""
Unit tests for the pre-compressed static asset handler.
"""

import gzip
import io

import pytest

from assetgz import (
    DirectoryFS,
    InternalErrorHandler,
    StaticServerBuilder,
    encode_on_init,
    file_server,
    on_error,
)
from assetgz.handlers.static import METHOD_NOT_ALLOWED_MESSAGE
from assetgz.http import HTTPResponse, HTTPStatus
from assetgz.index import FNV64

from conftest import A_TXT, B_BIN, INDEX_HTML, gzip_bytes


def fnv(data: bytes) -> str:
    h = FNV64()
    h.update(data)
    return h.hexdigest36()


class RecordingErrorHandler:
    """Remembers what it was called with, answers 503."""

    def __init__(self):
        self.calls = []

    def handle_failure(self, response, request, error):
        self.calls.append((dict(response.headers), request, error))
        return HTTPResponse(status=HTTPStatus.SERVICE_UNAVAILABLE, body=b"try later\n")


class FlakyFS:
    """DirectoryFS that can be told to fail on open() after indexing."""

    def __init__(self, root):
        self._fs = DirectoryFS(root)
        self.fail_open = False

    def read_dir(self, path):
        return self._fs.read_dir(path)

    def open(self, path):
        if self.fail_open:
            raise PermissionError(f"denied: {path}")
        return self._fs.open(path)


class TestRepresentationSelection:
    """Which stored file is served, and with which headers."""

    def test_accepted_sidecar_served_verbatim(self, static, make_request):
        response = static.handle(make_request("/a.txt", accept_encoding="gzip, deflate"))

        assert response.status == HTTPStatus.OK
        assert response.get_header("Content-Encoding") == "gzip"
        assert response.get_header("ETag") == fnv(gzip_bytes(A_TXT))
        assert response.get_header("Vary") == "Accept-Encoding"
        assert response.get_header("Content-Type") == "text/plain; charset=utf-8"
        assert response.body == gzip_bytes(A_TXT)
        assert response.get_header("Content-Length") == str(len(gzip_bytes(A_TXT)))

    def test_raw_file_without_accept_encoding(self, static, make_request):
        response = static.handle(make_request("/a.txt"))

        assert response.status == HTTPStatus.OK
        assert response.get_header("Content-Encoding") == ""
        assert response.get_header("ETag") == fnv(A_TXT)
        assert response.get_header("Vary") == "Accept-Encoding"
        assert response.body == A_TXT
        assert response.get_header("Content-Length") == str(len(A_TXT))

    def test_unknown_encoding_gets_raw_file(self, static, make_request):
        response = static.handle(make_request("/a.txt", accept_encoding="zstd"))

        assert response.body == A_TXT
        assert response.get_header("ETag") == fnv(A_TXT)

    def test_file_without_sidecar_has_no_vary(self, static, make_request):
        response = static.handle(make_request("/css/site.css", accept_encoding="gzip"))

        assert response.status == HTTPStatus.OK
        assert response.get_header("Vary") == ""
        assert response.get_header("Content-Encoding") == ""
        assert response.get_header("Content-Type") == "text/css; charset=utf-8"

    def test_sidecar_only_decompressed_for_plain_client(self, static, make_request):
        response = static.handle(make_request("/b.bin"))

        assert response.status == HTTPStatus.OK
        assert response.body == B_BIN
        assert response.get_header("ETag") == fnv(gzip_bytes(B_BIN)) + "U"
        assert response.get_header("Content-Encoding") == ""
        assert response.get_header("Content-Length") == ""
        assert response.get_header("Content-Type") == "application/octet-stream"

    def test_sidecar_only_verbatim_for_gzip_client(self, static, make_request):
        response = static.handle(make_request("/b.bin", accept_encoding="gzip"))

        assert response.get_header("Content-Encoding") == "gzip"
        assert response.get_header("ETag") == fnv(gzip_bytes(B_BIN))
        assert gzip.decompress(response.body) == B_BIN

    def test_decoded_etag_differs_from_compressed_etag(self, static, make_request):
        plain = static.handle(make_request("/b.bin"))
        compressed = static.handle(make_request("/b.bin", accept_encoding="gzip"))

        assert plain.get_header("ETag") != compressed.get_header("ETag")

    def test_sidecar_path_is_itself_an_asset(self, static, make_request):
        response = static.handle(make_request("/a.txt.gz"))

        assert response.status == HTTPStatus.OK
        assert response.body == gzip_bytes(A_TXT)
        assert response.get_header("Content-Type") == "application/gzip"


class TestConditionalRequests:
    """If-None-Match short-circuits before any file I/O."""

    def test_matching_etag_returns_304(self, static, make_request):
        etag = static.handle(make_request("/a.txt")).get_header("ETag")

        response = static.handle(make_request("/a.txt", if_none_match=etag))

        assert response.status == HTTPStatus.NOT_MODIFIED
        assert response.body == b""
        assert response.get_header("ETag") == ""

    def test_etag_of_other_representation_is_not_a_match(self, static, make_request):
        raw_etag = fnv(A_TXT)

        response = static.handle(
            make_request("/a.txt", accept_encoding="gzip", if_none_match=raw_etag)
        )

        assert response.status == HTTPStatus.OK
        assert response.get_header("Content-Encoding") == "gzip"

    def test_decoded_etag_304(self, static, make_request):
        etag = fnv(gzip_bytes(B_BIN)) + "U"

        response = static.handle(make_request("/b.bin", if_none_match=etag))

        assert response.status == HTTPStatus.NOT_MODIFIED

    def test_304_does_not_open_files(self, asset_dir, make_request):
        fs = FlakyFS(asset_dir)
        static = file_server(fs)
        fs.fail_open = True

        response = static.handle(make_request("/a.txt", if_none_match=fnv(A_TXT)))

        assert response.status == HTTPStatus.NOT_MODIFIED


class TestMethodsAndMissing:
    """Fixed responses: 405 and 404."""

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "OPTIONS"])
    def test_method_not_allowed(self, static, make_request, method):
        response = static.handle(make_request("/a.txt", method=method))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.get_header("Allow") == "GET, HEAD"
        assert response.body == (METHOD_NOT_ALLOWED_MESSAGE + "\n").encode()

    def test_405_even_for_missing_asset(self, static, make_request):
        response = static.handle(make_request("/missing", method="POST"))
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED

    def test_not_found(self, static, make_request):
        response = static.handle(make_request("/missing.txt", accept_encoding="gzip"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 page not found\n"

    def test_directory_is_not_an_asset(self, static, make_request):
        assert static.handle(make_request("/css")).status == HTTPStatus.NOT_FOUND
        assert static.handle(make_request("/css/")).status == HTTPStatus.NOT_FOUND

    def test_root_is_not_index_html(self, static, make_request):
        assert static.handle(make_request("/")).status == HTTPStatus.NOT_FOUND

    def test_callable(self, static, make_request):
        assert static(make_request("/a.txt")).body == A_TXT


class TestHead:
    """HEAD: same headers as GET, no body."""

    def test_head_verbatim(self, static, make_request):
        response = static.handle(make_request("/a.txt", method="HEAD", accept_encoding="gzip"))

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert response.get_header("Content-Length") == str(len(gzip_bytes(A_TXT)))
        assert response.get_header("Content-Encoding") == "gzip"
        assert response.get_header("ETag") == fnv(gzip_bytes(A_TXT))

    def test_head_decoded_has_no_length(self, static, make_request):
        response = static.handle(make_request("/b.bin", method="HEAD"))

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert response.get_header("Content-Length") == ""
        assert response.get_header("ETag") == fnv(gzip_bytes(B_BIN)) + "U"

    def test_head_does_not_decode(self, static, make_request):
        # The broken sidecar is never read on HEAD.
        response = static.handle(make_request("/bad.png", method="HEAD"))

        assert response.status == HTTPStatus.OK
        assert response.get_header("ETag").endswith("U")


class TestErrorHandling:
    """Open/decode/copy failures go through the error handler."""

    def test_decode_failure_default_500(self, static, make_request):
        response = static.handle(make_request("/bad.png"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert b"gzip" not in response.body.lower()

    def test_decode_failure_drops_etag(self, fs, make_request):
        hook = RecordingErrorHandler()
        static = file_server(fs, on_error(hook))

        response = static.handle(make_request("/bad.png"))

        assert response.status == HTTPStatus.SERVICE_UNAVAILABLE
        assert len(hook.calls) == 1
        headers, request, error = hook.calls[0]
        assert "ETag" not in headers
        assert request.path == "/bad.png"
        assert isinstance(error, OSError)

    def test_empty_sidecar_is_a_decode_failure(self, asset_dir, make_request):
        (asset_dir / "e.bin.gz").write_bytes(b"")
        hook = RecordingErrorHandler()
        static = file_server(DirectoryFS(asset_dir), on_error(hook))

        response = static.handle(make_request("/e.bin"))

        assert response.status == HTTPStatus.SERVICE_UNAVAILABLE
        assert len(hook.calls) == 1
        headers, _, error = hook.calls[0]
        assert "ETag" not in headers
        assert isinstance(error, gzip.BadGzipFile)

    def test_empty_sidecar_default_500(self, asset_dir, make_request):
        (asset_dir / "e.bin.gz").write_bytes(b"")
        static = file_server(DirectoryFS(asset_dir))

        response = static.handle(make_request("/e.bin"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.get_header("ETag") == ""

    def test_gzipped_empty_file_decodes(self, asset_dir, make_request):
        (asset_dir / "e.bin.gz").write_bytes(gzip_bytes(b""))
        static = file_server(DirectoryFS(asset_dir))

        response = static.handle(make_request("/e.bin"))

        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert response.get_header("ETag").endswith("U")

    def test_bad_sidecar_still_served_verbatim(self, static, make_request):
        response = static.handle(make_request("/bad.png", accept_encoding="gzip"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"this is not gzip data"
        assert response.get_header("Content-Type") == "image/png"

    def test_open_failure_keeps_headers(self, asset_dir, make_request):
        hook = RecordingErrorHandler()
        fs = FlakyFS(asset_dir)
        static = file_server(fs, on_error(hook))
        fs.fail_open = True

        response = static.handle(make_request("/a.txt"))

        assert response.status == HTTPStatus.SERVICE_UNAVAILABLE
        headers, _, error = hook.calls[0]
        assert headers["ETag"] == fnv(A_TXT)
        assert isinstance(error, PermissionError)

    def test_default_handler_logs(self, caplog, make_request):
        handler = InternalErrorHandler()
        error = OSError("disk on fire")

        with caplog.at_level("ERROR", logger="assetgz.handlers.static"):
            response = handler.handle_failure(HTTPResponse(), make_request("/x"), error)

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert "disk on fire" in caplog.text
        assert b"disk on fire" not in response.body


class TestRanges:
    """Range support on verbatim, seekable files."""

    def test_single_range(self, static, make_request):
        response = static.handle(make_request("/a.txt", range="bytes=0-4"))

        assert response.status == HTTPStatus.PARTIAL_CONTENT
        assert response.body == b"hello"
        assert response.get_header("Content-Range") == f"bytes 0-4/{len(A_TXT)}"
        assert response.get_header("Content-Length") == "5"
        assert response.get_header("Accept-Ranges") == "bytes"

    def test_range_on_sidecar_slices_compressed_bytes(self, static, make_request):
        response = static.handle(make_request("/a.txt", accept_encoding="gzip", range="bytes=0-1"))

        assert response.status == HTTPStatus.PARTIAL_CONTENT
        assert response.body == b"\x1f\x8b"
        assert response.get_header("Content-Encoding") == "gzip"

    def test_range_ignored_for_decoded_body(self, static, make_request):
        response = static.handle(make_request("/b.bin", range="bytes=0-4"))

        assert response.status == HTTPStatus.OK
        assert response.body == B_BIN

    def test_if_range_mismatch_sends_full_body(self, static, make_request):
        response = static.handle(make_request("/a.txt", range="bytes=0-4", if_range="stale"))

        assert response.status == HTTPStatus.OK
        assert response.body == A_TXT

    def test_unsatisfiable_range(self, static, make_request):
        response = static.handle(make_request("/a.txt", range="bytes=1000-"))

        assert response.status == HTTPStatus.RANGE_NOT_SATISFIABLE
        assert response.get_header("Content-Range") == f"bytes */{len(A_TXT)}"


class TestEncodeOnInit:
    """Sidecars synthesized at index time."""

    def test_missing_sidecar_is_created(self, fs, make_request):
        static = file_server(fs, encode_on_init)

        response = static.handle(make_request("/index.html", accept_encoding="gzip"))

        assert response.status == HTTPStatus.OK
        assert response.get_header("Content-Encoding") == "gzip"
        assert response.get_header("ETag") == fnv(INDEX_HTML) + ".gz"
        assert response.get_header("Vary") == "Accept-Encoding"
        assert gzip.decompress(response.body) == INDEX_HTML

    def test_existing_sidecar_is_kept(self, fs, make_request):
        static = file_server(fs, encode_on_init)

        response = static.handle(make_request("/a.txt", accept_encoding="gzip"))

        assert response.get_header("ETag") == fnv(gzip_bytes(A_TXT))
        assert "a.txt.gz.gz" not in static.index

    def test_raw_file_unchanged(self, fs, make_request):
        static = file_server(fs, encode_on_init)

        response = static.handle(make_request("/index.html"))

        assert response.body == INDEX_HTML
        assert response.get_header("ETag") == fnv(INDEX_HTML)

    def test_encoded_sidecar_304(self, fs, make_request):
        static = file_server(fs, encode_on_init)
        etag = fnv(INDEX_HTML) + ".gz"

        response = static.handle(
            make_request("/index.html", accept_encoding="gzip", if_none_match=etag)
        )

        assert response.status == HTTPStatus.NOT_MODIFIED


class TestBuilder:
    """StaticServerBuilder and the option functions."""

    def test_defaults(self):
        builder = StaticServerBuilder()

        assert [enc.content_encoding for enc in builder.encodings] == ["gzip"]

    def test_prepend_gives_priority(self):
        from assetgz import Encoding

        builder = StaticServerBuilder()
        builder.add_encoding(Encoding(".zz", "zz"), prepend=True)
        builder.add_encoding(Encoding(".xx", "xx"))

        assert [enc.file_ext for enc in builder.encodings] == [".zz", ".gz", ".xx"]

    def test_codec_without_decoder_not_used_for_fallback(self, tmp_path, make_request):
        from assetgz import Encoding

        (tmp_path / "data.json.zz").write_bytes(b"opaque")
        static = StaticServerBuilder().add_encoding(Encoding(".zz", "zz")).build(DirectoryFS(tmp_path))

        assert static.handle(make_request("/data.json")).status == HTTPStatus.NOT_FOUND

        response = static.handle(make_request("/data.json", accept_encoding="zz"))
        assert response.body == b"opaque"
        assert response.get_header("Content-Type") == "application/json; charset=utf-8"

    def test_custom_decoder(self, tmp_path, make_request):
        from assetgz import Encoding

        def reverse(stream):
            return io.BytesIO(stream.read()[::-1])

        (tmp_path / "note.txt.rev").write_bytes(b"olleh")
        static = (StaticServerBuilder()
            .add_encoding(Encoding(".rev", "reversed", decoder=reverse))
            .build(DirectoryFS(tmp_path)))

        response = static.handle(make_request("/note.txt"))

        assert response.body == b"hello"
        assert response.get_header("ETag").endswith("U")

    def test_has_asset(self, static, make_request):
        assert static.has_asset(make_request("/a.txt"))
        assert static.has_asset(make_request("/b.bin"))
        assert not static.has_asset(make_request("/nope"))
