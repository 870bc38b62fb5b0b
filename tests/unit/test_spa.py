"""
Unit tests for the fallback handler.
"""

from assetgz import FallbackHandler, spa_fallback
from assetgz.http import HTTPStatus, ResponseBuilder

from conftest import A_TXT, INDEX_HTML


class TestFallbackHandler:

    def test_asset_served_by_static(self, static, make_request):
        handler = FallbackHandler(static, lambda request: ResponseBuilder().text("fallback").build())

        assert handler(make_request("/a.txt")).body == A_TXT

    def test_missing_goes_to_fallback(self, static, make_request):
        seen = []

        def fallback(request):
            seen.append(request.path)
            return ResponseBuilder().status(HTTPStatus.NOT_FOUND).text("custom 404").build()

        response = FallbackHandler(static, fallback).handle(make_request("/nope"))

        assert response.body == b"custom 404"
        assert seen == ["/nope"]


class TestSpaFallback:

    def test_client_route_gets_index(self, static, make_request):
        handler = spa_fallback(static)

        response = handler(make_request("/settings/profile"))

        assert response.status == HTTPStatus.OK
        assert response.body == INDEX_HTML
        assert response.get_header("Content-Type") == "text/html; charset=utf-8"

    def test_real_assets_untouched(self, static, make_request):
        handler = spa_fallback(static)

        response = handler(make_request("/a.txt", accept_encoding="gzip"))

        assert response.get_header("Content-Encoding") == "gzip"

    def test_custom_entry_point(self, static, make_request):
        handler = spa_fallback(static, "/css/site.css")

        response = handler(make_request("/anything"))

        assert response.get_header("Content-Type") == "text/css; charset=utf-8"

    def test_method_check_still_applies(self, static, make_request):
        response = spa_fallback(static)(make_request("/nope", method="POST"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
