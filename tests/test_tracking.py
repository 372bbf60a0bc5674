"""Tests for the tracking filter."""

import pytest

from edge_visits.config import DEFAULT_ASSET_EXTENSIONS
from edge_visits.tracking import TrackingFilter, should_track


class TestMethodRule:
    """Only GET requests are page views."""

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"])
    def test_non_get_rejected(self, method):
        assert should_track(method, "/") is False
        assert should_track(method, "/about") is False

    def test_get_accepted(self):
        assert should_track("GET", "/") is True

    def test_method_is_case_sensitive(self):
        """HTTP methods are case-sensitive tokens."""
        assert should_track("get", "/") is False


class TestAssetRule:
    """Static assets are never tracked."""

    @pytest.mark.parametrize("ext", DEFAULT_ASSET_EXTENSIONS)
    def test_asset_extensions_rejected(self, ext):
        assert should_track("GET", f"/static/file{ext}") is False

    @pytest.mark.parametrize("path", ["/LOGO.PNG", "/Style.Css", "/fonts/Inter.WOFF2"])
    def test_suffix_match_is_case_insensitive(self, path):
        assert should_track("GET", path) is False

    def test_extension_only_counts_as_suffix(self):
        """A path merely containing ".css" somewhere is still a page."""
        assert should_track("GET", "/css-tricks") is True
        assert should_track("GET", "/blog/post.css/comments") is True

    def test_html_pages_tracked(self):
        assert should_track("GET", "/about.html") is True


class TestApiAndExcludedPages:
    """API namespace and operational pages are never tracked."""

    def test_api_prefix_rejected(self):
        assert should_track("GET", "/api/visits") is False
        assert should_track("GET", "/api/beacon") is False
        assert should_track("GET", "/API/visits") is False

    def test_api_without_trailing_slash_is_a_page(self):
        assert should_track("GET", "/api") is True
        assert should_track("GET", "/apiary") is True

    def test_settings_rejected_with_and_without_extension(self):
        assert should_track("GET", "/settings") is False
        assert should_track("GET", "/settings.html") is False

    def test_settings_subpaths_tracked(self):
        assert should_track("GET", "/settings/profile") is True

    @pytest.mark.parametrize("path", ["/", "/about", "/blog/", "/blog/hello-world", "/index.html"])
    def test_regular_pages_tracked(self, path):
        assert should_track("GET", path) is True


class TestCustomRules:
    """TrackingFilter accepts site-specific rules."""

    def test_custom_excluded_pages(self):
        rules = TrackingFilter(excluded_pages=("/admin", "/health"))
        assert rules.should_track("GET", "/admin") is False
        assert rules.should_track("GET", "/health") is False
        assert rules.should_track("GET", "/settings") is True

    def test_custom_asset_extensions(self):
        rules = TrackingFilter(asset_extensions=(".webp", ".XML"))
        assert rules.should_track("GET", "/image.webp") is False
        assert rules.should_track("GET", "/sitemap.xml") is False
        assert rules.should_track("GET", "/style.css") is True

    def test_custom_api_prefix(self):
        rules = TrackingFilter(api_prefix="/_api/")
        assert rules.should_track("GET", "/_api/visits") is False
        assert rules.should_track("GET", "/api/visits") is True
