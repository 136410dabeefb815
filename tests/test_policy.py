"""Tests for target normalization, scope matching and extension filtering."""

import pytest

from urlsweep.errors import ConfigurationError, InvalidTargetError
from urlsweep.policy import (
    ScopeMatcher,
    UrlPolicy,
    canonical_target,
    in_scope,
    is_excluded,
    normalize_candidate,
    normalize_target,
    parse_extensions,
    url_extension,
)


class TestNormalizeTarget:
    """Tests for root target normalization."""

    def test_prepends_http_when_scheme_missing(self):
        assert normalize_target("example.com") == "http://example.com"

    def test_keeps_explicit_scheme_and_strips_whitespace(self):
        assert normalize_target("  https://example.com/path \n") == "https://example.com/path"

    def test_host_with_port_gets_scheme(self):
        assert normalize_target("example.com:8080") == "http://example.com:8080"

    @pytest.mark.parametrize("target", [
        "",
        "   ",
        "ftp://example.com",
        "http://",
        "http://example.com:abc",
    ])
    def test_invalid_targets(self, target):
        with pytest.raises(InvalidTargetError):
            normalize_target(target)

    def test_invalid_target_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc_info:
            normalize_target("ftp://example.com")
        assert "Invalid URL" in str(exc_info.value)
        assert exc_info.value.target == "ftp://example.com"


class TestCanonicalTarget:
    """Root targets share the form of discovered URLs."""

    @pytest.mark.parametrize("target", [
        "example.com",
        "Example.COM",
        "http://example.com:80",
        "HTTP://example.com/",
        "example.com#top",
    ])
    def test_spellings_of_the_root(self, target):
        assert canonical_target(target) == "http://example.com/"

    def test_path_is_kept(self):
        assert canonical_target("https://Example.com:8443/Docs?q=1") == "https://example.com:8443/Docs?q=1"

    def test_invalid_target(self):
        with pytest.raises(InvalidTargetError):
            canonical_target("ftp://example.com")


class TestNormalizeCandidate:
    """Tests for discovered URL normalization."""

    def test_drops_fragment_and_lowercases_host(self):
        assert normalize_candidate("HTTP://Example.COM/Path?q=1#section") == "http://example.com/Path?q=1"

    def test_strips_default_ports(self):
        assert normalize_candidate("http://example.com:80/a") == "http://example.com/a"
        assert normalize_candidate("https://example.com:443/") == "https://example.com/"

    def test_keeps_non_default_port(self):
        assert normalize_candidate("https://example.com:8443/x") == "https://example.com:8443/x"

    def test_empty_path_becomes_slash(self):
        assert normalize_candidate("http://example.com") == "http://example.com/"
        assert normalize_candidate("HTTP://Example.com:80#top") == "http://example.com/"
        assert normalize_candidate("http://example.com?q=1") == "http://example.com/?q=1"

    @pytest.mark.parametrize("url", [
        "",
        "mailto:someone@example.com",
        "javascript:void(0)",
        "/relative/path",
        "http://[::1",
    ])
    def test_unusable_candidates(self, url):
        assert normalize_candidate(url) is None


class TestScopeMatcher:
    """Tests for hostname scope patterns."""

    @pytest.mark.parametrize("host,expected", [
        ("www.example.com", True),
        ("a.b.example.com", True),
        ("example.com", True),
        ("WWW.EXAMPLE.COM", True),
        ("evil-example.com", False),
        ("example.com.evil.net", False),
        ("other.com", False),
    ])
    def test_wildcard_scope(self, host, expected):
        matcher = ScopeMatcher("*.example.com")
        assert matcher.matches_host(host) is expected

    def test_exact_scope_rejects_subdomains(self):
        matcher = ScopeMatcher("example.com")
        assert matcher("https://example.com/page")
        assert not matcher("https://www.example.com/page")

    def test_dots_are_literal(self):
        matcher = ScopeMatcher("example.com")
        assert not matcher.matches_host("exampleXcom")

    def test_no_scope_accepts_everything(self):
        matcher = ScopeMatcher(None)
        assert matcher("https://anything.test/")
        assert matcher.matches_host(None)

    def test_url_without_host_is_out_of_scope(self):
        assert not ScopeMatcher("*.example.com")("file:///etc/passwd")

    def test_in_scope_helper(self):
        assert in_scope("https://www.example.com/x", "*.example.com")
        assert not in_scope("https://other.com/x", "*.example.com")
        assert in_scope("https://other.com/x", None)


class TestExtensionFilter:
    """Tests for extension parsing and exclusion."""

    def test_parse_extensions_from_string(self):
        assert parse_extensions("png, .JPG,,  ") == {"png", "jpg"}

    def test_parse_extensions_from_iterable(self):
        assert parse_extensions(["GIF", ".svg"]) == {"gif", "svg"}

    def test_parse_extensions_empty(self):
        assert parse_extensions(None) == set()
        assert parse_extensions("") == set()

    @pytest.mark.parametrize("url,expected", [
        ("http://example.com/a/b.PNG?x=1", "png"),
        ("http://example.com/archive.tar.gz", "gz"),
        ("http://example.com/dir.v2/", None),
        ("http://example.com/file.", None),
        ("http://example.com/page", None),
        ("http://example.com", None),
    ])
    def test_url_extension(self, url, expected):
        assert url_extension(url) == expected

    def test_is_excluded(self):
        excluded = {"png", "jpg"}
        assert is_excluded("http://example.com/logo.png", excluded)
        assert is_excluded("http://example.com/photo.JPG", excluded)
        assert not is_excluded("http://example.com/index.html", excluded)
        assert not is_excluded("http://example.com/page", excluded)

    def test_empty_set_excludes_nothing(self):
        assert not is_excluded("http://example.com/logo.png", set())
        assert not is_excluded("http://example.com/logo.png", [])


class TestUrlPolicy:
    """Tests for the combined scope and extension policy."""

    def test_accepts_in_scope_url(self):
        policy = UrlPolicy("*.example.com", "png")
        assert policy.accepts("https://www.example.com/page")
        assert policy.rejection_reason("https://www.example.com/page") is None

    def test_rejects_out_of_scope(self):
        policy = UrlPolicy("*.example.com")
        reason = policy.rejection_reason("https://other.com/")
        assert reason is not None
        assert "out of scope" in reason

    def test_rejects_excluded_extension(self):
        policy = UrlPolicy(excluded_extensions="png,jpg")
        reason = policy.rejection_reason("https://example.com/logo.png")
        assert reason == "excluded extension .png"
        assert policy.excluded_extensions == frozenset({"png", "jpg"})

    def test_follows_same_host_only(self):
        policy = UrlPolicy(excluded_extensions=["pdf"])
        assert policy.follows("https://Example.com/a", "example.com")
        assert not policy.follows("https://www.example.com/a", "example.com")
        assert not policy.follows("https://example.com/doc.pdf", "example.com")
        assert not policy.follows("https://example.com/a", None)
