"""Tests for input normalization and the terminal short-circuits."""

from phishcheck.analyzer.models import AnalysisInput, AnalysisResult, ParsedUrl
from phishcheck.analyzer.normalizer import candidate_url, normalize, parse_url


def test_url_is_used_verbatim():
    data = AnalysisInput(url="http://paypal.com.example.tk/login", message="ignored https://x.test")
    assert candidate_url(data) == "http://paypal.com.example.tk/login"


def test_message_yields_first_link():
    data = AnalysisInput(message="Your account is locked: https://secure-login.test/verify?id=1 now")
    assert candidate_url(data) == "https://secure-login.test/verify?id=1"


def test_message_without_link_is_terminal_and_benign():
    result = normalize(AnalysisInput(message="no link here"))
    assert isinstance(result, AnalysisResult)
    assert result.to_dict() == {"isPhishing": False, "riskScore": 0, "reasons": ["No URL found"]}


def test_empty_input_is_no_url():
    result = normalize(AnalysisInput.from_dict({}))
    assert isinstance(result, AnalysisResult)
    assert result.reasons == ["No URL found"]


def test_unparsable_url_is_terminal_and_maximal():
    result = normalize(AnalysisInput(url="not a url"))
    assert isinstance(result, AnalysisResult)
    assert result.to_dict() == {"isPhishing": True, "riskScore": 100, "reasons": ["Invalid URL format"]}


def test_parse_url_components():
    parsed = parse_url("HTTP://Sub.Example.com:8080/Login?next=/home")
    assert isinstance(parsed, ParsedUrl)
    assert parsed.scheme == "http"
    assert parsed.hostname == "sub.example.com"
    assert parsed.path == "/Login"
    assert parsed.query == "?next=/home"
    assert parsed.raw == "HTTP://Sub.Example.com:8080/Login?next=/home"
    assert parsed.registered_domain == "example.com"
    assert parsed.subdomain == "sub"
    assert parsed.tld == "com"


def test_parse_url_rejects_malformed_inputs():
    assert parse_url("example.com") is None  # no scheme
    assert parse_url("http://") is None  # no host
    assert parse_url("http://exa mple.com") is None
    assert parse_url("http://example.com:99999/") is None  # port out of range
    assert parse_url("http://[::1") is None  # unterminated IPv6 literal
    assert parse_url("") is None


def test_parse_url_accepts_ipv6_literal():
    parsed = parse_url("http://[::1]/admin")
    assert parsed is not None
    assert parsed.hostname == "::1"
