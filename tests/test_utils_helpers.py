from phishcheck.utils.domains import (
    extract_first_url,
    normalize_url_for_compare,
    split_host,
)
from phishcheck.utils.similarity import (
    best_match,
    dice_coefficient,
    get_metric,
    indel_ratio,
)

import pytest


def test_extract_first_url_picks_first_link():
    text = "visit https://example.com now or http://other.test later"
    assert extract_first_url(text) == "https://example.com"


def test_extract_first_url_strips_punctuation():
    text = "See https://example.com/path)."
    assert extract_first_url(text) == "https://example.com/path"


def test_extract_first_url_none_without_link():
    assert extract_first_url("no link here") is None
    assert extract_first_url("") is None
    assert extract_first_url("ftp://files.example.com only") is None


def test_split_host_with_deep_subdomain():
    assert split_host("paypal.com.example.tk") == ("paypal.com", "example.tk", "tk")


def test_split_host_ip_literal_uses_whole_host():
    subdomain, domain, _ = split_host("192.168.0.1")
    assert subdomain == ""
    assert domain == "192.168.0.1"


def test_normalize_url_for_compare_ignores_trailing_slash_and_case():
    assert normalize_url_for_compare("https://Example.com") == normalize_url_for_compare(
        "https://example.com/"
    )
    assert normalize_url_for_compare("https://example.com/a/") == "https://example.com/a"
    assert normalize_url_for_compare("https://example.com/a") != normalize_url_for_compare(
        "https://example.com/b"
    )


@pytest.mark.parametrize("metric", [dice_coefficient, indel_ratio])
@pytest.mark.parametrize(
    "a,b",
    [
        ("paypal.com", "paypa1.com"),
        ("google.com", "gooogle.com"),
        ("example.com", "apple.com"),
        ("a", "abc"),
    ],
)
def test_similarity_is_symmetric(metric, a, b):
    assert metric(a, b) == metric(b, a)
    assert metric(a, a) == 1.0
    assert 0.0 <= metric(a, b) <= 1.0


def test_dice_coefficient_known_values():
    assert dice_coefficient("night", "nacht") == pytest.approx(0.25)
    assert dice_coefficient("paypa1.com", "paypal.com") == pytest.approx(14 / 18)
    assert dice_coefficient("a", "b") == 0.0


def test_best_match_skips_identical_and_respects_threshold():
    legit = ("paypal.com", "google.com")
    assert best_match("paypal.com", legit, 0.7) is None

    match = best_match("paypa1.com", legit, 0.7)
    assert match is not None
    assert match[0] == "paypal.com"
    assert match[1] > 0.7

    assert best_match("example.org", legit, 0.7) is None


def test_get_metric_by_name():
    assert get_metric(None) is dice_coefficient
    assert get_metric("RATIO") is indel_ratio
    with pytest.raises(ValueError):
        get_metric("levenshtein-ish")
