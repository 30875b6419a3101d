import pytest

from mailvet.disposable import (
    BloomFilter,
    DisposableDetector,
    is_valid_domain_format,
    optimal_bits,
    parse_disposable_list,
)


def test_disposable_detector_creation():
    domains = ["10minutemail.com", "guerrillamail.com", "tempmail.org"]
    detector = DisposableDetector(domains, 0.01)
    assert detector.domain_count() == 3
    assert detector.memory_usage() > 0


def test_disposable_detection():
    detector = DisposableDetector(["10minutemail.com", "guerrillamail.com"], 0.01)
    assert detector.is_disposable("10minutemail.com")
    assert detector.is_disposable("guerrillamail.com")
    assert not detector.is_disposable("gmail.com")
    assert not detector.is_disposable("example.com")


def test_case_insensitive_detection():
    detector = DisposableDetector(["TempMail.Org"], 0.01)
    assert detector.is_disposable("tempmail.org")
    assert detector.is_disposable("TEMPMAIL.ORG")
    assert detector.is_disposable("TempMail.Org")


def test_parse_disposable_list():
    content = """
# This is a comment
10minutemail.com
guerrillamail.com

tempmail.org
invalid_domain_without_dot
"""
    domains = parse_disposable_list(content)
    assert len(domains) == 3
    assert "10minutemail.com" in domains
    assert "guerrillamail.com" in domains
    assert "tempmail.org" in domains
    assert "invalid_domain_without_dot" not in domains


def test_parse_disposable_list_lowercases():
    assert parse_disposable_list("TempMail.ORG\n") == {"tempmail.org"}


def test_parse_disposable_list_empty_raises():
    with pytest.raises(ValueError):
        parse_disposable_list("# only a comment\n\nnodot\n")


@pytest.mark.parametrize(
    "domain", ["example.com", "sub.example.com", "test-domain.co.uk"]
)
def test_valid_domain_formats(domain):
    assert is_valid_domain_format(domain) is True


@pytest.mark.parametrize(
    "domain",
    [
        "",
        "no-dot",
        ".example.com",
        "example.com.",
        "-example.com",
        "example.com-",
        "ex ample.com",
        "a..b.com",
        "sub.-bad.com",
        "a" * 64 + ".com",
        ("a" * 60 + ".") * 5 + "com",
    ],
)
def test_invalid_domain_formats(domain):
    assert is_valid_domain_format(domain) is False


def test_from_list_txt():
    content = "10minutemail.com\nguerrillamail.com\ntempmail.org"
    detector = DisposableDetector.from_list_txt(content, 0.01)
    assert detector.domain_count() == 3
    assert detector.is_disposable("10minutemail.com")
    assert detector.is_disposable("guerrillamail.com")
    assert detector.is_disposable("tempmail.org")


def test_empty_domains_raise():
    with pytest.raises(ValueError):
        DisposableDetector([], 0.01)


def test_memory_usage_covers_optimal_bits():
    detector = DisposableDetector(["a.com", "b.com", "c.com"], 0.001)
    assert detector.memory_usage() * 8 >= optimal_bits(3, 0.001)


def test_optimal_bits_grows_with_items_and_strictness():
    assert optimal_bits(100, 0.01) > optimal_bits(10, 0.01)
    assert optimal_bits(100, 0.0001) > optimal_bits(100, 0.01)


def test_bloom_filter_has_no_false_negatives():
    bloom = BloomFilter(200, 0.001)
    items = [f"domain{i}.example.com" for i in range(200)]
    for item in items:
        bloom.add(item)
    assert all(item in bloom for item in items)


def test_bloom_filter_rejects_bad_parameters():
    with pytest.raises(ValueError):
        BloomFilter(0, 0.01)
    with pytest.raises(ValueError):
        BloomFilter(10, 1.5)


def test_bloom_filter_non_string_not_contained():
    bloom = BloomFilter(1, 0.01)
    bloom.add("x.com")
    assert (42 in bloom) is False