from __future__ import annotations

from stingray.codec import build_url, decode, encode, stringify
from stingray.payload import assemble


def test_encode_joins_pairs_with_ampersand() -> None:
    assert encode({"x": 1, "y": "two"}) == "x=1&y=two"


def test_encode_escapes_like_encode_uri_component() -> None:
    assert encode({"q": "a b&c=d/é"}) == "q=a%20b%26c%3Dd%2F%C3%A9"
    assert encode({"keep": "-_.!~*'()"}) == "keep=-_.!~*'()"


def test_stringify_matches_browser_rendering() -> None:
    assert stringify(True) == "true"
    assert stringify(False) == "false"
    assert stringify(3.0) == "3"
    assert stringify(0.25) == "0.25"
    assert stringify(float("nan")) == "NaN"
    assert stringify(float("-inf")) == "-Infinity"


def test_stringify_switches_to_exponent_at_browser_thresholds() -> None:
    assert stringify(1e16) == "10000000000000000"
    assert stringify(1.2345e20) == "123450000000000000000"
    assert stringify(1e21) == "1e+21"
    assert stringify(-2.5e22) == "-2.5e+22"
    assert stringify(0.000001) == "0.000001"
    assert stringify(0.00001) == "0.00001"
    assert stringify(1e-7) == "1e-7"
    assert stringify(-1.5e-8) == "-1.5e-8"
    assert stringify(-0.0) == "0"


def test_decode_handles_prefix_plus_and_repeats() -> None:
    assert decode("?a=1&b=hello+world&a=2&&=skip&flag") == {"a": "1", "b": "hello world", "flag": ""}


def test_decode_skips_malformed_escapes() -> None:
    assert decode("a=%E0%A4%A&b=2&c=%ZZ") == {"b": "2"}
    assert decode("%FF=1&ok=%C3%A9&bad=%C3") == {"ok": "\u00e9"}
    assert decode("pct=100%25") == {"pct": "100%"}


def test_decode_of_encoded_payload_matches_string_form() -> None:
    payload = assemble(
        {"page": "/checkout?step=2", "ready": True, "ratio": 0.5, "count": 12, "hidden": False},
        [{"userAgent": "Mozilla/5.0 (X11; Linux x86_64)"}],
    )

    assert decode(encode(payload)) == {key: stringify(value) for key, value in payload.items()}


def test_build_url_omits_separator_for_empty_payload() -> None:
    assert build_url("http://example.com/b.gif", {}) == "http://example.com/b.gif"
    assert build_url("http://example.com/b.gif", {"a": "1"}) == "http://example.com/b.gif?a=1"
