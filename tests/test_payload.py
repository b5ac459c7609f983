from __future__ import annotations

from stingray.payload import assemble, is_scalar


class _Timing:
    inherited = 42

    def __init__(self) -> None:
        self.navigationStart = 1700000000000
        self.domComplete = 0

    @property
    def computed(self) -> int:
        return 7


def test_dataset_wins_over_environment_sources() -> None:
    data = assemble({"domain": "mine"}, [{"domain": "example.com", "url": "https://example.com/"}])

    assert data["domain"] == "mine"
    assert data["url"] == "https://example.com/"


def test_earlier_source_wins_over_later_source() -> None:
    data = assemble({}, [{"now": 1}, {"now": 2, "maxRss": 1024}])

    assert data == {"now": 1, "maxRss": 1024}


def test_empty_and_zero_values_are_dropped() -> None:
    data = assemble({"empty": "", "zero": 0, "zero_float": 0.0, "neg_zero": -0.0, "kept": "x"})

    assert data == {"kept": "x"}


def test_dropped_value_leaves_key_open_for_later_source() -> None:
    data = assemble({"referrer": ""}, [{"referrer": "https://ref.example/"}])

    assert data["referrer"] == "https://ref.example/"


def test_false_is_a_boolean_not_zero() -> None:
    data = assemble({"cookies": False, "online": True})

    assert data == {"cookies": False, "online": True}


def test_non_scalar_values_are_skipped() -> None:
    data = assemble(
        {
            "nested": {"a": 1},
            "items": [1, 2],
            "nothing": None,
            "raw": b"bytes",
            "fn": print,
            "ok": 3.5,
        }
    )

    assert data == {"ok": 3.5}


def test_non_string_keys_are_skipped() -> None:
    data = assemble({1: "one", "two": "2"})  # type: ignore[dict-item]

    assert data == {"two": "2"}


def test_object_sources_only_contribute_instance_attributes() -> None:
    data = assemble({}, [_Timing()])

    assert data == {"navigationStart": 1700000000000}


def test_malformed_sources_do_not_raise() -> None:
    data = assemble({"a": "b"}, [None, 12, "string", object()])

    assert data == {"a": "b"}


def test_is_scalar() -> None:
    assert is_scalar("x")
    assert is_scalar(-1)
    assert is_scalar(False)
    assert not is_scalar("")
    assert not is_scalar(0)
    assert not is_scalar(None)
    assert not is_scalar({"a": 1})
