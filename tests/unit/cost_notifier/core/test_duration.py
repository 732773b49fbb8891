import pytest

from cost_notifier.shared.core.duration import parse_duration, parse_timeout


@pytest.mark.parametrize(
    "value,expected",
    [
        ("10s", 10.0),
        ("1m30s", 90.0),
        ("1h", 3600.0),
        ("500ms", 0.5),
        ("1.5s", 1.5),
        ("2m", 120.0),
        ("7", 7.0),
        ("0.25", 0.25),
        ("-3s", -3.0),
    ],
)
def test_parse_duration(value, expected):
    assert parse_duration(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["", None, "abc", "10x", "s", "1m 30s", "nan", "inf"])
def test_parse_duration_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_duration(value)


@pytest.mark.parametrize(
    "value,expected",
    [("3s", 3.0), ("garbage", 10.0), ("", 10.0), (None, 10.0), ("0s", 10.0), ("-5s", 10.0)],
)
def test_parse_timeout_falls_back_to_default(value, expected):
    assert parse_timeout(value) == expected


def test_parse_timeout_custom_default():
    assert parse_timeout("bogus", default=30.0) == 30.0
