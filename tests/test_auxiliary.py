from datetime import timedelta

import pytest

from auxiliary import InvalidArgumentError, format_bytes, format_path_for_display, parse_age, parse_size, truncate_path


def test_format_bytes() -> None:
    assert format_bytes(789) == "789 B"
    assert format_bytes(12 * 1024) == "12.0 KiB"
    assert format_bytes(345 * 1024**2) == "345.0 MiB"
    assert format_bytes(int(1.2 * 1024**3)) == "1.2 GiB"


def test_format_path_for_display() -> None:
    assert format_path_for_display("/home/ann/code/x", "/home/ann") == "~/code/x"
    assert format_path_for_display("/home/anna/x", "/home/ann") == "/home/anna/x"


def test_truncate_path() -> None:
    assert truncate_path("short") == "short"
    assert len(truncate_path("x" * 100, 20)) == 20


@pytest.mark.parametrize(
    ("value", "expected"),
    [("12h", timedelta(hours=12)), ("30d", timedelta(days=30)), ("2w", timedelta(weeks=2)),
     ("3m", timedelta(days=90)), ("1Y", timedelta(days=365))],
)
def test_parse_age(value: str, expected: timedelta) -> None:
    assert parse_age(value) == expected


@pytest.mark.parametrize("value", ["", "30", "d", "3x", "-1d"])
def test_parse_age_rejects(value: str) -> None:
    with pytest.raises(InvalidArgumentError):
        parse_age(value)


def test_parse_size() -> None:
    assert parse_size("512") == 512
    assert parse_size("10K") == 10 * 1024
    assert parse_size("1.5M") == int(1.5 * 1024**2)
    assert parse_size("2GiB") == 2 * 1024**3
    with pytest.raises(InvalidArgumentError):
        parse_size("lots")
