from datetime import datetime, timezone

import pytest

from .. import util as test_module


def test_datetime_to_str():
    dt = datetime(2024, 3, 1, 12, 30, 15, tzinfo=timezone.utc)
    assert test_module.datetime_to_str(dt) == "2024-03-01T12:30:15Z"
    assert test_module.datetime_to_str(dt.replace(tzinfo=None)) == (
        "2024-03-01T12:30:15Z"
    )
    assert test_module.datetime_to_str("2024-03-01T12:30:15Z") == (
        "2024-03-01T12:30:15Z"
    )
    assert test_module.datetime_to_str(None) is None


def test_str_to_datetime():
    expected = datetime(2024, 3, 1, 12, 30, 15, tzinfo=timezone.utc)
    assert test_module.str_to_datetime("2024-03-01T12:30:15Z") == expected
    assert test_module.str_to_datetime("2024-03-01 14:30:15+02:00") == expected
    assert test_module.str_to_datetime("2024-03-01T07:30:15-0500") == expected
    assert test_module.str_to_datetime("2024-03-01T12:30:15.250000Z") == (
        expected.replace(microsecond=250000)
    )
    assert test_module.str_to_datetime("2024-03-01") == datetime(
        2024, 3, 1, tzinfo=timezone.utc
    )
    assert test_module.str_to_datetime(expected) is expected
    with pytest.raises(ValueError):
        test_module.str_to_datetime("yesterday")


def test_epoch():
    assert test_module.epoch_to_str(1640995199) == "2021-12-31T23:59:59Z"
    assert test_module.str_to_epoch("2021-12-31T23:59:59Z") == 1640995199


def test_canonical_json():
    assert test_module.canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


def test_sha256_hex():
    digest = test_module.sha256_hex("abc")
    assert digest == test_module.sha256_hex(b"abc")
    assert digest.startswith("ba7816bf")
