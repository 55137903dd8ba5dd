"""Tests for candlesignal.data.loader."""

import json

import pytest

from candlesignal.data.loader import BarSource, JsonFileBarSource


def test_loads_plain_list(tmp_path):
    records = [{"time": "2025-01-01T00:00:00Z", "o": 1, "h": 2, "l": 0.5, "c": 1.5}]
    (tmp_path / "candles_5m.json").write_text(json.dumps(records))
    assert JsonFileBarSource(tmp_path).load("5m") == records


def test_loads_wrapped_list(tmp_path):
    (tmp_path / "candles_10m.json").write_text(json.dumps({"candles": [{"t": 1}]}))
    assert JsonFileBarSource(tmp_path).load("10m") == [{"t": 1}]


def test_rejects_non_list(tmp_path):
    (tmp_path / "candles_5m.json").write_text(json.dumps({"bars": []}))
    with pytest.raises(ValueError):
        JsonFileBarSource(tmp_path).load("5m")


def test_missing_file(tmp_path):
    with pytest.raises(OSError):
        JsonFileBarSource(tmp_path).load("5m")


def test_satisfies_protocol(tmp_path):
    source = JsonFileBarSource(tmp_path)
    assert isinstance(source, BarSource)
    assert source.path_for("1m").name == "candles_1m.json"
