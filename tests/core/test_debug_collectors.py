import json

import pandas as pd

from goldenhour.core.debug import (
    JsonDebugWriter,
    JsonlDebugWriter,
    ListDebugCollector,
    NullDebugCollector,
    ScopedDebugCollector,
    build_debug_collector,
    close_collector,
)


def test_list_collector_records_events():
    collector = ListDebugCollector()
    collector.emit("stage1", {"b": 2, "a": 1}, ts="2024-06-21T00:00:00Z", location="london", window="morning_start")
    assert len(collector.events) == 1
    event = collector.events[0]
    assert event["stage"] == "stage1"
    assert event["location"] == "london"
    assert event["window"] == "morning_start"
    # payload should be key-sorted for determinism
    assert list(event["payload"].keys()) == ["a", "b"]


def test_timestamps_and_tuples_are_json_safe():
    collector = ListDebugCollector()
    ts = pd.Timestamp("2024-06-21T20:00:00Z")
    collector.emit("stage", {"when": ts, "labels": ("Rain", "Mist")}, ts=ts)
    event = collector.events[0]
    assert event["ts"] == "2024-06-21T20:00:00+00:00"
    assert event["payload"]["when"] == "2024-06-21T20:00:00+00:00"
    assert event["payload"]["labels"] == ["Rain", "Mist"]


def test_jsonl_writer(tmp_path):
    path = tmp_path / "debug.jsonl"
    writer = JsonlDebugWriter(path)
    writer.emit("stage1", {"z": 1, "y": {"b": 1, "a": 2}}, ts=1)
    writer.emit("stage2", {"b": [2, 1]}, ts=2, location="s", window="evening_end")
    writer.close()

    lines = path.read_text().splitlines()
    assert len(lines) == 2
    events = [json.loads(line) for line in lines]
    assert events[0]["stage"] == "stage1"
    assert list(events[0]["payload"]["y"].keys()) == ["a", "b"]
    assert events[1]["window"] == "evening_end"


def test_json_writer_writes_array_on_close(tmp_path):
    path = tmp_path / "debug.json"
    writer = build_debug_collector(path)
    assert isinstance(writer, JsonDebugWriter)
    writer.emit("a", {"x": 1}, ts=None)
    writer.emit("b", {"y": 2}, ts=None)
    close_collector(writer)
    data = json.loads(path.read_text())
    assert [e["stage"] for e in data] == ["a", "b"]


def test_factory_defaults():
    assert isinstance(build_debug_collector(None), NullDebugCollector)


def test_scoped_collector_fills_context():
    inner = ListDebugCollector()
    scoped = ScopedDebugCollector(inner, location="london")
    scoped.emit("one", {}, ts=None)
    scoped.emit("two", {}, ts=None, location="override", window="morning_end")
    assert inner.events[0]["location"] == "london"
    assert inner.events[1]["location"] == "override"
    assert inner.events[1]["window"] == "morning_end"
    assert inner.stages() == ["one", "two"]


def test_null_collector_noop():
    NullDebugCollector().emit("stage", {"x": 1}, ts=0)
    close_collector(NullDebugCollector())
