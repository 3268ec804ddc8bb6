"""Tests for ingestion-side validation."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import FROZEN_NOW, make_entry
from logplatform.core.errors import BatchValidationError, EntryValidationError
from logplatform.services.validation import (
    ERR_CONTEXT,
    ERR_LEVEL,
    ERR_REQUIRED,
    ERR_TS_BOUNDS,
    ERR_TS_FORMAT,
    build_batch,
    build_entry,
    check_entry,
    normalize_level,
)


class TestBuildEntry:
    def test_defaults_timestamp_and_generates_id(self):
        entry = build_entry({"level": "info", "message": "started"}, "svc-a", FROZEN_NOW)

        assert entry.timestamp == FROZEN_NOW
        assert entry.created_at == FROZEN_NOW
        assert entry.service == "svc-a"
        assert len(entry.id) == 36

    def test_ids_are_unique(self):
        a = build_entry({"level": "info", "message": "x"}, "svc-a", FROZEN_NOW)
        b = build_entry({"level": "info", "message": "x"}, "svc-a", FROZEN_NOW)
        assert a.id != b.id

    def test_level_is_case_insensitive(self):
        entry = build_entry({"level": "WARN", "message": "disk"}, "svc-a", FROZEN_NOW)
        assert entry.level == "warn"

    def test_keeps_context_and_correlation(self):
        entry = build_entry(
            {"level": "debug", "message": "m", "context": {"user": 7}, "correlation_id": "req-1"},
            "svc-a",
            FROZEN_NOW,
        )
        assert entry.context == {"user": 7}
        assert entry.correlation_id == "req-1"

    def test_service_comes_from_caller_not_payload(self):
        entry = build_entry({"level": "info", "message": "m", "service": "other"}, "svc-a", FROZEN_NOW)
        assert entry.service == "svc-a"

    @pytest.mark.parametrize(
        "payload",
        [{"message": "no level"}, {"level": "info"}, {"level": "info", "message": ""}],
    )
    def test_required_fields(self, payload):
        with pytest.raises(EntryValidationError) as exc:
            build_entry(payload, "svc-a", FROZEN_NOW)
        assert exc.value.message == ERR_REQUIRED

    def test_invalid_level(self):
        with pytest.raises(EntryValidationError) as exc:
            build_entry({"level": "fatal", "message": "m"}, "svc-a", FROZEN_NOW)
        assert "Invalid level" in exc.value.message

    def test_unparsable_timestamp(self):
        with pytest.raises(EntryValidationError) as exc:
            build_entry({"level": "info", "message": "m", "timestamp": "not-a-date"}, "svc-a", FROZEN_NOW)
        assert exc.value.message == ERR_TS_FORMAT

    def test_timestamp_now_is_accepted(self):
        entry = build_entry(
            {"level": "info", "message": "m", "timestamp": "2024-01-20T12:00:00Z"},
            "svc-a",
            FROZEN_NOW,
        )
        assert entry.timestamp == FROZEN_NOW

    def test_timestamp_offset_is_normalized_to_utc(self):
        entry = build_entry(
            {"level": "info", "message": "m", "timestamp": "2024-01-20T13:30:00+02:00"},
            "svc-a",
            FROZEN_NOW,
        )
        assert entry.timestamp == FROZEN_NOW - timedelta(minutes=30)

    @pytest.mark.parametrize(
        "timestamp",
        [
            "2022-12-01T00:00:00Z",  # more than a year back
            "2024-01-20T13:00:01Z",  # more than an hour ahead
            "2099-01-01T00:00:00.000Z",
        ],
    )
    def test_timestamp_out_of_bounds(self, timestamp):
        with pytest.raises(EntryValidationError) as exc:
            build_entry({"level": "info", "message": "m", "timestamp": timestamp}, "svc-a", FROZEN_NOW)
        assert exc.value.message == ERR_TS_BOUNDS

    def test_context_orjson_cannot_encode(self):
        payload = {"level": "info", "message": "m", "context": {"n": 123456789012345678901234567890}}

        with pytest.raises(EntryValidationError) as exc:
            build_entry(payload, "svc-a", FROZEN_NOW)
        assert exc.value.message == ERR_CONTEXT

    def test_edges_of_the_window_are_accepted(self):
        for ts in ("2023-01-20T12:00:00Z", "2024-01-20T13:00:00Z"):
            build_entry({"level": "info", "message": "m", "timestamp": ts}, "svc-a", FROZEN_NOW)


class TestBuildBatch:
    def test_all_valid(self):
        entries = build_batch(
            [{"level": "info", "message": "1"}, {"level": "error", "message": "2"}],
            "svc-a",
            FROZEN_NOW,
        )
        assert [e.message for e in entries] == ["1", "2"]

    def test_reports_every_failing_index(self):
        with pytest.raises(BatchValidationError) as exc:
            build_batch(
                [
                    {"level": "info", "message": "ok"},
                    {"level": "invalid", "message": "bad level"},
                    {"level": "info", "message": "ok"},
                    {"level": "info", "message": "m", "timestamp": "nope"},
                ],
                "svc-a",
                FROZEN_NOW,
            )

        body = exc.value.to_body()
        assert body["created"] == 0
        assert [e["index"] for e in body["errors"]] == [1, 3]
        assert body["errors"][0]["error"] == ERR_LEVEL

    def test_unencodable_context_is_reported_by_index(self):
        with pytest.raises(BatchValidationError) as exc:
            build_batch(
                [
                    {"level": "info", "message": "ok", "context": {"n": 1}},
                    {"level": "info", "message": "big", "context": [2**70]},
                ],
                "svc-a",
                FROZEN_NOW,
            )
        assert exc.value.errors == [{"index": 1, "error": ERR_CONTEXT}]

    def test_non_object_entry(self):
        with pytest.raises(BatchValidationError) as exc:
            build_batch(["just a string"], "svc-a", FROZEN_NOW)
        assert exc.value.errors[0]["index"] == 0


class TestCheckEntry:
    def test_valid(self):
        assert check_entry(make_entry(), FROZEN_NOW) is None

    def test_bad_level(self):
        assert check_entry(make_entry(level="fatal"), FROZEN_NOW) == ERR_LEVEL

    def test_unencodable_context(self):
        assert check_entry(make_entry(context={"n": 2**64}), FROZEN_NOW) == ERR_CONTEXT

    def test_out_of_bounds(self):
        old = make_entry(timestamp=FROZEN_NOW - timedelta(days=400))
        assert check_entry(old, FROZEN_NOW) == ERR_TS_BOUNDS


def test_normalize_level():
    assert normalize_level(" Error ") == "error"
    assert normalize_level("trace") is None
    assert normalize_level(3) is None
