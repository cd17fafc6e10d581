"""Tests for the bounded telemetry queue."""

from __future__ import annotations

from datetime import datetime
import threading
from typing import Any
import unittest

from orbital.logging_utils import Tracer
from orbital.telemetry import TelemetryQueue, TelemetryRecord


class TelemetryQueueTests(unittest.TestCase):
    """Validate FIFO eviction, copies and best-effort recording."""

    def test_record_builds_timestamped_entry(self) -> None:
        queue = TelemetryQueue(context_provider=lambda: "/pricing")
        queue.record("button_click", {"id": "cta"})

        [entry] = queue.snapshot()
        self.assertEqual(entry.type, "button_click")
        self.assertEqual(entry.payload, {"id": "cta"})
        self.assertEqual(entry.context, "/pricing")
        self.assertIsInstance(entry.timestamp, datetime)
        self.assertIsNotNone(entry.timestamp.tzinfo)

    def test_explicit_context_wins_over_provider(self) -> None:
        queue = TelemetryQueue(context_provider=lambda: "/default")
        queue.record("t", context="/explicit")
        self.assertEqual(queue.snapshot()[0].context, "/explicit")

    def test_overflow_evicts_oldest(self) -> None:
        queue = TelemetryQueue()
        queue.record("t1", {"n": 0})
        for n in range(1, 51):
            queue.record("t2", {"n": n})

        records = queue.snapshot()
        self.assertEqual(len(records), 50)
        self.assertEqual(len(queue), 50)
        self.assertEqual(records[0].type, "t2")
        self.assertEqual(records[0].payload, {"n": 1})
        self.assertEqual(records[-1].payload, {"n": 50})
        self.assertNotIn("t1", [record.type for record in records])

    def test_length_never_exceeds_custom_capacity(self) -> None:
        queue = TelemetryQueue(capacity=3)
        for n in range(10):
            queue.record("t", {"n": n})
            self.assertLessEqual(len(queue), 3)
        self.assertEqual([r.payload["n"] for r in queue.snapshot()], [7, 8, 9])
        self.assertEqual(queue.capacity, 3)

    def test_invalid_capacity_rejected(self) -> None:
        with self.assertRaises(ValueError):
            TelemetryQueue(capacity=0)

    def test_snapshot_is_independent_copy(self) -> None:
        queue = TelemetryQueue()
        queue.record("a", {"nested": {"x": 1}})
        queue.record("b")

        first = queue.snapshot()
        first.pop()
        first[0].payload["nested"]["x"] = 99

        second = queue.snapshot()
        self.assertEqual([r.type for r in second], ["a", "b"])
        self.assertEqual(second[0].payload, {"nested": {"x": 1}})

    def test_caller_payload_mutation_does_not_leak_in(self) -> None:
        queue = TelemetryQueue()
        payload: dict[str, Any] = {"items": [1]}
        queue.record("t", payload)
        payload["items"].append(2)
        self.assertEqual(queue.snapshot()[0].payload, {"items": [1]})

    def test_malformed_inputs_never_raise(self) -> None:
        queue = TelemetryQueue()
        queue.record(42, "not a mapping")  # type: ignore[arg-type]
        queue.record("none")
        queue.record("lock", {"lock": threading.Lock()})

        records = queue.snapshot()
        self.assertEqual(records[0].type, "42")
        self.assertEqual(records[0].payload, "not a mapping")
        self.assertEqual(records[1].payload, {})
        self.assertIsInstance(records[2].payload["lock"], str)

    def test_non_mapping_payload_is_kept_as_is(self) -> None:
        queue = TelemetryQueue()
        items = [1, {"id": "cta"}]
        queue.record("t", items)
        items.append(3)
        self.assertEqual(queue.snapshot()[0].payload, [1, {"id": "cta"}])

    def test_only_uncopyable_values_fall_back_to_repr(self) -> None:
        queue = TelemetryQueue()
        lock = threading.Lock()
        queue.record("t", {"id": "cta", "nested": {"n": [1, 2]}, "lock": lock})

        payload = queue.snapshot()[0].payload
        self.assertEqual(payload["id"], "cta")
        self.assertEqual(payload["nested"], {"n": [1, 2]})
        self.assertEqual(payload["lock"], repr(lock))

    def test_failing_context_provider_is_swallowed(self) -> None:
        def broken() -> str:
            raise RuntimeError("no location")

        queue = TelemetryQueue(context_provider=broken)
        with self.assertLogs("orbital.telemetry", level="WARNING") as logs:
            queue.record("t")
        self.assertEqual(len(queue), 0)
        self.assertTrue(any("telemetry.record.failed" in line for line in logs.output))

    def test_clear_empties_queue(self) -> None:
        queue = TelemetryQueue()
        queue.record("t")
        queue.clear()
        self.assertEqual(queue.snapshot(), [])

    def test_record_to_dict(self) -> None:
        entry = TelemetryRecord(type="t", payload={"a": 1}, context="/")
        data = entry.to_dict()
        self.assertEqual(data["type"], "t")
        self.assertEqual(data["payload"], {"a": 1})
        self.assertEqual(data["context"], "/")
        self.assertIsInstance(data["timestamp"], str)

    def test_record_traces_when_enabled(self) -> None:
        entries: list[tuple[str, str, Any]] = []
        queue = TelemetryQueue(
            tracer=Tracer(enabled=True, sink=lambda *e: entries.append(e))
        )
        queue.record("modal_open", {"id": "m"})
        self.assertEqual(entries, [("telemetry", "modal_open", {"id": "m"})])


if __name__ == "__main__":
    unittest.main()
