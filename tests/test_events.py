"""Tests for synchronous topic dispatch on the event bus."""

from __future__ import annotations

from typing import Any
import unittest

from orbital.events import EventBus, HandlerFailure
from orbital.events.domain import CORE_ERROR
from orbital.exceptions import BootstrapError, FatalError
from orbital.logging_utils import Tracer


class EventBusDispatchTests(unittest.TestCase):
    """Validate ordering, removal and snapshot iteration."""

    def test_handlers_run_in_registration_order_with_data(self) -> None:
        bus = EventBus()
        calls: list[tuple[str, Any]] = []
        bus.register("x", lambda data: calls.append(("h1", data)))
        bus.register("x", lambda data: calls.append(("h2", data)))

        bus.publish("x", 5)

        self.assertEqual(calls, [("h1", 5), ("h2", 5)])

    def test_each_handler_invoked_exactly_once_per_publish(self) -> None:
        bus = EventBus()
        counts = {"a": 0, "b": 0}

        def handler_a(_data: Any) -> None:
            counts["a"] += 1

        def handler_b(_data: Any) -> None:
            counts["b"] += 1

        bus.register("topic", handler_a)
        bus.register("topic", handler_b)
        bus.publish("topic", None)
        bus.publish("topic", None)

        self.assertEqual(counts, {"a": 2, "b": 2})

    def test_publish_without_data_passes_none(self) -> None:
        bus = EventBus()
        received: list[Any] = []
        bus.register("ping", received.append)
        bus.publish("ping")
        self.assertEqual(received, [None])

    def test_publish_unknown_topic_is_noop(self) -> None:
        bus = EventBus()
        bus.publish("nobody-listens", {"a": 1})
        self.assertEqual(bus.topics(), [])

    def test_duplicate_registrations_are_all_invoked(self) -> None:
        bus = EventBus()
        received: list[int] = []
        bus.register("dup", received.append)
        bus.register("dup", received.append)
        bus.publish("dup", 1)
        self.assertEqual(received, [1, 1])

    def test_unregister_removes_every_copy_and_keeps_others(self) -> None:
        bus = EventBus()
        removed: list[int] = []
        kept: list[int] = []
        bus.register("x", removed.append)
        bus.register("x", kept.append)
        bus.register("x", removed.append)

        bus.unregister("x", removed.append)
        bus.publish("x", 7)

        self.assertEqual(removed, [])
        self.assertEqual(kept, [7])
        self.assertEqual(len(bus.handlers("x")), 1)

    def test_unregister_unknown_topic_or_handler_is_noop(self) -> None:
        bus = EventBus()
        bus.unregister("missing", print)
        bus.register("x", len)
        bus.unregister("x", print)
        self.assertEqual(bus.handlers("x"), (len,))

    def test_unregister_last_handler_drops_topic(self) -> None:
        bus = EventBus()
        bus.register("x", len)
        bus.unregister("x", len)
        self.assertNotIn("x", bus.topics())

    def test_handler_unregistering_itself_does_not_skip_sibling(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def first(_data: Any) -> None:
            calls.append("first")
            bus.unregister("x", first)

        def second(_data: Any) -> None:
            calls.append("second")

        bus.register("x", first)
        bus.register("x", second)

        bus.publish("x", None)
        self.assertEqual(calls, ["first", "second"])

        calls.clear()
        bus.publish("x", None)
        self.assertEqual(calls, ["second"])

    def test_handler_registered_during_dispatch_runs_from_next_publish(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def late(_data: Any) -> None:
            calls.append("late")

        def registrar(_data: Any) -> None:
            calls.append("registrar")
            bus.register("x", late)

        bus.register("x", registrar)
        bus.publish("x", None)
        self.assertEqual(calls, ["registrar"])

        calls.clear()
        bus.unregister("x", registrar)
        bus.publish("x", None)
        self.assertEqual(calls, ["late"])

    def test_reentrant_publish_completes_inner_dispatch_first(self) -> None:
        bus = EventBus()
        calls: list[str] = []
        bus.register("outer", lambda _d: (calls.append("outer-1"), bus.publish("inner")))
        bus.register("outer", lambda _d: calls.append("outer-2"))
        bus.register("inner", lambda _d: calls.append("inner"))

        bus.publish("outer")

        self.assertEqual(calls, ["outer-1", "inner", "outer-2"])

    def test_clear_single_topic_and_all(self) -> None:
        bus = EventBus()
        bus.register("a", len)
        bus.register("b", len)
        bus.clear("a")
        self.assertEqual(bus.topics(), ["b"])
        bus.clear()
        self.assertEqual(bus.topics(), [])

    def test_clear_empty_topic_name_only_clears_that_topic(self) -> None:
        bus = EventBus()
        bus.register("", len)
        bus.register("x", len)
        bus.clear("")
        self.assertEqual(bus.topics(), ["x"])


class EventBusIsolationTests(unittest.TestCase):
    """Validate failure isolation and the error channel."""

    def test_failing_handler_does_not_stop_siblings(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def broken(_data: Any) -> None:
            raise ValueError("boom")

        bus.register("x", broken)
        bus.register("x", lambda _d: calls.append("after"))

        with self.assertLogs("orbital.events.bus", level="ERROR") as logs:
            bus.publish("x", None)

        self.assertEqual(calls, ["after"])
        self.assertTrue(any("events.handler.failed" in line for line in logs.output))

    def test_failure_is_reported_on_error_topic(self) -> None:
        bus = EventBus()
        failures: list[HandlerFailure] = []
        bus.register(CORE_ERROR, failures.append)

        def broken(_data: Any) -> None:
            raise KeyError("missing")

        bus.register("x", broken)
        with self.assertLogs("orbital.events.bus", level="ERROR"):
            bus.publish("x", None)

        self.assertEqual(len(failures), 1)
        failure = failures[0]
        self.assertEqual(failure.source, "event")
        self.assertEqual(failure.subject, "x")
        self.assertEqual(failure.error_type, "KeyError")
        self.assertIn("broken", failure.handler)

    def test_failing_error_handler_is_only_logged(self) -> None:
        bus = EventBus()
        error_calls: list[HandlerFailure] = []

        def broken_error_handler(failure: HandlerFailure) -> None:
            error_calls.append(failure)
            raise RuntimeError("error handler broke")

        bus.register(CORE_ERROR, broken_error_handler)
        bus.register("x", lambda _d: 1 / 0)

        with self.assertLogs("orbital.events.bus", level="ERROR") as logs:
            bus.publish("x", None)

        self.assertEqual(len(error_calls), 1)
        self.assertEqual(
            sum("events.handler.failed" in line for line in logs.output), 2
        )

    def test_fatal_error_propagates(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def fatal(_data: Any) -> None:
            raise BootstrapError("context missing")

        bus.register("x", fatal)
        bus.register("x", lambda _d: calls.append("never"))

        with self.assertRaises(FatalError):
            bus.publish("x", None)
        self.assertEqual(calls, [])


class EventBusTraceTests(unittest.TestCase):
    """Validate diagnostic tracing on publish."""

    def test_publish_traces_when_enabled(self) -> None:
        entries: list[tuple[str, str, Any]] = []
        tracer = Tracer(enabled=True, sink=lambda *entry: entries.append(entry))
        bus = EventBus(tracer)

        bus.publish("unknown", {"a": 1})

        self.assertEqual(entries, [("event", "unknown", {"a": 1})])

    def test_publish_does_not_trace_when_disabled(self) -> None:
        entries: list[tuple[str, str, Any]] = []
        tracer = Tracer(enabled=False, sink=lambda *entry: entries.append(entry))
        bus = EventBus(tracer)
        bus.publish("x", 1)
        tracer.enabled = True
        bus.publish("y", 2)
        self.assertEqual(entries, [("event", "y", 2)])


if __name__ == "__main__":
    unittest.main()
