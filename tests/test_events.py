# tests/test_events.py

from __future__ import annotations

from agent_orchestrator.tasks.events import EventBus, TaskEvent, TaskEventKind
from agent_orchestrator.tasks.task_models import TaskStatus

from fakes import ExplodingListener, RecordingListener, spec


def test_crashing_listener_does_not_break_others_or_the_engine(engine, clock) -> None:
    boom = ExplodingListener()
    rec = RecordingListener()
    engine.subscribe(boom)
    engine.subscribe(rec)

    task = engine.submit(spec())
    clock.advance(10)

    assert engine.require(task.id).status == TaskStatus.COMPLETED
    assert boom.calls == len(rec.events)
    assert rec.kinds(task.id)[-1] == TaskEventKind.COMPLETED


def test_listener_mutations_do_not_leak_into_the_engine(engine, clock) -> None:
    def vandal(event: TaskEvent) -> None:
        event.task.name = "vandalized"
        event.task.progress = 99
        event.task.logs.clear()

    engine.subscribe(vandal)
    task = engine.submit(spec())
    clock.advance(10)

    done = engine.require(task.id)
    assert done.name == "Onboard ACME"
    assert done.progress == 100
    assert done.logs


def test_each_listener_gets_its_own_snapshot(engine) -> None:
    def vandal(event: TaskEvent) -> None:
        event.task.name = "vandalized"
        event.task.description = ""
        event.task.logs.clear()

    bus = EventBus()
    rec = RecordingListener()
    bus.subscribe(vandal)
    bus.subscribe(rec)

    task = engine.submit(spec())
    event = bus.emit(TaskEventKind.CREATED, engine.require(task.id))

    seen = rec.events[0].task
    assert seen is not event.task
    assert seen.name == "Onboard ACME"
    assert seen.status == TaskStatus.PENDING
    assert seen.description == "Onboard ACME description"
    assert event.task.name == "Onboard ACME"
    assert event.task.status == TaskStatus.PENDING


def test_listener_can_cancel_a_task_while_being_notified(engine, clock) -> None:
    rec = RecordingListener()

    def cancel_on_start(event: TaskEvent) -> None:
        if event.kind == TaskEventKind.STARTED:
            engine.cancel(event.task_id)

    engine.subscribe(cancel_on_start)
    engine.subscribe(rec)

    task = engine.submit(spec())
    clock.advance(10)

    assert engine.require(task.id).status == TaskStatus.CANCELLED
    assert rec.progress(task.id) == []


def test_unsubscribe_stops_delivery(engine, clock) -> None:
    rec = RecordingListener()
    engine.subscribe(rec)
    engine.submit(spec("first"))
    seen = len(rec.events)

    assert engine.unsubscribe(rec) is True
    assert engine.unsubscribe(rec) is False

    engine.submit(spec("second"))
    clock.advance(10)
    assert len(rec.events) == seen


def test_event_bus_basics(engine) -> None:
    bus = EventBus()
    rec = RecordingListener()
    bus.subscribe(rec)
    bus.subscribe(rec)
    assert len(bus) == 1

    task = engine.submit(spec())
    event = bus.emit(TaskEventKind.PROGRESS, engine.require(task.id), progress=40)

    assert rec.events == [event]
    assert event.task_id == task.id
    assert event.progress == 40
    assert event.error is None


def test_listener_that_unsubscribes_itself(engine, clock) -> None:
    calls: list[TaskEventKind] = []

    def once(event: TaskEvent) -> None:
        calls.append(event.kind)
        engine.unsubscribe(once)

    engine.subscribe(once)
    engine.submit(spec())
    clock.advance(10)

    assert calls == [TaskEventKind.CREATED]
