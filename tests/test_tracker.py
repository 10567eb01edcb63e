import asyncio
import itertools
import json

import pytest

from tasktracker.tracker import Tracker, TaskRecord, task_name_of


def _ticks(step=5):
    c = itertools.count(0, step)
    return lambda: float(next(c))


def _ids(prefix="t"):
    c = itertools.count(1)
    return lambda: f"{prefix}-{next(c)}"


async def work():
    await asyncio.sleep(0)
    return 42


def test_start_returns_handle_and_stop_is_idempotent():
    tracker = Tracker(clock=_ticks())
    handle = tracker.start()
    assert isinstance(handle.id, str) and handle.id
    assert tracker.active_count == 1
    assert tracker.stop(handle.id) == 5.0
    assert tracker.stop(handle.id) is None
    assert tracker.active_count == 0


def test_handle_stop_and_unknown_id():
    tracker = Tracker()
    handle = tracker.start()
    elapsed = handle.stop()
    assert elapsed is not None and elapsed >= 0
    assert handle.stop() is None
    assert tracker.stop("never-started") is None


def test_run_success_writes_start_and_stop():
    tracker = Tracker(max_history_size=10, clock=_ticks())
    result = asyncio.run(tracker.run(work))
    assert result == 42
    hist = tracker.history
    assert [r.data.message for r in hist] == ["start", "stop: 5.0ms"]
    start, stop = hist[0].data, hist[1].data
    assert start.phase == "start" and start.duration is None
    assert stop.phase == "stop" and stop.duration == 5.0
    assert start.id == stop.id
    assert tracker.active_count == 0


def test_run_accepts_sync_task():
    tracker = Tracker(max_history_size=10)
    assert asyncio.run(tracker.run(lambda: "done")) == "done"
    assert len(tracker.history) == 2


def test_run_records_error_and_reraises():
    tracker = Tracker(max_history_size=10, clock=_ticks())
    err = ValueError("boom")

    async def explode():
        raise err

    with pytest.raises(ValueError) as exc:
        asyncio.run(tracker.run(explode))
    assert exc.value is err
    msgs = [r.data.message for r in tracker.history]
    assert msgs == ["start", "error: ValueError | boom", "stop: 5.0ms"]
    assert tracker.history[1].data.phase == "error"
    assert tracker.history[1].data.duration is None
    assert tracker.active_count == 0


def test_run_cancellation_releases_timer():
    tracker = Tracker(max_history_size=10)

    async def cancelled():
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(tracker.run(cancelled))
    assert tracker.active_count == 0
    assert [r.data.phase for r in tracker.history] == ["start", "stop"]


def test_history_disabled_still_times_tasks():
    lines = []
    reclaimed = []
    tracker = Tracker(
        max_history_size=20,
        is_history_enabled=False,
        persist_history=reclaimed.append,
        log=lines.append,
    )

    async def main():
        for _ in range(22):
            await tracker.run(work)

    asyncio.run(main())
    assert tracker.history == []
    assert reclaimed == []
    assert sum(1 for line in lines if line.startswith("stop:")) == 22
    assert tracker.active_count == 0


def test_reclaims_history_after_max_size():
    batches = []
    tracker = Tracker(max_history_size=20, persist_history=batches.append)

    async def main():
        for _ in range(22):
            await tracker.run(work)

    asyncio.run(main())
    assert len(tracker.history) == 14
    assert len(batches) == 3
    assert all(len(b) == 10 for b in batches)


def test_signature_includes_tracker_name():
    tracker = Tracker(max_history_size=10, name="Monolith", id_factory=_ids())
    asyncio.run(tracker.run(work))
    data = tracker.history[0].data
    assert data.signature == "Monolith::t-1::work"
    assert data.tracker == "Monolith"
    assert data.task_name == "work"
    assert "Monolith::" in tracker.history[0].data.to_json()


def test_signature_without_tracker_name():
    tracker = Tracker(max_history_size=10, id_factory=_ids())
    asyncio.run(tracker.run(lambda: None))
    data = tracker.history[0].data
    assert data.signature == "t-1::unknown"
    parsed = json.loads(data.to_json())
    assert "tracker" not in parsed
    assert "task_name" not in parsed
    assert parsed["id"] == "t-1"
    assert parsed["message"] == "start"


def test_run_name_option_overrides_callable_name():
    tracker = Tracker(max_history_size=10, name="Svc", id_factory=_ids("x"))
    asyncio.run(tracker.run(work, name="render-page"))
    assert tracker.history[0].data.signature == "Svc::x-1::render-page"


def test_task_name_of():
    assert task_name_of(work) == "work"
    assert task_name_of(lambda: None) is None


def test_persist_entry_sees_every_record():
    entries = []
    tracker = Tracker(max_history_size=10, persist_entry=entries.append)
    asyncio.run(tracker.run(work))
    assert [e.data.phase for e in entries] == ["start", "stop"]
    assert [e.index for e in entries] == [0, 1]
    assert isinstance(entries[0].data, TaskRecord)


def test_log_callback_traces_start_and_stop():
    lines = []
    tracker = Tracker(log=lines.append, clock=_ticks())
    asyncio.run(tracker.run(work))
    assert lines == ['start: "work"', 'stop: "work" 5.00ms']


def test_failing_sink_does_not_break_run():
    lines = []

    def broken(_entry):
        raise RuntimeError("nope")

    tracker = Tracker(max_history_size=10, persist_entry=broken, log=lines.append)
    assert asyncio.run(tracker.run(work)) == 42
    assert len(tracker.history) == 2
    assert "insert listener error: RuntimeError | nope" in lines


def test_concurrent_runs_keep_separate_timers():
    tracker = Tracker(max_history_size=50)

    async def step(n):
        for _ in range(n):
            await asyncio.sleep(0)
        return n

    async def main():
        return await asyncio.gather(
            tracker.run(lambda: step(3), name="a"),
            tracker.run(lambda: step(1), name="b"),
            tracker.run(lambda: step(2), name="c"),
        )

    assert asyncio.run(main()) == [3, 1, 2]
    hist = tracker.history
    assert len(hist) == 6
    ids = {r.data.id for r in hist}
    assert len(ids) == 3
    for task_id in ids:
        phases = [r.data.phase for r in hist if r.data.id == task_id]
        assert phases == ["start", "stop"]
    assert [r.index for r in hist] == list(range(6))
    assert tracker.active_count == 0


def test_track_context_manager_records_block():
    tracker = Tracker(max_history_size=10, clock=_ticks())
    with tracker.track("block") as handle:
        assert tracker.active_count == 1
    assert [r.data.message for r in tracker.history] == ["start", "stop: 5.0ms"]
    assert tracker.history[0].data.id == handle.id
    assert tracker.active_count == 0


def test_track_context_manager_records_error():
    tracker = Tracker(max_history_size=10)
    with pytest.raises(KeyError):
        with tracker.track("lookup"):
            raise KeyError("missing")
    msgs = [r.data.message for r in tracker.history]
    assert msgs[0] == "start"
    assert msgs[1] == "error: KeyError | 'missing'"
    assert msgs[2].startswith("stop: ")


def test_track_handle_stopped_inside_block():
    tracker = Tracker(max_history_size=10)
    with tracker.track("manual") as handle:
        assert handle.stop() is not None
    assert [r.data.phase for r in tracker.history] == ["start"]
    assert tracker.active_count == 0


def test_get_history_transform():
    tracker = Tracker(max_history_size=10, name="T")
    asyncio.run(tracker.run(work))
    assert tracker.get_history(lambda rec, pos: (pos, rec.data.phase)) == [(0, "start"), (1, "stop")]


def test_trackers_are_isolated():
    a = Tracker(name="A")
    b = Tracker(name="B")
    handle = a.start()
    assert b.stop(handle.id) is None
    assert a.active_count == 1 and b.active_count == 0
    assert a.stop(handle.id) is not None
