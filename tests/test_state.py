from engine.state import LogEntry, LogLevel, RunState, RunStatus, RunSummary


def test_log_ring_drops_oldest_entries():
    state = RunState()
    for i in range(150):
        state.add_log(LogEntry(level=LogLevel.INFO, message=f"entry {i}"))

    logs = state.logs
    assert len(logs) == 100
    assert logs[0].message == "entry 50"
    assert logs[-1].message == "entry 149"


def test_summary_finish_is_stamped_once():
    summary = RunSummary(total_actions=5, start_time=1_000)
    summary = summary.record(True, at=1_200).record(False, at=1_500)

    finished = summary.finish(at=2_000)
    again = finished.finish(at=9_000)

    assert finished.end_time == 2_000
    assert finished.total_duration_ms == 1_000
    assert finished.skipped_actions == 3
    assert again is finished


def test_summary_record_counts():
    summary = RunSummary(total_actions=2, start_time=0).record(True, at=10).record(False, at=25)
    assert summary.completed_actions == 1
    assert summary.failed_actions == 1
    assert summary.total_duration_ms == 25
    assert summary.remaining == 0


def test_record_after_finish_moves_action_out_of_skipped():
    stopped = RunSummary(total_actions=3, start_time=0).finish(at=100)
    assert stopped.skipped_actions == 3

    late = stopped.record(True, at=400)

    assert late.completed_actions == 1
    assert late.skipped_actions == 2
    assert late.end_time == 100
    assert late.total_duration_ms == 100


def test_snapshots_are_detached_from_later_changes():
    state = RunState()
    state.set_status(RunStatus.EXECUTING)
    before = state.snapshot()

    state.set_cursor(3)
    state.add_log(LogEntry(level=LogLevel.DEBUG, message="later"))

    assert before.cursor == -1
    assert before.logs == ()
    assert state.snapshot().cursor == 3


def test_subscribers_receive_snapshots_and_can_unsubscribe():
    state = RunState()
    seen = []
    unsubscribe = state.subscribe(lambda snap: seen.append(snap.status))

    state.set_status(RunStatus.LOADING)
    unsubscribe()
    state.set_status(RunStatus.IDLE)

    assert seen == [RunStatus.LOADING]


def test_failing_subscriber_does_not_break_updates(caplog):
    state = RunState()

    def broken(_snap):
        raise RuntimeError("boom")

    state.subscribe(broken)
    state.set_cursor(2)

    assert state.cursor == 2
    assert "listener" in caplog.text


def test_log_level_maps_to_python_logging():
    import logging

    assert LogLevel.SUCCESS.logging_level == logging.INFO
    assert LogLevel.ERROR.logging_level == logging.ERROR
