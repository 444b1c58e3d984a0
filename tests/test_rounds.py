import pytest

from bitwheel.overlay.rounds import EndReason, RoundController, RoundPhase


@pytest.fixture
def spinning():
    return [False]


@pytest.fixture
def results():
    return []


@pytest.fixture
def controller(scheduler, spinning, results):
    return RoundController(
        scheduler,
        duration_sec=120,
        is_spinning=lambda: spinning[0],
        on_result=results.append,
    )


def test_timeout_after_exactly_120_seconds(controller, scheduler, results):
    controller.start()
    assert controller.phase == RoundPhase.ACTIVE
    scheduler.advance(119)
    assert controller.active
    assert controller.remaining == 1
    assert results == []
    scheduler.advance(1)
    assert controller.phase == RoundPhase.INACTIVE
    assert results == [EndReason.TIMEOUT]


def test_timeout_deferred_while_spinning(controller, scheduler, spinning, results):
    controller.start()
    spinning[0] = True
    scheduler.advance(120)
    assert controller.phase == RoundPhase.ENDING_DEFERRED
    assert controller.pending_end == EndReason.TIMEOUT
    assert not controller.active
    assert results == []

    spinning[0] = False
    assert controller.settle(landed_drop=False) == EndReason.TIMEOUT
    assert controller.phase == RoundPhase.INACTIVE
    assert results == [EndReason.TIMEOUT]


def test_drop_beats_deferred_timeout(controller, scheduler, spinning, results):
    controller.start()
    spinning[0] = True
    scheduler.advance(120)
    spinning[0] = False
    assert controller.settle(landed_drop=True) == EndReason.DROP
    assert controller.pending_end is None
    assert results == [EndReason.DROP]


def test_keep_without_pending_continues_round(controller, results):
    controller.start()
    assert controller.settle(landed_drop=False) is None
    assert controller.active
    assert results == []


def test_drop_ends_round_and_stops_countdown(controller, scheduler, results):
    controller.start()
    scheduler.advance(10)
    controller.settle(landed_drop=True)
    scheduler.advance(200)
    assert results == [EndReason.DROP]
    assert scheduler.pending() == 0


def test_result_shown_at_most_once_per_round(controller, results):
    controller.start()
    controller.end(EndReason.DROP)
    controller.end(EndReason.TIMEOUT)
    controller.settle(landed_drop=True)
    assert results == [EndReason.DROP]
    controller.start()
    controller.end(EndReason.TIMEOUT)
    assert results == [EndReason.DROP, EndReason.TIMEOUT]


def test_restart_cancels_previous_countdown(controller, scheduler, results):
    controller.start()
    scheduler.advance(60)
    controller.start()
    scheduler.advance(119)
    assert controller.active
    assert controller.remaining == 1
    scheduler.advance(1)
    assert results == [EndReason.TIMEOUT]


def test_on_start_hook_and_timer_text(scheduler):
    calls = []
    controller = RoundController(scheduler, duration_sec=120, on_start=lambda: calls.append("start"))
    assert controller.timer_text() == ""
    controller.start()
    assert calls == ["start"]
    assert controller.timer_text() == "2:00"
    assert not controller.danger
    scheduler.advance(91)
    assert controller.timer_text() == "0:29"
    assert controller.danger
