from kiosk.services.scheduler import TimerSlot


def test_rearming_cancels_previous_handle(scheduler):
    fired = []
    slot = TimerSlot(scheduler, "idle")
    for i in range(5):
        slot.arm(10, lambda i=i: fired.append(i))
    assert scheduler.pending() == 1

    scheduler.advance(10)
    assert fired == [4]
    assert not slot.armed


def test_cancel_disarms(scheduler):
    fired = []
    slot = TimerSlot(scheduler)
    slot.arm(1, lambda: fired.append(1))
    slot.cancel()
    scheduler.advance(5)
    assert fired == []
    assert scheduler.pending() == 0


def test_interval_repeats_until_cancelled(scheduler):
    ticks = []
    slot = TimerSlot(scheduler)
    slot.arm_interval(1, lambda: ticks.append(scheduler.now))
    scheduler.advance(3)
    assert ticks == [1, 2, 3]

    slot.cancel()
    scheduler.advance(3)
    assert len(ticks) == 3


def test_interval_callback_may_cancel_its_own_slot(scheduler):
    ticks = []
    slot = TimerSlot(scheduler)

    def tick():
        ticks.append(scheduler.now)
        if len(ticks) == 2:
            slot.cancel()

    slot.arm_interval(1, tick)
    scheduler.advance(10)
    assert ticks == [1, 2]
    assert scheduler.pending() == 0


def test_one_shot_callback_may_rearm(scheduler):
    fired = []
    slot = TimerSlot(scheduler)

    def again():
        fired.append(scheduler.now)
        if len(fired) < 3:
            slot.arm(2, again)

    slot.arm(2, again)
    scheduler.advance(10)
    assert fired == [2, 4, 6]
