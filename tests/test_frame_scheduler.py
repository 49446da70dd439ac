import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from frame_scheduler import FrameScheduler


def test_first_delta_is_zero_then_elapsed():
    sched = FrameScheduler(lambda dt: None)
    assert sched.next_delta(10.0) == 0.0
    assert sched.next_delta(10.25) == 0.25
    assert sched.next_delta(10.5) == 0.25


def test_tick_feeds_clock_delta_to_callback():
    times = iter([1.0, 1.016, 1.048])
    seen = []
    sched = FrameScheduler(seen.append, clock=lambda: next(times))
    sched.tick()
    sched.tick()
    sched.tick()
    assert seen[0] == 0.0
    assert abs(seen[1] - 0.016) < 1e-12
    assert abs(seen[2] - 0.032) < 1e-12
    assert not sched.running
