import os
import random
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from load_barrier import AssetLoadBarrier, BarrierState


def _counting_barrier():
    barrier = AssetLoadBarrier()
    fired = []
    barrier.on_settled(lambda: fired.append((barrier.completed, barrier.expected)))
    return barrier, fired


def test_six_assets_settle_once_regardless_of_order():
    for seed in range(20):
        rng = random.Random(seed)
        barrier, fired = _counting_barrier()
        for _ in range(6):
            barrier.register()

        outcomes = [True] * 5 + [False]
        rng.shuffle(outcomes)
        for ok in outcomes:
            assert not fired, "settled before the last load resolved"
            barrier.complete(ok)
        assert fired == [(6, 6)]
        assert barrier.state is BarrierState.SETTLED
        assert barrier.failed == 1


def test_late_and_duplicate_completions_do_not_refire():
    barrier, fired = _counting_barrier()
    barrier.register()
    barrier.register()
    barrier.complete(True)
    barrier.complete(False)
    barrier.complete(True)
    barrier.complete(True)
    assert len(fired) == 1
    assert barrier.completed == 2


def test_zero_registrations_never_settle():
    barrier, fired = _counting_barrier()
    barrier.complete(True)
    assert not fired
    assert not barrier.settled
    assert barrier.completed == 0


def test_completion_never_exceeds_expected_while_pending():
    barrier, fired = _counting_barrier()
    barrier.register()
    barrier.complete(True)
    assert fired == [(1, 1)]

    other, other_fired = _counting_barrier()
    other.register()
    other.register()
    other.complete(True)
    assert other.completed <= other.expected
    assert not other_fired


def test_register_after_settlement_is_ignored():
    barrier, fired = _counting_barrier()
    barrier.register()
    barrier.complete(True)
    barrier.register()
    assert barrier.expected == 1
    assert len(fired) == 1


def test_listener_added_after_settlement_runs_once():
    barrier = AssetLoadBarrier()
    barrier.register()
    barrier.complete(False)
    calls = []
    barrier.on_settled(lambda: calls.append(1))
    assert calls == [1]


def test_progress_tracks_fraction():
    barrier = AssetLoadBarrier()
    assert barrier.progress == 0.0
    for _ in range(4):
        barrier.register()
    barrier.complete(True)
    assert barrier.progress == 0.25
