"""Tests for per-card locks."""

import gc
import threading

from card_ledger.locks import CardLocks


class TestCardLocks:
    """Tests for CardLocks."""

    def test_lock_released_after_use(self) -> None:
        locks = CardLocks()
        with locks.hold("card-1"):
            assert len(locks) == 1
        gc.collect()
        assert len(locks) == 0

    def test_reentrant_for_same_thread(self) -> None:
        locks = CardLocks()
        with locks.hold("card-1"):
            with locks.hold("card-1"):
                assert len(locks) == 1

    def test_same_card_serialized(self) -> None:
        locks = CardLocks()
        entered = threading.Event()
        release = threading.Event()
        order: list[str] = []

        def holder() -> None:
            with locks.hold("card-1"):
                order.append("holder")
                entered.set()
                release.wait(5)

        def waiter() -> None:
            entered.wait(5)
            with locks.hold("card-1"):
                order.append("waiter")

        t1 = threading.Thread(target=holder)
        t2 = threading.Thread(target=waiter)
        t1.start()
        t2.start()
        entered.wait(5)
        t2.join(0.2)
        assert t2.is_alive()

        release.set()
        t1.join(5)
        t2.join(5)
        assert order == ["holder", "waiter"]

    def test_different_cards_independent(self) -> None:
        locks = CardLocks()
        with locks.hold("card-1"):
            done = threading.Event()

            def other() -> None:
                with locks.hold("card-2"):
                    done.set()

            t = threading.Thread(target=other)
            t.start()
            assert done.wait(5)
            t.join(5)

    def test_many_cards_do_not_accumulate(self) -> None:
        locks = CardLocks()
        for i in range(100):
            with locks.hold(f"card-{i}"):
                pass
        gc.collect()
        assert len(locks) == 0
