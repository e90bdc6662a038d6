"""Tests for the per-key lock manager."""

import threading

import pytest

from shopledger.application.locking import KeyedLockManager
from shopledger.domain.exceptions import ConcurrencyConflictError


class TestKeyedLockManager:

    def test_times_out_while_another_thread_holds_the_key(self):
        locks = KeyedLockManager(timeout=0.05)
        held = threading.Event()
        done = threading.Event()

        def holder():
            with locks.hold(["stock:acme/mug"]):
                held.set()
                done.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(2)
        try:
            with pytest.raises(ConcurrencyConflictError, match="stock:acme/mug"):
                with locks.hold(["stock:acme/mug"]):
                    pass
        finally:
            done.set()
            thread.join()

    def test_other_keys_are_independent(self):
        locks = KeyedLockManager(timeout=0.05)
        with locks.hold(["stock:acme/mug"]):
            with locks.hold(["stock:acme/tshirt"]):
                pass

    def test_locks_released_after_error(self):
        locks = KeyedLockManager(timeout=0.05)
        with pytest.raises(RuntimeError):
            with locks.hold(["sale:1", "stock:acme/mug"]):
                raise RuntimeError("boom")
        with locks.hold(["sale:1", "stock:acme/mug"]):
            pass

    def test_opposite_request_order_does_not_deadlock(self):
        locks = KeyedLockManager(timeout=2.0)
        errors = []

        def worker(keys):
            try:
                for _ in range(200):
                    with locks.hold(keys):
                        pass
            except ConcurrencyConflictError as exc:
                errors.append(exc)

        threads = [
            threading.Thread(target=worker, args=(["stock:a", "stock:b"],)),
            threading.Thread(target=worker, args=(["stock:b", "stock:a"],)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []

    def test_lock_table_shrinks_once_keys_are_released(self):
        locks = KeyedLockManager(timeout=0.05)
        for n in range(100):
            with locks.hold([f"stock:acme/p{n}", "sale:1"]):
                assert locks.active_keys() == 2
        assert locks.active_keys() == 0

    def test_timed_out_waiter_leaves_no_entry_behind(self):
        locks = KeyedLockManager(timeout=0.05)
        with locks.hold(["sale:1"]):
            waiter_errors = []

            def waiter():
                try:
                    with locks.hold(["sale:1"]):
                        pass
                except ConcurrencyConflictError as exc:
                    waiter_errors.append(exc)

            thread = threading.Thread(target=waiter)
            thread.start()
            thread.join()
            assert len(waiter_errors) == 1
            assert locks.active_keys() == 1
        assert locks.active_keys() == 0
