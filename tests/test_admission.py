"""
Unit Tests for Admission Control
Tests per-user and global ceilings and counter consistency
"""

import threading

import pytest

from app.core.exceptions import AdmissionDeferred
from app.core.helpers.admission import AdmissionController


@pytest.mark.unit
class TestAdmissionController:
    """Test slot accounting"""

    def test_per_user_ceiling(self):
        """Test a user cannot exceed their concurrent slots"""
        controller = AdmissionController(max_per_user=2, max_global=10, user_retry_delay=2.0)
        controller.acquire(1)
        controller.acquire(1)

        with pytest.raises(AdmissionDeferred) as exc_info:
            controller.acquire(1)

        assert exc_info.value.scope == "user"
        assert exc_info.value.retry_after == 2.0
        assert controller.active_for(1) == 2

    def test_other_users_unaffected(self):
        """Test one busy user does not block another"""
        controller = AdmissionController(max_per_user=1, max_global=10)
        controller.acquire(1)

        assert controller.try_acquire(2) is True
        assert controller.active_global == 2

    def test_global_ceiling(self):
        """Test the process-wide ceiling applies across users"""
        controller = AdmissionController(max_per_user=5, max_global=2, global_retry_delay=3.0)
        controller.acquire(1)
        controller.acquire(2)

        with pytest.raises(AdmissionDeferred) as exc_info:
            controller.acquire(3)

        assert exc_info.value.scope == "global"
        assert exc_info.value.retry_after == 3.0
        assert controller.active_for(3) == 0

    def test_release_frees_slot(self):
        """Test a released slot can be taken again"""
        controller = AdmissionController(max_per_user=1, max_global=1)
        controller.acquire(1)
        controller.release(1)

        assert controller.try_acquire(1) is True
        assert controller.snapshot()["active_per_user"] == {1: 1}

    def test_release_without_slot_ignored(self):
        """Test an unmatched release never drives counters negative"""
        controller = AdmissionController(max_per_user=1, max_global=1)
        controller.release(1)

        assert controller.active_global == 0
        assert controller.active_for(1) == 0

    def test_defaults_from_settings(self):
        """Test default ceilings and delays"""
        controller = AdmissionController()

        assert controller.max_per_user == 3
        assert controller.max_global == 10
        assert controller.user_retry_delay == 2.0
        assert controller.global_retry_delay == 3.0

    def test_counters_consistent_under_threads(self):
        """Test concurrent acquire and release leave counters at zero"""
        controller = AdmissionController(max_per_user=50, max_global=200)
        granted = []

        def worker(user_id):
            for _ in range(200):
                if controller.try_acquire(user_id):
                    granted.append(user_id)
                    assert controller.active_for(user_id) <= 50
                    controller.release(user_id)

        threads = [threading.Thread(target=worker, args=(uid % 4,)) for uid in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert granted
        assert controller.active_global == 0
        assert controller.snapshot()["active_per_user"] == {}
