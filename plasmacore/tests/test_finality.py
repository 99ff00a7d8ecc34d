"""
Tests for confirmation based finality.
"""

import pytest

from plasmacore.constants import DEPOSIT_FINALITY, EXIT_FINALITY
from plasmacore.finality import finality_status, pending_percentage
from plasmacore.models import TxStatus


class TestPendingPercentage:
    def test_deposit_one_block_short(self):
        assert pending_percentage(1000, 991, DEPOSIT_FINALITY) == 90

    def test_deposit_at_threshold(self):
        assert pending_percentage(1000, 990, DEPOSIT_FINALITY) == 100

    def test_not_clamped_past_threshold(self):
        assert pending_percentage(1000, 900, DEPOSIT_FINALITY) == 1000

    def test_rounds_to_nearest(self):
        # 100 * 5 / 12 = 41.67
        assert pending_percentage(105, 100, EXIT_FINALITY) == 42
        # 100 * 1 / 12 = 8.33
        assert pending_percentage(101, 100, EXIT_FINALITY) == 8

    def test_rounds_half_up(self):
        # 100 * 1 / 8 = 12.5
        assert pending_percentage(101, 100, 8) == 13

    def test_same_block(self):
        assert pending_percentage(100, 100, EXIT_FINALITY) == 0

    def test_event_ahead_of_current_block(self):
        # Lagging node: the event looks like it is in the future
        assert pending_percentage(100, 101, 8) == -13

    def test_rejects_non_positive_threshold(self):
        with pytest.raises(ValueError):
            pending_percentage(100, 90, 0)


class TestFinalityStatus:
    def test_deposit_boundary(self):
        assert finality_status(1000, 991, DEPOSIT_FINALITY) == TxStatus.PENDING
        assert finality_status(1000, 990, DEPOSIT_FINALITY) == TxStatus.CONFIRMED

    def test_exit_boundary(self):
        assert finality_status(1000, 989, EXIT_FINALITY) == TxStatus.PENDING
        assert finality_status(1000, 988, EXIT_FINALITY) == TxStatus.CONFIRMED

    def test_status_values(self):
        assert TxStatus.PENDING.value == "Pending"
        assert TxStatus.CONFIRMED.value == "Confirmed"
        assert TxStatus.EXITED.value == "Exited"
