"""Tests for the remote file admission filter."""

from datetime import datetime, timedelta, timezone

import pytest

from ordersync.core.constants import AdmissionReason
from ordersync.ingestion.admission import AdmissionPolicy, RemoteFileCandidate, admit
from tests.conftest import CUTOFF

AFTER_CUTOFF = CUTOFF + timedelta(days=1)


def _candidate(**overrides):
    values = {"name": "orders.txt", "size": 120, "modified_at": AFTER_CUTOFF}
    values.update(overrides)
    return RemoteFileCandidate(**values)


class TestAdmissionRules:
    """Each rule in isolation."""

    def test_accepted(self, policy):
        decision = admit(_candidate(), policy)

        assert decision.accepted
        assert decision.reason == AdmissionReason.ACCEPTED

    def test_not_regular_file(self, policy):
        assert admit(_candidate(is_regular_file=False), policy).reason == AdmissionReason.NOT_REGULAR_FILE

    def test_zero_byte(self, policy):
        assert admit(_candidate(size=0), policy).reason == AdmissionReason.ZERO_BYTE_PROTECTED

    def test_too_small(self, policy):
        assert admit(_candidate(size=9), policy).reason == AdmissionReason.TOO_SMALL
        assert admit(_candidate(size=10), policy).accepted

    def test_undated(self, policy):
        assert admit(_candidate(modified_at=None), policy).reason == AdmissionReason.UNDATED_REJECT

    def test_at_cutoff_rejected(self, policy):
        assert admit(_candidate(modified_at=CUTOFF), policy).reason == AdmissionReason.BEFORE_CUTOFF

    def test_just_after_cutoff_accepted(self, policy):
        assert admit(_candidate(modified_at=CUTOFF + timedelta(seconds=1)), policy).accepted

    def test_naive_time_treated_as_utc(self, policy):
        naive = datetime(2025, 6, 19, 16, 59)

        assert admit(_candidate(modified_at=naive), policy).reason == AdmissionReason.BEFORE_CUTOFF

    def test_other_timezone_compared_in_utc(self, policy):
        # 18:30 at UTC+2 is 16:30 UTC
        plus_two = timezone(timedelta(hours=2))
        modified = datetime(2025, 6, 19, 18, 30, tzinfo=plus_two)

        assert admit(_candidate(modified_at=modified), policy).reason == AdmissionReason.BEFORE_CUTOFF

    def test_already_processed(self, policy):
        decision = admit(_candidate(), policy, processed={"orders.txt"})

        assert decision.reason == AdmissionReason.ALREADY_PROCESSED

    def test_processed_ignored_when_skip_disabled(self):
        policy = AdmissionPolicy(cutoff=CUTOFF, skip_processed=False)

        assert admit(_candidate(), policy, processed={"orders.txt"}).accepted


class TestAdmissionOrder:
    """The first matching rule decides."""

    @pytest.mark.parametrize(
        ("overrides", "expected"),
        [
            ({"is_regular_file": False, "size": 0}, AdmissionReason.NOT_REGULAR_FILE),
            ({"size": 0, "modified_at": CUTOFF}, AdmissionReason.ZERO_BYTE_PROTECTED),
            ({"size": 3, "modified_at": None}, AdmissionReason.TOO_SMALL),
            ({"modified_at": CUTOFF}, AdmissionReason.BEFORE_CUTOFF),
        ],
    )
    def test_precedence(self, policy, overrides, expected):
        assert admit(_candidate(**overrides), policy, processed={"orders.txt"}).reason == expected


class TestAdmissionPolicy:
    def test_from_settings(self, test_settings):
        policy = AdmissionPolicy.from_settings(test_settings)

        assert policy.cutoff == CUTOFF
        assert policy.min_size_bytes == 10
        assert policy.skip_processed is True

    def test_remote_path_defaults_to_name(self):
        assert _candidate().remote_path == "orders.txt"
        assert _candidate(path="/in/orders.txt").remote_path == "/in/orders.txt"
