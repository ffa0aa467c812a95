# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

from unittest.mock import patch

import pytest

from fakes.fake_lease import FakeLease
from fakes.fake_logger import FakeLogger
from ova2esxi.core.exceptions import LeaseCancelled, LeaseError, LeaseTimeout
from ova2esxi.vmware.appliance.lease import LeaseMonitor, await_lease_ready


@pytest.fixture
def no_sleep():
    with patch("ova2esxi.vmware.appliance.lease.time.sleep") as sleep:
        yield sleep


@pytest.mark.unit
class TestLeaseMonitor:
    def test_ready_after_initializing(self, no_sleep):
        lease = FakeLease(["initializing", "initializing", "ready"], urls=("https://*/nfc/a", "https://*/nfc/b"))

        snap = await_lease_ready(FakeLogger(), lease, poll_interval_s=2.0)

        assert snap.state == "ready"
        assert [d.url for d in snap.device_urls] == ["https://*/nfc/a", "https://*/nfc/b"]
        assert snap.first_url == "https://*/nfc/a"
        assert [d.import_key for d in snap.device_urls] == ["/appliance/VirtualLsiLogicController0:0", "/appliance/VirtualLsiLogicController0:1"]
        assert snap.entity == "vm-42"
        assert lease.state_reads == 3
        assert no_sleep.call_count == 2
        no_sleep.assert_called_with(2.0)

    def test_ready_immediately(self, no_sleep):
        snap = LeaseMonitor(FakeLogger()).wait(FakeLease(["ready"]))
        assert snap.state == "ready"
        no_sleep.assert_not_called()

    def test_polling_never_calls_lease_methods(self, no_sleep):
        lease = FakeLease(["initializing", "ready"])
        LeaseMonitor(FakeLogger()).wait(lease)
        assert lease.calls == []

    def test_error_state(self, no_sleep):
        lease = FakeLease(["initializing", "error"], error_msg="Invalid configuration for device '0'.")

        with pytest.raises(LeaseError) as ei:
            LeaseMonitor(FakeLogger()).wait(lease)

        assert str(ei.value) == "lease error: error: Invalid configuration for device '0'."
        assert not isinstance(ei.value, (LeaseTimeout, LeaseCancelled))

    def test_error_without_detail(self, no_sleep):
        with pytest.raises(LeaseError, match="^lease error: error$"):
            LeaseMonitor(FakeLogger()).wait(FakeLease(["error"]))

    def test_unknown_state_warned_once(self, no_sleep):
        logger = FakeLogger()
        lease = FakeLease(["paused-for-test", "paused-for-test", "paused-for-test", "ready"])

        LeaseMonitor(logger).wait(lease)

        warnings = [m for m in logger.messages("warning") if "paused-for-test" in m]
        assert len(warnings) == 1
        assert no_sleep.call_count == 3

    def test_timeout(self, no_sleep):
        ticks = [0.0, 1.0, 2.0]
        with patch("ova2esxi.vmware.appliance.lease.time.monotonic", side_effect=lambda: ticks.pop(0) if ticks else 11.0):
            with pytest.raises(LeaseTimeout) as ei:
                LeaseMonitor(FakeLogger(), timeout_s=10).wait(FakeLease(["initializing"]))
        assert "initializing" in str(ei.value)
        assert ei.value.context["polls"] == 3

    def test_cancel(self, no_sleep):
        calls = []

        def cancel():
            calls.append(1)
            return len(calls) >= 2

        with pytest.raises(LeaseCancelled):
            LeaseMonitor(FakeLogger()).wait(FakeLease(["initializing"]), cancel=cancel)
        assert no_sleep.call_count == 1

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            LeaseMonitor(FakeLogger(), poll_interval_s=-1)
        with pytest.raises(ValueError):
            LeaseMonitor(FakeLogger(), timeout_s=0)

    def test_unreadable_lease(self, no_sleep):
        class Broken:
            @property
            def state(self):
                raise OSError("connection reset")

        with pytest.raises(LeaseError, match="Cannot read lease state"):
            LeaseMonitor(FakeLogger()).wait(Broken())
