# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/vmware/appliance/lease.py
"""
HttpNfcLease readiness polling.

States:
  initializing -> poll again after poll_interval_s
  ready        -> return a LeaseSnapshot
  error        -> LeaseError with the host fault message
  anything else is treated as transient: warned about once, then polled

Polling only reads lease properties; it never calls lease methods.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Tuple

from pyVmomi import vmodl

from ...core.exceptions import LeaseCancelled, LeaseError, LeaseTimeout
from ...core.logger import Log
from .models import DeviceUrl, LeaseSnapshot

CancelFn = Callable[[], bool]

STATE_INITIALIZING = "initializing"
STATE_READY = "ready"
STATE_ERROR = "error"

DEFAULT_POLL_INTERVAL_S = 2.0


def _read(lease: Any, attr: str) -> Any:
    try:
        return getattr(lease, attr)
    except (vmodl.MethodFault, OSError) as e:
        raise LeaseError(msg=f"Cannot read lease {attr}: {e}", cause=e) from e


def lease_error_message(lease: Any) -> Optional[str]:
    err = _read(lease, "error")
    if err is None:
        return None
    return str(getattr(err, "localizedMessage", None) or getattr(err, "msg", None) or err)


def _device_urls(info: Any) -> Tuple[DeviceUrl, ...]:
    return tuple(
        DeviceUrl(url=str(d.url), import_key=str(getattr(d, "importKey", "") or ""))
        for d in getattr(info, "deviceUrl", None) or []
    )


def snapshot(lease: Any, state: str) -> LeaseSnapshot:
    info = _read(lease, "info")
    return LeaseSnapshot(
        lease=lease,
        state=state,
        device_urls=_device_urls(info),
        entity=getattr(info, "entity", None),
    )


class LeaseMonitor:
    def __init__(
        self,
        logger: logging.Logger,
        *,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        timeout_s: Optional[float] = None,
    ):
        if poll_interval_s < 0:
            raise ValueError(f"Invalid poll interval: {poll_interval_s}")
        if timeout_s is not None and timeout_s <= 0:
            raise ValueError(f"Invalid lease timeout: {timeout_s}")
        self.logger = logger
        self.poll_interval_s = float(poll_interval_s)
        self.timeout_s = timeout_s

    def wait(self, lease: Any, *, cancel: Optional[CancelFn] = None) -> LeaseSnapshot:
        """
        Block until the lease is ready.

        Without timeout_s and cancel this polls for as long as the lease keeps
        initializing.
        """
        deadline = (time.monotonic() + self.timeout_s) if self.timeout_s else None
        polls = 0

        while True:
            state = str(_read(lease, "state"))
            polls += 1
            Log.trace(self.logger, "lease poll #%d: %s", polls, state)

            if state == STATE_READY:
                snap = snapshot(lease, state)
                self.logger.info("🔓 Lease ready (%d device URL(s))", len(snap.device_urls))
                return snap

            if state == STATE_ERROR:
                detail = lease_error_message(lease)
                raise LeaseError(
                    msg=f"lease error: {STATE_ERROR}" + (f": {detail}" if detail else ""),
                    context={"polls": polls},
                )

            if state != STATE_INITIALIZING:
                Log.warn_once(
                    self.logger,
                    ("lease-state", state),
                    f"Unknown lease state {state!r}; treating as transient",
                )

            if cancel is not None and cancel():
                raise LeaseCancelled(msg="Lease wait cancelled", context={"state": state, "polls": polls})
            if deadline is not None and time.monotonic() >= deadline:
                raise LeaseTimeout(
                    msg=f"Lease not ready after {self.timeout_s:g}s (state: {state})",
                    context={"polls": polls},
                )

            time.sleep(self.poll_interval_s)


def await_lease_ready(
    logger: logging.Logger,
    lease: Any,
    *,
    timeout_s: Optional[float] = None,
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
    cancel: Optional[CancelFn] = None,
) -> LeaseSnapshot:
    return LeaseMonitor(logger, poll_interval_s=poll_interval_s, timeout_s=timeout_s).wait(lease, cancel=cancel)
