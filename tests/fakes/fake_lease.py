# SPDX-License-Identifier: LGPL-3.0-or-later
from types import SimpleNamespace


class FakeLease:
    """
    HttpNfcLease stand-in.

    `states` is replayed one value per read of `.state`; the last value
    sticks. Method calls are recorded in `calls`.
    """

    def __init__(self, states, *, urls=("https://*/nfc/disk-0.vmdk",), entity="vm-42",
                 error_msg=None, complete_exc=None, progress_exc=None):
        self._states = list(states)
        self.state_reads = 0
        self.info = SimpleNamespace(
            deviceUrl=[
                SimpleNamespace(url=u, importKey=f"/appliance/VirtualLsiLogicController0:{i}", disk=True)
                for i, u in enumerate(urls)
            ],
            entity=entity,
        )
        self.error = SimpleNamespace(msg=error_msg, localizedMessage=None) if error_msg else None
        self.calls = []
        self._complete_exc = complete_exc
        self._progress_exc = progress_exc

    @property
    def state(self):
        idx = min(self.state_reads, len(self._states) - 1)
        self.state_reads += 1
        return self._states[idx]

    def HttpNfcLeaseProgress(self, percent):
        self.calls.append(("progress", percent))
        if self._progress_exc is not None:
            raise self._progress_exc

    def HttpNfcLeaseComplete(self):
        self.calls.append(("complete",))
        if self._complete_exc is not None:
            raise self._complete_exc

    def HttpNfcLeaseAbort(self, fault=None):
        self.calls.append(("abort", fault))

    @property
    def completed(self):
        return ("complete",) in self.calls

    @property
    def progress(self):
        return [c[1] for c in self.calls if c[0] == "progress"]
