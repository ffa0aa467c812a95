# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/orchestrator/importer.py

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.exceptions import LeaseError
from ..core.logger import Log
from ..core.logging_utils import log_step
from ..vmware.appliance.extractor import OVA
from ..vmware.appliance.import_spec import DEFAULT_SETTLE_S, ImportSpecBuilder
from ..vmware.appliance.lease import DEFAULT_POLL_INTERVAL_S, LeaseMonitor
from ..vmware.appliance.models import (
    ApplianceArchive,
    ApplianceDescriptor,
    DiskTransferResult,
    ImportRequest,
    LeaseSnapshot,
    TransferStatus,
    VmShape,
)
from ..vmware.appliance.transfer import DiskTransfer
from ..vmware.http_transfer_client import HTTPTransferOptions


def _opt(args: argparse.Namespace, name: str, default: Any = None) -> Any:
    v = getattr(args, name, None)
    return default if v is None else v


class ApplianceImporter:
    """
    Single-host, single-appliance import pipeline.

    The four stages (extract, import, await lease, transfer) are public so
    callers can drive them one by one; run() chains them against the
    session client and returns a process exit code.
    """

    def __init__(self, logger: logging.Logger, args: argparse.Namespace, client: Any):
        self.logger = logger
        self.args = args
        self.client = client
        self.cancel: Optional[Callable[[], bool]] = None

        self.options = HTTPTransferOptions(show_progress=not bool(_opt(args, "no_progress", False)))
        self.monitor = LeaseMonitor(
            logger,
            poll_interval_s=float(_opt(args, "lease_poll_interval", DEFAULT_POLL_INTERVAL_S)),
            timeout_s=_opt(args, "lease_timeout"),
        )

        Log.trace(
            self.logger,
            "🧠 Importer init: ova=%r vm=%r host=%r",
            _opt(args, "ova"),
            _opt(args, "vm_name"),
            getattr(client, "host", None),
        )

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def archive(self) -> ApplianceArchive:
        ova = Path(str(_opt(self.args, "ova", ""))).expanduser()
        return ApplianceArchive(directory=ova.parent, filename=ova.name)

    def vm_shape(self) -> VmShape:
        name = _opt(self.args, "vm_name") or Path(self.archive().filename).stem
        return VmShape(
            name=str(name),
            memory_mb=int(_opt(self.args, "memory_mb", 0)),
            num_cpus=int(_opt(self.args, "num_cpus", 0)),
            port_groups=tuple(str(p) for p in (_opt(self.args, "port_groups", []) or [])),
            disk_provisioning=str(_opt(self.args, "disk_provisioning", "") or ""),
            deployment_option=str(_opt(self.args, "deployment_option", "") or ""),
        )

    def build_request(self, descriptor: ApplianceDescriptor) -> ImportRequest:
        """Resolve the placement objects on the host for `descriptor`."""
        dc = self.client.get_datacenter()
        properties: Dict[str, str] = {str(k): str(v) for k, v in (_opt(self.args, "properties", {}) or {}).items()}
        return ImportRequest(
            descriptor=descriptor,
            folder=self.client.get_vm_folder(dc),
            host=self.client.get_host(_opt(self.args, "esx_host")),
            datastore=self.client.get_datastore(_opt(self.args, "datastore")),
            resource_pool=self.client.get_resource_pool(_opt(self.args, "resource_pool")),
            networks=tuple(self.client.get_networks()),
            vm=self.vm_shape(),
            properties=properties,
            locale=str(_opt(self.args, "locale", "US")),
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def extract_appliance(self, directory: Path, filename: str) -> ApplianceDescriptor:
        return OVA.extract_appliance(self.logger, Path(directory), filename, progress=self.options)

    def import_appliance(self, request: ImportRequest) -> Any:
        builder = ImportSpecBuilder(
            self.logger,
            self.client.ovf_manager(),
            settle_s=float(_opt(self.args, "import_settle", DEFAULT_SETTLE_S)),
        )
        return builder.import_appliance(request)

    def await_lease_ready(self, lease: Any) -> LeaseSnapshot:
        return self.monitor.wait(lease, cancel=self.cancel)

    def transfer_disks(
        self,
        url_template: str,
        directory: Path,
        disks: Sequence[str],
        lease: Any,
        request: ImportRequest,
    ) -> List[DiskTransferResult]:
        transfer = DiskTransfer(
            self.logger,
            self.client,
            strict=bool(_opt(self.args, "strict", False)),
            options=self.options,
        )
        return transfer.transfer_disks(url_template, Path(directory), disks, lease, request)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def run(self) -> int:
        archive = self.archive()
        Log.banner(self.logger, f"Import {archive.filename}")

        with log_step(self.logger, "Extracting appliance"):
            descriptor = self.extract_appliance(archive.directory, archive.filename)

        self.client.connect()
        try:
            results = self._import(descriptor)
        finally:
            self.client.disconnect()

        failed = [r for r in results if r.status == TransferStatus.FAILED]
        fallback = [r for r in results if r.status == TransferStatus.FALLBACK]
        self.logger.info(
            "📊 Disks: %d total, %d via lease, %d via datastore copy, %d failed",
            len(results),
            len(results) - len(fallback) - len(failed),
            len(fallback),
            len(failed),
        )
        return 1 if failed else 0

    def _import(self, descriptor: ApplianceDescriptor) -> List[DiskTransferResult]:
        with log_step(self.logger, "Resolving placement"):
            request = self.build_request(descriptor)

        with log_step(self.logger, "Importing vApp"):
            lease = self.import_appliance(request)

        with log_step(self.logger, "Waiting for lease"):
            snap = self.await_lease_ready(lease)

        url = snap.first_url
        if descriptor.disks and not url:
            raise LeaseError(msg="Lease is ready but offers no device URL")
        if len(snap.device_urls) > 1:
            # Every disk goes to the first URL; the others stay unused.
            keys = ", ".join(d.import_key or "?" for d in snap.device_urls)
            Log.warn(self.logger, f"Lease offers {len(snap.device_urls)} device URLs ({keys}); uploading all disks to {url}")

        with log_step(self.logger, "Transferring disks"):
            results = self.transfer_disks(url or "", descriptor.directory, descriptor.disks, lease, request)

        if _opt(self.args, "power_on", False):
            if snap.entity is None:
                Log.warn(self.logger, "Lease reports no imported entity; skipping power-on")
            else:
                with log_step(self.logger, "Powering on"):
                    self.client.power_on(snap.entity)

        return results
