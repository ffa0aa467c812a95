# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/vmware/appliance/transfer.py
"""
Disk upload against a ready HttpNfcLease.

Each image is POSTed as a stream VMDK to the lease device URL. Hosts that
refuse the POST ("Cannot POST") get the file copied straight into the VM's
datastore directory instead. The lease is completed once every disk has
been attempted.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, List, Optional, Sequence

import requests
from pyVmomi import vmodl

from ...core.exceptions import LeaseError, TransferError, VMwareError
from ...core.logger import Log
from ..http_transfer_client import HTTPTransferOptions, UploadResponse
from .models import (
    DEVICE_IMAGE_NAME,
    DiskTransferResult,
    FileRole,
    ImportRequest,
    TransferStatus,
)

CANNOT_POST_MARKER = "Cannot POST"


def fallback_remote_name(disk: str) -> str:
    return DEVICE_IMAGE_NAME if FileRole.classify(disk) == FileRole.OPTICAL else disk


class DiskTransfer:
    """
    Upload a list of disk images for one lease.

    `client` is the ESXiClient owning the session: its `http` attribute does
    the uploads, its inventory lookups feed the datastore-copy fallback.
    """

    def __init__(
        self,
        logger: logging.Logger,
        client: Any,
        *,
        strict: bool = False,
        options: Optional[HTTPTransferOptions] = None,
    ):
        self.logger = logger
        self.client = client
        self.strict = bool(strict)
        self.options = options or HTTPTransferOptions()
        self._fallback_dir_ready = False

    def transfer_disks(
        self,
        url_template: str,
        directory: Path,
        disks: Sequence[str],
        lease: Any,
        request: ImportRequest,
    ) -> List[DiskTransferResult]:
        """
        Upload `disks` (in order) from `directory` to the lease URL.

        An unreadable local file or a transport failure stops the run with
        TransferError and leaves the lease open. Fallback failures and
        non-2xx answers are recorded as FAILED results. HttpNfcLeaseComplete
        is always attempted afterwards; with strict=True any FAILED result
        then raises TransferError.
        """
        url = self.client.http.resolve_device_url(url_template)
        results: List[DiskTransferResult] = []
        total = len(disks)

        for idx, disk in enumerate(disks, start=1):
            dlog = Log.bind(self.logger, disk=disk, n=f"{idx}/{total}")
            result = self._transfer_one(dlog, url, Path(directory), disk, request)
            results.append(result)
            self._report_progress(lease, int(idx * 100 / total))

        self._complete(lease)

        failed = [r for r in results if r.status == TransferStatus.FAILED]
        for r in failed:
            Log.fail(self.logger, f"Disk {r.disk} was not transferred: {r.error}")
        if failed and self.strict:
            raise TransferError(
                msg=f"{len(failed)} of {total} disk(s) failed to transfer",
                context={"failed": [r.disk for r in failed]},
            )
        if not failed:
            Log.ok(self.logger, f"All {total} disk(s) transferred")
        return results

    # Per disk

    def _transfer_one(
        self,
        dlog: Any,
        url: str,
        directory: Path,
        disk: str,
        request: ImportRequest,
    ) -> DiskTransferResult:
        path = directory / disk
        try:
            fh = open(path, "rb")
        except OSError as e:
            raise TransferError(msg=f"Cannot open disk image {path}: {e}", cause=e) from e

        with fh:
            size = os.fstat(fh.fileno()).st_size
            dlog.info("⬆️  Uploading %s", disk)
            try:
                resp = self.client.http.post_stream_vmdk(url, fh, size, label=disk, options=self.options)
            except requests.RequestException as e:
                raise TransferError(msg=f"Upload of {disk} failed: {e}", cause=e) from e

        return self._classify_response(dlog, path, disk, resp, request)

    def _classify_response(
        self,
        dlog: Any,
        path: Path,
        disk: str,
        resp: UploadResponse,
        request: ImportRequest,
    ) -> DiskTransferResult:
        if CANNOT_POST_MARKER in resp.body:
            dlog.warning("⚠️  Host refused lease upload; copying to datastore instead")
            return self._fallback(dlog, path, disk, request, resp.status_code)

        if resp.ok:
            dlog.info("✅ Uploaded %s (HTTP %d)", disk, resp.status_code)
            return DiskTransferResult(disk=disk, status=TransferStatus.PRIMARY, http_status=resp.status_code)

        return DiskTransferResult(
            disk=disk,
            status=TransferStatus.FAILED,
            http_status=resp.status_code,
            error=f"HTTP {resp.status_code}: {resp.body[:200]}",
        )

    def _fallback(
        self,
        dlog: Any,
        path: Path,
        disk: str,
        request: ImportRequest,
        http_status: int,
    ) -> DiskTransferResult:
        remote_name = fallback_remote_name(disk)
        remote_dir = f"/{request.vm.name}"
        try:
            dc = self.client.get_datacenter()
            ds = self.client.get_datastore(getattr(request.datastore, "name", None))
            if not self._fallback_dir_ready:
                self.client.make_directory(request.vm.name, ds.name, dc)
                self._fallback_dir_ready = True
            self.client.http.put_file(
                path,
                remote_dir=remote_dir,
                datastore=ds.name,
                dc_path=dc.name,
                remote_name=remote_name,
                options=self.options,
            )
        except (VMwareError, vmodl.MethodFault, requests.RequestException, OSError) as e:
            dlog.error("💥 Datastore copy of %s failed: %s", disk, e)
            return DiskTransferResult(
                disk=disk,
                status=TransferStatus.FAILED,
                http_status=http_status,
                remote_name=remote_name,
                error=str(e),
            )

        dlog.info("✅ Copied %s to %s/%s", disk, remote_dir, remote_name)
        return DiskTransferResult(
            disk=disk,
            status=TransferStatus.FALLBACK,
            http_status=http_status,
            remote_name=remote_name,
        )

    # Lease

    def _report_progress(self, lease: Any, percent: int) -> None:
        try:
            lease.HttpNfcLeaseProgress(percent=max(0, min(100, percent)))
        except (vmodl.MethodFault, OSError) as e:
            self.logger.debug("Lease progress update failed: %s", e)

    def _complete(self, lease: Any) -> None:
        try:
            lease.HttpNfcLeaseComplete()
        except (vmodl.MethodFault, OSError) as e:
            raise LeaseError(msg=f"HttpNfcLeaseComplete failed: {e}", cause=e) from e
        self.logger.info("🔒 Lease completed")
