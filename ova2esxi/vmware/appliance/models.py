# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/vmware/appliance/models.py
"""
Value types shared by the appliance import pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Remote name used when an optical image is copied through the datastore
# fallback path.
DEVICE_IMAGE_NAME = "_deviceImage-0.iso"


class FileRole(str, Enum):
    """Role of an extracted file, decided from its name."""

    DESCRIPTOR = "descriptor"
    DISK = "disk"
    OPTICAL = "optical"
    OTHER = "other"

    @classmethod
    def classify(cls, name: str) -> "FileRole":
        """
        Case-sensitive substring match, DESCRIPTOR > DISK > OPTICAL.

            >>> FileRole.classify("appliance.ovf")
            <FileRole.DESCRIPTOR: 'descriptor'>
            >>> FileRole.classify("disk1.VMDK")
            <FileRole.OTHER: 'other'>
        """
        if ".ovf" in name:
            return cls.DESCRIPTOR
        if ".vmdk" in name:
            return cls.DISK
        if ".iso" in name:
            return cls.OPTICAL
        return cls.OTHER

    @property
    def is_image(self) -> bool:
        return self in (FileRole.DISK, FileRole.OPTICAL)


@dataclass(frozen=True)
class ApplianceArchive:
    directory: Path
    filename: str

    @property
    def path(self) -> Path:
        return Path(self.directory) / self.filename


@dataclass(frozen=True)
class OvfDescriptor:
    file_name: str
    data: str


@dataclass(frozen=True)
class ApplianceDescriptor:
    """Result of extracting an appliance archive."""

    ovf: OvfDescriptor
    directory: Path
    disks: Tuple[str, ...] = ()

    @property
    def descriptor_path(self) -> Path:
        return Path(self.directory) / self.ovf.file_name


OvaInfo = ApplianceDescriptor


@dataclass(frozen=True)
class VmShape:
    name: str
    memory_mb: int = 0
    num_cpus: int = 0
    port_groups: Tuple[str, ...] = ()
    disk_provisioning: str = ""
    deployment_option: str = ""


@dataclass(frozen=True)
class ImportRequest:
    """
    Everything the host needs to accept an appliance import.

    `folder`, `host`, `datastore`, `resource_pool` and `networks` are live
    inventory objects looked up through the session client.
    """

    descriptor: ApplianceDescriptor
    folder: Any
    host: Any
    datastore: Any
    resource_pool: Any
    networks: Tuple[Any, ...]
    vm: VmShape
    properties: Dict[str, str] = field(default_factory=dict)
    locale: str = "US"


HandleImportVAppParams = ImportRequest


@dataclass(frozen=True)
class NetworkMapping:
    pg_name: str
    network: Any


@dataclass(frozen=True)
class DeviceUrl:
    url: str
    import_key: str = ""


@dataclass(frozen=True)
class LeaseSnapshot:
    lease: Any
    state: str
    device_urls: Tuple[DeviceUrl, ...] = ()
    entity: Any = None

    @property
    def first_url(self) -> Optional[str]:
        return self.device_urls[0].url if self.device_urls else None


class TransferStatus(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class DiskTransferResult:
    disk: str
    status: TransferStatus
    http_status: Optional[int] = None
    remote_name: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != TransferStatus.FAILED
