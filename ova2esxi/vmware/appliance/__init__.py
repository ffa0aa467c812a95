# SPDX-License-Identifier: LGPL-3.0-or-later
# ova2esxi/vmware/appliance/__init__.py
"""
Appliance import building blocks: extraction, import spec, lease, transfer.
"""
from .extractor import OVA, extract_appliance
from .import_spec import ImportSpecBuilder, build_network_mappings
from .lease import LeaseMonitor, await_lease_ready
from .models import (
    DEVICE_IMAGE_NAME,
    ApplianceArchive,
    ApplianceDescriptor,
    DeviceUrl,
    DiskTransferResult,
    FileRole,
    ImportRequest,
    LeaseSnapshot,
    NetworkMapping,
    OvaInfo,
    OvfDescriptor,
    TransferStatus,
    VmShape,
)
from .transfer import DiskTransfer

__all__ = [
    "OVA",
    "extract_appliance",
    "ImportSpecBuilder",
    "build_network_mappings",
    "LeaseMonitor",
    "await_lease_ready",
    "DiskTransfer",
    "DEVICE_IMAGE_NAME",
    "ApplianceArchive",
    "ApplianceDescriptor",
    "DeviceUrl",
    "DiskTransferResult",
    "FileRole",
    "ImportRequest",
    "LeaseSnapshot",
    "NetworkMapping",
    "OvaInfo",
    "OvfDescriptor",
    "TransferStatus",
    "VmShape",
]
