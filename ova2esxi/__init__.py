# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/__init__.py
"""
ova2esxi - OVA appliance import for ESXi / vCenter

Usage as a library:

    from ova2esxi import ApplianceImporter, ESXiClient

    client = ESXiClient(logger, "esxi01.lab.local", "root", password, insecure=True)
    rc = ApplianceImporter(logger, args, client).run()
"""

__version__ = "0.1.0"

from .core.exceptions import (
    ArchiveError,
    Fatal,
    HostRejectedError,
    LeaseCancelled,
    LeaseError,
    LeaseTimeout,
    Ova2EsxiError,
    TransferError,
    VMwareError,
)
from .orchestrator.importer import ApplianceImporter
from .vmware.clients.client import ESXiClient

__all__ = [
    "__version__",
    "ApplianceImporter",
    "ESXiClient",
    "Ova2EsxiError",
    "Fatal",
    "ArchiveError",
    "VMwareError",
    "HostRejectedError",
    "LeaseError",
    "LeaseTimeout",
    "LeaseCancelled",
    "TransferError",
]
