# SPDX-License-Identifier: LGPL-3.0-or-later
# ova2esxi/vmware/clients/__init__.py
from .client import ESXiClient

__all__ = ["ESXiClient"]
