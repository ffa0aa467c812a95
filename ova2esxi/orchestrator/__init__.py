# SPDX-License-Identifier: LGPL-3.0-or-later
# ova2esxi/orchestrator/__init__.py
from .importer import ApplianceImporter

__all__ = ["ApplianceImporter"]
