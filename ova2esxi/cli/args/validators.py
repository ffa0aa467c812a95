# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/cli/args/validators.py
from __future__ import annotations

import argparse
import os
from typing import Any, Dict

from .helpers import _merge_properties, _merged_get, _merged_secret, _require


def _validate_connection(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    for key in ("host", "user"):
        if not _require(_merged_get(args, conf, key)):
            raise SystemExit(f"missing required `{key}:` (YAML) or CLI --{key}")

    password = _merged_secret(args, conf, "password", "password_env")
    if not _require(password):
        envname = _merged_get(args, conf, "password_env")
        if _require(envname):
            raise SystemExit(f"password env var {envname} is not set")
        raise SystemExit("missing ESXi password. Set `password:` or `password_env:` (or CLI equivalents).")
    args.password = password

    port = int(_merged_get(args, conf, "port") or 443)
    if not 1 <= port <= 65535:
        raise SystemExit(f"invalid port: {port}")


def _validate_appliance(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    ova = _merged_get(args, conf, "ova")
    if not _require(ova):
        raise SystemExit("missing required `ova:` (YAML) or CLI --ova")
    path = os.path.expanduser(str(ova))
    if not os.path.isfile(path):
        raise SystemExit(f"--ova file not found: {path}")

    for key in ("memory_mb", "num_cpus"):
        if int(getattr(args, key, 0) or 0) < 0:
            raise SystemExit(f"--{key.replace('_', '-')} must be >= 0")

    pgs = getattr(args, "port_groups", None)
    if isinstance(pgs, str):
        args.port_groups = [pgs]
    elif pgs is None:
        args.port_groups = []

    args.properties = _merge_properties(args)


def _validate_timing(args: argparse.Namespace) -> None:
    lt = getattr(args, "lease_timeout", None)
    if lt is not None and float(lt) <= 0:
        raise SystemExit("--lease-timeout must be > 0")
    if float(getattr(args, "lease_poll_interval", 0) or 0) < 0:
        raise SystemExit("--lease-poll-interval must be >= 0")
    if float(getattr(args, "import_settle", 0) or 0) < 0:
        raise SystemExit("--import-settle must be >= 0")
    if float(getattr(args, "upload_timeout", 0) or 0) <= 0:
        raise SystemExit("--upload-timeout must be > 0")


def validate_args(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    """
    Check the merged args/config. Resolves the password and the OVF
    property mapping onto `args` as a side effect.
    """
    _validate_connection(args, conf)
    _validate_appliance(args, conf)
    _validate_timing(args)
