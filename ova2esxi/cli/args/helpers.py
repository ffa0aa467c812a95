# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/cli/args/helpers.py
from __future__ import annotations

import argparse
import os
from typing import Any, Dict, List, Optional


def _require(v: Any) -> bool:
    """True if v is meaningfully present (empty/whitespace-only strings count as missing)."""
    if v is None:
        return False
    if isinstance(v, str):
        return v.strip() != ""
    return True


def _merged_get(args: argparse.Namespace, conf: Dict[str, Any], key: str) -> Any:
    """Prefer a non-empty CLI value, else config."""
    v = getattr(args, key, None)
    if _require(v):
        return v
    return conf.get(key)


def _merged_secret(args: argparse.Namespace, conf: Dict[str, Any], value_key: str, env_key: str) -> Optional[str]:
    """
    Resolve a secret from (CLI value) or (CLI env var name) or (YAML value) or (YAML env var name).
    Example: (password, password_env)
    """
    direct = _merged_get(args, conf, value_key)
    if _require(direct):
        return str(direct)

    envname = _merged_get(args, conf, env_key)
    if _require(envname):
        return os.environ.get(str(envname), None)

    return None


def _parse_kv_pairs(items: List[str], flag: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise SystemExit(f"{flag} expects KEY=VALUE, got: {item!r}")
        k, v = item.split("=", 1)
        if not k.strip():
            raise SystemExit(f"{flag} has an empty key: {item!r}")
        out[k.strip()] = v
    return out


def _merge_properties(args: argparse.Namespace) -> Dict[str, str]:
    """`properties:` mapping from config with --property KEY=VALUE on top."""
    base = getattr(args, "properties", None) or {}
    if not isinstance(base, dict):
        raise SystemExit("`properties:` must be a mapping of OVF property keys to values")
    merged = {str(k): str(v) for k, v in base.items()}
    merged.update(_parse_kv_pairs(getattr(args, "property_overrides", None) or [], "--property"))
    return merged
