# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/config/config_loader.py
from __future__ import annotations

import argparse
import glob
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from ..core.exceptions import Fatal, wrap_fatal


def _norm_key(k: Any) -> str:
    return str(k).strip().replace("-", "_")


def _deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in over.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class Config:
    """
    YAML/JSON config files merged into one flat dict of argparse defaults.

    Keys use argparse dest spelling (`vm_name`); dashes are accepted and
    normalized. Later files override earlier ones, nested dicts merge.
    """

    @staticmethod
    def expand_configs(logger: logging.Logger, paths: Sequence[str]) -> List[Path]:
        out: List[Path] = []
        for raw in paths:
            p = os.path.expanduser(os.path.expandvars(str(raw)))
            if glob.has_magic(p):
                matches = sorted(glob.glob(p))
                if not matches:
                    logger.warning("⚠️  Config glob matched nothing: %s", raw)
                out.extend(Path(m) for m in matches)
                continue
            if not os.path.isfile(p):
                raise Fatal(2, f"Config file not found: {raw}")
            out.append(Path(p))
        return out

    @staticmethod
    def load_one(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise wrap_fatal(f"Cannot read config {path}: {e}", e, code=2, path=str(path)) from e

        try:
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise wrap_fatal(f"Invalid config {path}: {e}", e, code=2, path=str(path)) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise Fatal(2, f"Config {path} must contain a mapping at top level")
        logger.debug("Loaded config %s (%d keys)", path, len(data))
        # Top-level keys only; nested mappings such as `properties:` keep their keys.
        return {_norm_key(k): v for k, v in data.items()}

    @staticmethod
    def load_many(logger: logging.Logger, paths: Sequence[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            merged = _deep_merge(merged, Config.load_one(logger, p))
        return merged

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """Install config values as parser defaults so CLI flags still win."""
        dests = {a.dest for a in parser._actions}
        known: Dict[str, Any] = {}
        for k, v in conf.items():
            if k in dests:
                known[k] = v
            else:
                logger.warning("⚠️  Unknown config key ignored: %s", k)
        if known:
            parser.set_defaults(**known)
