# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, Optional, Sequence, Tuple

from ...config.config_loader import Config
from ...core.logger import Log, c
from ...core.utils import U
from .builder import HelpFormatter, _build_epilog
from .groups import (
    _add_appliance_knobs,
    _add_connection_knobs,
    _add_global_config_logging,
    _add_lease_transfer_knobs,
    _add_placement_knobs,
)
from .validators import validate_args


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ova2esxi",
        description=c("ova2esxi: import OVA appliances into ESXi/vCenter", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )

    _add_global_config_logging(p)
    _add_connection_knobs(p)
    _add_appliance_knobs(p)
    _add_placement_knobs(p)
    _add_lease_transfer_knobs(p)

    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    pre.add_argument("--dump-args", action="store_true")
    return pre


def _load_merged_config(logger: Any, cfgs: Sequence[str]) -> Dict[str, Any]:
    if not cfgs:
        return {}
    expanded = Config.expand_configs(logger, list(cfgs))
    return Config.load_many(logger, expanded)


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Phase 0: parse only the flags needed to locate config and set up logging
    Phase 1: load and merge config files
    Phase 2: apply config as parser defaults
    Phase 3: full parse (CLI overrides config)
    Phase 4: validate merged args + config
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    parser = build_parser()

    pre = _build_preparser()
    args0, _rest = pre.parse_known_args(argv)

    if logger is None:
        logger = Log.setup(args0.verbose, args0.log_file, quiet=args0.quiet, json_logs=args0.json_logs)

    conf0 = _load_merged_config(logger, args0.config or [])

    if args0.dump_config:
        print(U.json_dump(conf0))
        raise SystemExit(0)

    Config.apply_as_defaults(logger, parser, conf0)

    args = parser.parse_args(argv)

    if args0.dump_args:
        print(U.json_dump({k: ("***" if "password" in k and v else v) for k, v in vars(args).items()}))
        raise SystemExit(0)

    validate_args(args, conf0)

    return args, conf0, logger
