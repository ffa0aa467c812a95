# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
from __future__ import annotations

import sys
import traceback
from typing import Any, Optional, Sequence

from .cli.args import parse_args_with_config
from .core.exceptions import Ova2EsxiError, format_exception_for_cli
from .core.logger import Log
from .orchestrator.importer import ApplianceImporter
from .vmware.clients.client import ESXiClient


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger: Any, level: str, msg: str) -> None:
    if logger is None:
        _print_stderr(msg)
        return
    getattr(logger, level)(msg)


def main(argv: Optional[Sequence[str]] = None) -> None:
    logger: Any = None

    # Phase 1: parse (config errors surface as Ova2EsxiError/SystemExit)
    try:
        args, _conf, logger = parse_args_with_config(argv)
    except Ova2EsxiError as e:
        _safe_log(logger, "error", f"💥 {format_exception_for_cli(e)}")
        raise SystemExit(e.code)
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        raise SystemExit(130)

    # Config may switch output style after the pre-parse logger was created.
    logger = Log.setup(args.verbose, args.log_file, quiet=args.quiet, json_logs=args.json_logs)

    # Phase 2: run pipeline
    try:
        client = ESXiClient(
            logger,
            args.host,
            args.user,
            args.password,
            port=args.port,
            insecure=args.insecure,
            upload_timeout=args.upload_timeout,
        )
        rc = ApplianceImporter(logger, args, client).run()
    except Ova2EsxiError as e:
        _safe_log(logger, "error", f"💥 {format_exception_for_cli(e, verbose=args.verbose)}")
        rc = e.code
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        rc = 130
    except Exception as e:
        _safe_log(logger, "error", f"💥 UNHANDLED {type(e).__name__}: {e}")
        _safe_log(logger, "debug", traceback.format_exc())
        rc = 1

    raise SystemExit(rc)


if __name__ == "__main__":
    main()
