# SPDX-License-Identifier: LGPL-3.0-or-later
# ova2esxi/core/logger.py
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from termcolor import colored

TRACE = 5
if not hasattr(logging, "TRACE"):
    logging.TRACE = TRACE  # type: ignore[attr-defined]
    logging.addLevelName(TRACE, "TRACE")

# level -> (emoji, termcolor color)
_LEVELS: Dict[str, Tuple[str, str]] = {
    "TRACE": ("🧬", "cyan"),
    "DEBUG": ("🔍", "blue"),
    "INFO": ("✅", "green"),
    "WARNING": ("⚠️", "yellow"),
    "ERROR": ("💥", "red"),
    "CRITICAL": ("🧨", "red"),
}

_warned: Set[str] = set()


def is_tty(stream: Any = None) -> bool:
    s = stream if stream is not None else sys.stderr
    try:
        return bool(s.isatty())
    except (AttributeError, ValueError):
        return False


def _supports_unicode() -> bool:
    enc = getattr(sys.stderr, "encoding", None) or "utf-8"
    try:
        "✅".encode(enc)
    except (LookupError, UnicodeEncodeError):
        return False
    return True


def c(text: str, color: Optional[str] = None, attrs: Optional[List[str]] = None) -> str:
    """termcolor wrapper for help text; plain when color is None."""
    return colored(text, color, attrs=attrs or []) if color else text


def _short(v: Any, max_len: int = 240) -> str:
    s = str(v).replace("\n", "\\n").replace("\r", "\\r")
    return s if len(s) <= max_len else s[: max_len - 1] + "…"


def _ctx_suffix(ctx: Optional[Mapping[str, Any]]) -> str:
    if not ctx:
        return ""
    return " " + " ".join(f"{k}={_short(v)}" for k, v in sorted(ctx.items(), key=lambda kv: str(kv[0])))


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that stamps every record with a `ctx` mapping.

    A call may add `extra={"ctx": {...}}`; its keys win over the bound ones.

        dlog = Log.bind(logger, disk="disk-0.vmdk", n="1/2")
        dlog.info("Uploading")
    """

    def __init__(self, logger: logging.Logger, ctx: Optional[Mapping[str, Any]] = None):
        super().__init__(logger, extra={"ctx": dict(ctx or {})})

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["ctx"] = {**self.extra["ctx"], **(extra.get("ctx") or {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **ctx: Any) -> "ContextLoggerAdapter":
        return ContextLoggerAdapter(self.logger, {**self.extra["ctx"], **ctx})


@dataclass(frozen=True)
class LogStyle:
    color: bool = True
    show_ms: bool = False
    show_src: bool = False
    show_pid: bool = False
    show_logger: bool = False
    utc: bool = False
    unicode: bool = True


class EmojiFormatter(logging.Formatter):
    """`HH:MM:SS 📦 LEVEL [bits] message k=v` lines, colored on a TTY."""

    def __init__(self, style: LogStyle):
        super().__init__()
        self.style = style

    def _clock(self, created: float) -> str:
        tz = _dt.timezone.utc if self.style.utc else None
        dt = _dt.datetime.fromtimestamp(created, tz=tz)
        return dt.strftime("%H:%M:%S.%f")[:-3] if self.style.show_ms else dt.strftime("%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        st = self.style
        use_color = st.color and is_tty()
        emoji, color = _LEVELS.get(record.levelname, ("•", ""))
        if not st.unicode:
            emoji = "·"

        level = f"{record.levelname:<8}"
        msg = record.getMessage()
        if use_color and color:
            level = colored(level, color)
            if record.levelno >= logging.WARNING:
                msg = colored(msg, color, attrs=["bold"])

        bits = []
        if st.show_pid:
            bits.append(f"pid={os.getpid()}")
        if st.show_logger:
            bits.append(record.name)
        if st.show_src:
            bits.append(f"{record.module}:{record.lineno}")
        where = f" [{' '.join(bits)}]" if bits else ""

        line = f"{self._clock(record.created)} {emoji} {level}{where} {msg}{_ctx_suffix(getattr(record, 'ctx', None))}"
        if record.exc_info:
            tb = "\n".join("  " + ln for ln in self.formatException(record.exc_info).splitlines())
            line += "\n" + (colored(tb, "red") if use_color else tb)
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per record (NDJSON), for --json-logs."""

    def __init__(self, *, utc: bool = True):
        super().__init__()
        self.utc = utc

    def format(self, record: logging.LogRecord) -> str:
        tz = _dt.timezone.utc if self.utc else None
        obj: Dict[str, Any] = {
            "ts": _dt.datetime.fromtimestamp(record.created, tz=tz).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
            "module": record.module,
            "lineno": record.lineno,
        }
        ctx = getattr(record, "ctx", None)
        if ctx:
            obj["ctx"] = {str(k): _short(v) for k, v in ctx.items()}
        if record.exc_info:
            obj["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            obj["traceback"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)


class Log:
    @staticmethod
    def _level_from_flags(verbose: int, quiet: int) -> int:
        """-q WARNING, -qq ERROR; default INFO, -vv DEBUG, -vvv TRACE. Quiet wins."""
        if quiet:
            return logging.ERROR if quiet >= 2 else logging.WARNING
        if verbose >= 3:
            return TRACE
        return logging.DEBUG if verbose >= 2 else logging.INFO

    @staticmethod
    def bind(logger: logging.Logger, **ctx: Any) -> ContextLoggerAdapter:
        return ContextLoggerAdapter(logger, ctx)

    @staticmethod
    def banner(logger: logging.Logger, title: str, *, char: str = "─") -> None:
        t = f" {title.strip()} "
        pad = char * max(8, (72 - len(t)) // 2)
        logger.info((pad + t + pad)[:72])

    @staticmethod
    def ok(logger: logging.Logger, msg: str) -> None:
        logger.info("✅ %s", msg)

    @staticmethod
    def warn(logger: logging.Logger, msg: str) -> None:
        logger.warning("⚠️  %s", msg)

    @staticmethod
    def fail(logger: logging.Logger, msg: str) -> None:
        logger.error("💥 %s", msg)

    @staticmethod
    def trace(logger: logging.Logger, msg: str, *args: Any) -> None:
        if logger.isEnabledFor(TRACE):
            logger.log(TRACE, msg, *args)

    @staticmethod
    def warn_once(logger: logging.Logger, key: Union[str, Tuple[Any, ...]], msg: str) -> bool:
        """Warn once per process for `key`; False when already warned."""
        k = key if isinstance(key, str) else "|".join(_short(x, 160) for x in key)
        if k in _warned:
            return False
        _warned.add(k)
        logger.warning("⚠️  %s", msg)
        return True

    @staticmethod
    def setup(
        verbose: int = 0,
        log_file: Optional[str] = None,
        *,
        quiet: int = 0,
        color: bool = True,
        utc: bool = False,
        logger_name: str = "ova2esxi",
        json_logs: bool = False,
    ) -> logging.Logger:
        """
        Configure and return the project's logger.

        stderr gets emoji lines (or NDJSON with json_logs). A log_file gets
        a colorless copy with pid, logger name and source location.
        """
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        level = Log._level_from_flags(verbose, quiet)
        logger.setLevel(level)

        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

        unicode = _supports_unicode()
        handlers = []

        sh = logging.StreamHandler(stream=sys.stderr)
        sh.setFormatter(
            JsonFormatter(utc=utc)
            if json_logs
            else EmojiFormatter(
                LogStyle(color=color, show_ms=verbose >= 3, show_src=verbose >= 3, show_pid=verbose >= 2, utc=utc, unicode=unicode)
            )
        )
        handlers.append(sh)

        if log_file:
            fp = Path(log_file).expanduser().resolve()
            fp.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(fp, encoding="utf-8")
            fh.setFormatter(
                JsonFormatter(utc=utc)
                if json_logs
                else EmojiFormatter(
                    LogStyle(color=False, show_ms=True, show_src=True, show_pid=True, show_logger=True, utc=utc, unicode=unicode)
                )
            )
            handlers.append(fh)

        for h in handlers:
            h.setLevel(level)
            logger.addHandler(h)

        logger.debug("Logger initialized (level=%s)", logging.getLevelName(level))
        return logger
