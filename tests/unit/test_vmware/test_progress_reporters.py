# SPDX-License-Identifier: LGPL-3.0-or-later
import io
from unittest.mock import patch

from rich.console import Console

from fakes.fake_logger import FakeLogger
from ova2esxi.vmware.http_progress_reporters import (
    LoggingProgressReporter,
    NoopProgressReporter,
    RichProgressReporter,
    SimpleProgressReporter,
    create_progress_reporter,
)
from ova2esxi.vmware.http_transfer_client import HTTPTransferOptions

_TTY = "ova2esxi.vmware.http_progress_reporters._is_tty"


def test_disabled_progress_is_noop():
    r = create_progress_reporter(HTTPTransferOptions(show_progress=False), "a.vmdk", FakeLogger())
    assert isinstance(r, NoopProgressReporter)


def test_selection_by_tty():
    logger = FakeLogger()
    with patch(_TTY, return_value=True):
        assert isinstance(create_progress_reporter(HTTPTransferOptions(), "a.vmdk", logger), RichProgressReporter)
        assert isinstance(
            create_progress_reporter(HTTPTransferOptions(simple_progress=True), "a.vmdk", logger),
            SimpleProgressReporter,
        )
    with patch(_TTY, return_value=False):
        assert isinstance(create_progress_reporter(HTTPTransferOptions(), "a.vmdk", logger), LoggingProgressReporter)


def test_logging_reporter_throttles():
    logger = FakeLogger()
    r = LoggingProgressReporter(logger, log_every_bytes=100)
    r.start("Uploading a.vmdk", 400)
    for _ in range(8):
        r.update(50)
    r.finish()

    msgs = logger.messages("info")
    assert msgs[0] == "Starting: Uploading a.vmdk"
    assert len([m for m in msgs if "%)" in m]) == 4
    assert msgs[-1] == "Finished: Uploading a.vmdk (400 B)"


def test_simple_reporter_writes_line(capsys):
    r = SimpleProgressReporter("a.vmdk")
    r.start("Uploading a.vmdk", 200)
    r.update(100)
    r.finish()
    out = capsys.readouterr().out
    assert "Uploading a.vmdk: 50.0% (100 B/200 B)" in out
    assert out.endswith("\n")


def test_rich_reporter_runs_headless():
    r = RichProgressReporter(Console(file=io.StringIO(), force_terminal=False), refresh_hz=4)
    r.start("Extracting app.ova", 10)
    r.update(10)
    r.finish()
    assert r.progress is None
