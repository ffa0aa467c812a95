# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/vmware/http_transfer_client.py
"""
HTTP/HTTPS upload client for ESXi/vCenter.

Two upload paths share one authenticated requests session:
  - streaming POST of a disk image to an HttpNfcLease device URL
  - PUT of a local file into a datastore through the /folder endpoint
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional
from urllib.parse import quote

import requests
import requests.adapters
import urllib3

from ..core.exceptions import VMwareError
from ..core.utils import U
from .http_progress_reporters import ProgressReporter, create_progress_reporter

STREAM_VMDK_CONTENT_TYPE = "application/x-vnd.vmware-streamVmdk"
OCTET_STREAM_CONTENT_TYPE = "application/octet-stream"
DEFAULT_UPLOAD_TIMEOUT_S = 12000.0


@dataclass(frozen=True)
class HTTPTransferOptions:
    show_progress: bool = True
    simple_progress: bool = False
    progress_refresh_hz: float = 10.0
    log_every_bytes: int = 64 * 1024 * 1024
    chunk_size: int = 1024 * 1024


@dataclass(frozen=True)
class UploadResponse:
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class _ProgressReader:
    """
    File wrapper handed to requests as the request body.

    `__len__` lets requests compute Content-Length; `read()` is what
    http.client pulls from while streaming, each chunk advances the reporter.
    """

    def __init__(self, fh: BinaryIO, size: int, reporter: ProgressReporter, chunk_size: int):
        self._fh = fh
        self._size = size
        self._reporter = reporter
        self._chunk_size = chunk_size

    def __len__(self) -> int:
        return self._size

    def read(self, n: int = -1) -> bytes:
        data = self._fh.read(n if n and n > 0 else self._chunk_size)
        if data:
            self._reporter.update(len(data))
        return data

    def __iter__(self):
        while True:
            chunk = self.read(self._chunk_size)
            if not chunk:
                break
            yield chunk


class HTTPTransferClient:
    """
    TLS-relaxable HTTP client authenticated with the vSphere session cookie.

    The cookie comes from the pyVmomi SOAP session (see ESXiClient.connect()),
    so uploads run under the same login as the management calls.
    """

    def __init__(
        self,
        logger: logging.Logger,
        host: str,
        port: int = 443,
        insecure: bool = False,
        timeout: Optional[float] = None,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT_S,
        http_client: Optional[Any] = None,
    ) -> None:
        if not host or not host.strip():
            raise ValueError("Host cannot be empty")
        if not 1 <= port <= 65535:
            raise ValueError(f"Invalid port: {port}")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Invalid timeout: {timeout}")
        if upload_timeout <= 0:
            raise ValueError(f"Invalid upload timeout: {upload_timeout}")

        self.logger = logger
        self.host = host.strip()
        self.port = port
        self.insecure = insecure
        self.timeout = timeout
        self.upload_timeout = float(upload_timeout)

        self._cookie_header_value: Optional[str] = None
        self._session_pool: Optional[Any] = None
        self._http_client = http_client or requests

        if self.insecure:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def set_session_cookie(self, cookie: str) -> None:
        """
        Store the vSphere session cookie.

        Accepts `name=value; Path=/; HttpOnly` or a bare `name=value`; only
        the first cookie-pair is sent in the Cookie header.
        """
        if not cookie or not cookie.strip():
            raise ValueError("Cookie cannot be empty")
        first = cookie.strip().split(";", 1)[0].strip()
        if "=" not in first:
            raise ValueError(f"Cookie does not look like name=value: {cookie!r}")
        self._cookie_header_value = first

    def get_session_cookie(self) -> str:
        if not self._cookie_header_value:
            raise VMwareError(msg="Session cookie not set. Call set_session_cookie() first.")
        return self._cookie_header_value

    def clear_session_cookie(self) -> None:
        self._cookie_header_value = None

    @property
    def session(self) -> Any:
        if self._session_pool is None:
            self._session_pool = self._create_session()
        return self._session_pool

    def _create_session(self) -> Any:
        session = self._http_client.Session()
        session.verify = not self.insecure

        # Streamed bodies cannot be re-sent.
        adapter = self._http_client.adapters.HTTPAdapter(
            pool_connections=4,
            pool_maxsize=4,
            max_retries=0,
            pool_block=False,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def close(self) -> None:
        if self._session_pool is not None:
            self._session_pool.close()
            self._session_pool = None

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def resolve_device_url(self, url_template: str) -> str:
        """Lease device URLs use `*` as a host placeholder."""
        return url_template.replace("*", self.host)

    def _build_folder_url(self, remote_dir: str, remote_name: str, datastore: str, dc_path: str) -> str:
        path = "/".join(p for p in (remote_dir.strip("/"), remote_name) if p)
        return (
            f"https://{self.host}:{self.port}/folder/{quote(path, safe='/')}"
            f"?dsName={quote(datastore, safe='')}&dcPath={quote(dc_path, safe='')}"
        )

    def _headers(self, content_type: str, size: int) -> Dict[str, str]:
        return {
            "Cookie": self.get_session_cookie(),
            "Content-Type": content_type,
            "Content-Length": str(size),
        }

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def post_stream_vmdk(
        self,
        url: str,
        fh: BinaryIO,
        size: int,
        *,
        label: str = "disk",
        options: Optional[HTTPTransferOptions] = None,
    ) -> UploadResponse:
        """
        Stream `fh` to a lease device URL.

        The response body is read in full and the response closed before
        returning. Transport failures propagate as requests exceptions.
        """
        opt = options or HTTPTransferOptions()
        reporter = create_progress_reporter(opt, label, self.logger)
        reporter.start(f"Uploading {label}", size)
        body = _ProgressReader(fh, size, reporter, opt.chunk_size)

        self.logger.debug("POST %s (%s)", url, U.human_bytes(size))
        try:
            with self.session.post(
                url,
                data=body,
                headers=self._headers(STREAM_VMDK_CONTENT_TYPE, size),
                timeout=self.upload_timeout,
            ) as response:
                status = int(getattr(response, "status_code", 0) or 0)
                text = U.to_text(response.content)
        finally:
            reporter.finish()

        self.logger.debug("POST %s -> HTTP %d", url, status)
        return UploadResponse(status_code=status, body=text)

    def put_file(
        self,
        local_path: Path,
        *,
        remote_dir: str,
        datastore: str,
        dc_path: str,
        remote_name: Optional[str] = None,
        options: Optional[HTTPTransferOptions] = None,
    ) -> UploadResponse:
        """
        Copy a local file into `[datastore] remote_dir/remote_name`.

        remote_name defaults to the local file name. A non-2xx answer raises
        VMwareError carrying the HTTP status.
        """
        opt = options or HTTPTransferOptions()
        local_path = Path(local_path)
        name = remote_name or local_path.name
        url = self._build_folder_url(remote_dir, name, datastore, dc_path)
        size = os.path.getsize(local_path)

        self.logger.info(
            "Copying to datastore: %s -> [%s] %s/%s (dc=%s)",
            local_path,
            datastore,
            remote_dir.strip("/"),
            name,
            dc_path,
        )

        reporter = create_progress_reporter(opt, name, self.logger)
        reporter.start(f"Copying {name}", size)
        try:
            with open(local_path, "rb") as fh:
                with self.session.put(
                    url,
                    data=_ProgressReader(fh, size, reporter, opt.chunk_size),
                    headers=self._headers(OCTET_STREAM_CONTENT_TYPE, size),
                    timeout=self.upload_timeout,
                ) as response:
                    status = int(getattr(response, "status_code", 0) or 0)
                    text = U.to_text(response.content)
        finally:
            reporter.finish()

        result = UploadResponse(status_code=status, body=text)
        if not result.ok:
            raise VMwareError(
                msg=f"Datastore copy of {name} failed: HTTP {status}",
                context={"datastore": datastore, "remote_dir": remote_dir, "status": status},
            )
        return result
