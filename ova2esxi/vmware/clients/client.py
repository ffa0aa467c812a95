# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/vmware/clients/client.py
from __future__ import annotations

"""
ESXi / vCenter session client for ova2esxi.

One object owns one pyVmomi login. It is passed explicitly to the importer
pipeline, opened with connect() (or `with`), and closed with disconnect().
"""

import logging
import socket
import ssl
import time
from typing import Any, Dict, List, Optional

from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim, vmodl

from ...core.exceptions import VMwareError, wrap_vmware
from ..http_transfer_client import DEFAULT_UPLOAD_TIMEOUT_S, HTTPTransferClient


class ESXiClient:
    """
    Session object for an ESXi host or vCenter.

    Inventory lookups go through container views rooted at the root folder;
    with no name they return the first object of the type, which on a
    standalone ESXi host is the only one.
    """

    def __init__(
        self,
        logger: logging.Logger,
        host: str,
        user: str,
        password: str,
        *,
        port: int = 443,
        insecure: bool = False,
        timeout: Optional[float] = None,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT_S,
        task_poll_interval: float = 1.0,
    ) -> None:
        self.logger = logger
        self.host = (host or "").strip()
        self.user = (user or "").strip()
        self.password = password or ""
        self.port = int(port)
        self.insecure = bool(insecure)
        self.timeout = timeout
        self.upload_timeout = float(upload_timeout)
        self.task_poll_interval = float(task_poll_interval)

        self.si: Any = None
        self._http_client: Optional[HTTPTransferClient] = None

    @classmethod
    def from_config(cls, logger: logging.Logger, cfg: Dict[str, Any], *, password: Optional[str] = None) -> "ESXiClient":
        """Build from a merged config dict (keys: host, user, port, insecure, upload_timeout)."""
        return cls(
            logger,
            str(cfg.get("host") or ""),
            str(cfg.get("user") or ""),
            password if password is not None else str(cfg.get("password") or ""),
            port=int(cfg.get("port") or 443),
            insecure=bool(cfg.get("insecure", False)),
            upload_timeout=float(cfg.get("upload_timeout") or DEFAULT_UPLOAD_TIMEOUT_S),
        )

    def has_creds(self) -> bool:
        return bool(self.host and self.user and self.password)

    @property
    def http(self) -> HTTPTransferClient:
        """HTTP upload client sharing this session's cookie."""
        if self._http_client is None:
            self._http_client = HTTPTransferClient(
                logger=self.logger,
                host=self.host,
                port=self.port,
                insecure=self.insecure,
                timeout=self.timeout,
                upload_timeout=self.upload_timeout,
            )
        return self._http_client

    # Context manager

    def __enter__(self) -> "ESXiClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            self.disconnect()
        finally:
            if exc_type is not None:
                self.logger.debug("Leaving session after %s: %s", getattr(exc_type, "__name__", exc_type), exc_val)
        return False

    # Connection

    def _ssl_context(self) -> ssl.SSLContext:
        """
        TLS context for the SOAP endpoint.

        insecure=True disables certificate and hostname verification, for hosts
        with self-signed certificates on trusted networks.
        """
        if self.insecure:
            self.logger.warning("TLS certificate verification is DISABLED (insecure=True)")
            ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
            return ctx
        return ssl.create_default_context()

    def _smart_connect(self, ctx: ssl.SSLContext) -> Any:
        return SmartConnect(
            host=self.host,
            user=self.user,
            pwd=self.password,
            port=self.port,
            sslContext=ctx,
        )

    def connect(self) -> None:
        if not self.has_creds():
            raise VMwareError(code=2, msg="Missing host/user/password for ESXi login")
        ctx = self._ssl_context()
        try:
            if self.timeout is not None:
                old_timeout = socket.getdefaulttimeout()
                socket.setdefaulttimeout(self.timeout)
                try:
                    self.si = self._smart_connect(ctx)
                finally:
                    socket.setdefaulttimeout(old_timeout)
            else:
                self.si = self._smart_connect(ctx)
        except (vmodl.MethodFault, OSError) as e:
            self.si = None
            raise wrap_vmware(f"Failed to connect to {self.host}:{self.port}: {e}", e, host=self.host, port=self.port) from e

        cookie = getattr(getattr(self.si, "_stub", None), "cookie", None)
        if cookie:
            self.http.set_session_cookie(str(cookie))
        else:
            self.logger.warning("vSphere session returned no cookie; HTTP uploads will fail")

        self.logger.info("Connected to ESXi: %s:%s", self.host, self.port)

    def disconnect(self) -> None:
        try:
            if self.si is not None:
                Disconnect(self.si)
                self.logger.debug("Disconnected from %s", self.host)
        except (vmodl.MethodFault, OSError) as e:
            self.logger.error("Error during disconnect: %s", e)
        finally:
            self.si = None
            if self._http_client is not None:
                self._http_client.clear_session_cookie()
                self._http_client.close()

    def _content(self) -> Any:
        if not self.si:
            raise VMwareError(msg="Not connected")
        try:
            return self.si.RetrieveContent()
        except vmodl.MethodFault as e:
            raise wrap_vmware(f"Failed to retrieve content: {e.msg}", e) from e

    def ovf_manager(self) -> Any:
        return self._content().ovfManager

    # Inventory

    def _view_objects(self, vimtype: Any) -> List[Any]:
        content = self._content()
        view = content.viewManager.CreateContainerView(content.rootFolder, [vimtype], True)
        try:
            return list(view.view)
        finally:
            view.Destroy()

    def _pick(self, vimtype: Any, label: str, name: Optional[str]) -> Any:
        objs = self._view_objects(vimtype)
        if name:
            for obj in objs:
                if getattr(obj, "name", None) == name:
                    return obj
            raise VMwareError(msg=f"No {label} named {name!r}", context={"available": [getattr(o, "name", "?") for o in objs]})
        if not objs:
            raise VMwareError(msg=f"No {label} found on {self.host}")
        return objs[0]

    def get_hosts(self) -> List[Any]:
        return self._view_objects(vim.HostSystem)

    def get_host(self, name: Optional[str] = None) -> Any:
        return self._pick(vim.HostSystem, "host", name)

    def get_datacenter(self, name: Optional[str] = None) -> Any:
        return self._pick(vim.Datacenter, "datacenter", name)

    def get_datastore(self, name: Optional[str] = None) -> Any:
        return self._pick(vim.Datastore, "datastore", name)

    def get_resource_pool(self, name: Optional[str] = None) -> Any:
        return self._pick(vim.ResourcePool, "resource pool", name)

    def get_networks(self) -> List[Any]:
        return self._view_objects(vim.Network)

    def get_vm_folder(self, datacenter: Any = None) -> Any:
        dc = datacenter if datacenter is not None else self.get_datacenter()
        return dc.vmFolder

    # Datastore files

    def make_directory(self, path: str, datastore_name: str, datacenter: Any = None, *, create_parents: bool = True) -> None:
        """Create `[datastore_name] path` through the FileManager."""
        ds_path = f"[{datastore_name}] {path.strip('/')}"
        content = self._content()
        try:
            content.fileManager.MakeDirectory(name=ds_path, datacenter=datacenter, createParentDirectories=create_parents)
        except vim.fault.FileAlreadyExists:
            self.logger.debug("Datastore directory already exists: %s", ds_path)
            return
        except vmodl.MethodFault as e:
            raise wrap_vmware(f"MakeDirectory {ds_path} failed: {e.msg}", e, datastore=datastore_name) from e
        self.logger.info("Created datastore directory %s", ds_path)

    # Tasks / power

    def wait_for_task(self, task: Any) -> Any:
        while task.info.state not in (vim.TaskInfo.State.success, vim.TaskInfo.State.error):
            time.sleep(self.task_poll_interval)
        if task.info.state == vim.TaskInfo.State.error:
            err = task.info.error
            raise VMwareError(msg=f"Task failed: {getattr(err, 'msg', None) or err}")
        return task.info.result

    def power_on(self, entity: Any) -> None:
        """Power on an imported VM or vApp and wait for the task."""
        if isinstance(entity, vim.VirtualApp):
            task = entity.PowerOnVApp_Task()
        elif isinstance(entity, vim.VirtualMachine):
            task = entity.PowerOnVM_Task()
        else:
            raise VMwareError(msg=f"Cannot power on {type(entity).__name__}")
        self.logger.info("Powering on %s", getattr(entity, "name", entity))
        self.wait_for_task(task)
