# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/cli/args/groups.py
from __future__ import annotations

import argparse

from ...vmware.appliance.import_spec import DEFAULT_SETTLE_S
from ...vmware.appliance.lease import DEFAULT_POLL_INTERVAL_S
from ...vmware.http_transfer_client import DEFAULT_UPLOAD_TIMEOUT_S


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from ... import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier; globs allowed).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv, -vvv")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q, -qq")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit NDJSON log lines.")
    p.add_argument("--no-progress", dest="no_progress", action="store_true", help="Disable progress bars.")


def _add_connection_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("ESXi connection")
    g.add_argument("--host", dest="host", default=None, help="ESXi/vCenter host name or address.")
    g.add_argument("--user", dest="user", default=None, help="Login user.")
    g.add_argument("--password", dest="password", default=None, help="Login password (prefer --password-env).")
    g.add_argument("--password-env", dest="password_env", default=None, help="Env var holding the login password.")
    g.add_argument("--port", dest="port", type=int, default=443, help="HTTPS port.")
    g.add_argument("--insecure", dest="insecure", action="store_true", help="Skip TLS certificate verification.")


def _add_appliance_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Appliance")
    g.add_argument("--ova", dest="ova", default=None, help="Path to the .ova archive (extracted next to it).")
    g.add_argument("--vm-name", dest="vm_name", default=None, help="Name of the imported VM (default: archive stem).")
    g.add_argument("--memory-mb", dest="memory_mb", type=int, default=0, help="Memory override in MB (0 = descriptor).")
    g.add_argument("--num-cpus", dest="num_cpus", type=int, default=0, help="vCPU override (0 = descriptor).")
    g.add_argument(
        "--port-group",
        dest="port_groups",
        action="append",
        default=None,
        help="Port group to map the appliance networks to (repeatable).",
    )
    g.add_argument("--disk-provisioning", dest="disk_provisioning", default=None, help="thin, thick, eagerZeroedThick, ...")
    g.add_argument("--deployment-option", dest="deployment_option", default=None, help="Descriptor deployment option id.")
    g.add_argument(
        "--property",
        dest="property_overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="OVF property value (repeatable; merged over `properties:` from config).",
    )
    # Only settable from config (mapping).
    g.add_argument("--properties", dest="properties", default=None, help=argparse.SUPPRESS)


def _add_placement_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Placement")
    g.add_argument("--esx-host", dest="esx_host", default=None, help="Target host system name (default: first).")
    g.add_argument("--datastore", dest="datastore", default=None, help="Target datastore name (default: first).")
    g.add_argument("--resource-pool", dest="resource_pool", default=None, help="Resource pool name (default: first).")
    g.add_argument("--locale", dest="locale", default="US", help="Locale passed to the OVF manager.")


def _add_lease_transfer_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Lease / transfer")
    g.add_argument("--lease-timeout", dest="lease_timeout", type=float, default=None, help="Seconds to wait for the lease (unset = forever).")
    g.add_argument("--lease-poll-interval", dest="lease_poll_interval", type=float, default=DEFAULT_POLL_INTERVAL_S, help="Seconds between lease polls.")
    g.add_argument("--import-settle", dest="import_settle", type=float, default=DEFAULT_SETTLE_S, help="Seconds to wait after ImportVApp.")
    g.add_argument("--upload-timeout", dest="upload_timeout", type=float, default=DEFAULT_UPLOAD_TIMEOUT_S, help="Per-disk HTTP upload timeout in seconds.")
    g.add_argument("--power-on", dest="power_on", action="store_true", help="Power on the imported VM/vApp.")
    g.add_argument("--strict", dest="strict", action="store_true", help="Fail the run if any disk could not be transferred.")
