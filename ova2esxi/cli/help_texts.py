# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# ova2esxi/cli/help_texts.py
from __future__ import annotations

# Pure help text for the argparse epilog.

YAML_EXAMPLE = r"""# ova2esxi configuration example (YAML)
#
# Run:
#   ova2esxi --config esxi.yaml --config appliance.yaml
#
# Later files override earlier ones; CLI flags override both.
#
# host: esxi01.lab.local
# user: root
# password_env: ESXI_PASSWORD      # or `password:` (not recommended)
# port: 443
# insecure: true                   # self-signed host certificate
#
# ova: ./images/appliance.ova      # extracted next to the archive
# vm_name: appliance01
# memory_mb: 4096                  # 0 keeps the descriptor value
# num_cpus: 2
# port_groups: ["VM Network", "Management"]
# disk_provisioning: thin          # thin | thick | eagerZeroedThick ...
# deployment_option: small         # id from <DeploymentOptionSection>
# properties:
#   guestinfo.hostname: appliance01
#
# esx_host: esxi01.lab.local       # default: first host
# datastore: datastore1            # default: first datastore
# resource_pool: Resources         # default: first resource pool
# locale: US
#
# lease_timeout: 600               # seconds; unset waits forever
# lease_poll_interval: 2
# import_settle: 1
# upload_timeout: 12000
# power_on: true
# strict: false                    # true: any failed disk fails the run
"""

FEATURE_SUMMARY = r"""  - OVA extraction (streamed tar, file modes kept)
  - Import spec with port-group mappings, deployment option, OVF properties
  - HttpNfcLease upload of .vmdk/.iso images, datastore copy fallback
  - Optional power-on of the imported VM/vApp
"""
