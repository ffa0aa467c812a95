# SPDX-License-Identifier: LGPL-3.0-or-later
from types import SimpleNamespace

from ova2esxi.core.exceptions import VMwareError
from ova2esxi.vmware.http_transfer_client import UploadResponse


class FakeHTTP:
    """Records uploads; answers POSTs from `post_responses` keyed by disk label."""

    def __init__(self, host="10.0.0.5", post_responses=None, post_exc=None, put_exc=None):
        self.host = host
        self.post_responses = dict(post_responses or {})
        self.post_exc = post_exc
        self.put_exc = put_exc
        self.posts = []
        self.puts = []

    def resolve_device_url(self, url_template):
        return url_template.replace("*", self.host)

    def post_stream_vmdk(self, url, fh, size, *, label="disk", options=None):
        data = fh.read()
        self.posts.append(SimpleNamespace(url=url, label=label, size=size, data=data))
        if self.post_exc is not None:
            raise self.post_exc
        return self.post_responses.get(label, UploadResponse(status_code=200, body=""))

    def put_file(self, local_path, *, remote_dir, datastore, dc_path, remote_name=None, options=None):
        self.puts.append(
            SimpleNamespace(
                local_path=local_path,
                remote_dir=remote_dir,
                datastore=datastore,
                dc_path=dc_path,
                remote_name=remote_name,
            )
        )
        if self.put_exc is not None:
            raise self.put_exc
        return UploadResponse(status_code=201, body="")


class FakeOvfManager:
    def __init__(self, result=None, exc=None):
        self.result = result
        self.exc = exc
        self.calls = []

    def CreateImportSpec(self, ovfDescriptor, resourcePool, datastore, cisp):
        self.calls.append(SimpleNamespace(ovfDescriptor=ovfDescriptor, resourcePool=resourcePool, datastore=datastore, cisp=cisp))
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeResourcePool:
    def __init__(self, lease=None, name="Resources", exc=None):
        self.name = name
        self.lease = lease
        self.exc = exc
        self.imports = []

    def ImportVApp(self, spec, folder=None, host=None):
        self.imports.append(SimpleNamespace(spec=spec, folder=folder, host=host))
        if self.exc is not None:
            raise self.exc
        return self.lease


class FakeESXiClient:
    """Session client stand-in exposing the lookups the importer consumes."""

    def __init__(self, *, http=None, networks=None, ovf_manager=None, resource_pool=None,
                 datastore_lookup_exc=None):
        self.host = "10.0.0.5"
        self.http = http or FakeHTTP()
        self.datacenter = SimpleNamespace(name="ha-datacenter", vmFolder=SimpleNamespace(name="vm"))
        self.datastore = SimpleNamespace(name="datastore1")
        self.host_system = SimpleNamespace(name="esxi01")
        self.resource_pool = resource_pool or FakeResourcePool()
        self.networks = list(networks or [SimpleNamespace(name="VM Network")])
        self._ovf_manager = ovf_manager or FakeOvfManager()
        self.datastore_lookup_exc = datastore_lookup_exc
        self.connected = False
        self.events = []
        self.made_dirs = []
        self.powered_on = []

    def connect(self):
        self.connected = True
        self.events.append("connect")

    def disconnect(self):
        self.connected = False
        self.events.append("disconnect")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *exc):
        self.disconnect()
        return False

    def ovf_manager(self):
        return self._ovf_manager

    def get_datacenter(self, name=None):
        return self.datacenter

    def get_datastore(self, name=None):
        if self.datastore_lookup_exc is not None:
            raise self.datastore_lookup_exc
        if name and name != self.datastore.name:
            raise VMwareError(msg=f"No datastore named {name!r}")
        return self.datastore

    def get_host(self, name=None):
        return self.host_system

    def get_hosts(self):
        return [self.host_system]

    def get_resource_pool(self, name=None):
        return self.resource_pool

    def get_networks(self):
        return list(self.networks)

    def get_vm_folder(self, datacenter=None):
        return (datacenter or self.datacenter).vmFolder

    def make_directory(self, path, datastore_name, datacenter=None, *, create_parents=True):
        self.made_dirs.append((path, datastore_name))

    def power_on(self, entity):
        self.powered_on.append(entity)
