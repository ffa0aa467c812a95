# SPDX-License-Identifier: LGPL-3.0-or-later
"""
End-to-end import against in-memory ESXi fakes: a real OVA tar is built,
extracted and pushed through import, lease wait and transfer.
"""
from __future__ import annotations

import argparse
import io
import tarfile
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from fakes.fake_esxi import FakeESXiClient, FakeHTTP, FakeOvfManager, FakeResourcePool
from fakes.fake_lease import FakeLease
from fakes.fake_logger import FakeLogger
from ova2esxi.core.exceptions import LeaseError
from ova2esxi.orchestrator.importer import ApplianceImporter
from ova2esxi.vmware.appliance.models import DEVICE_IMAGE_NAME
from ova2esxi.vmware.http_transfer_client import UploadResponse

OVF = "<Envelope><VirtualSystem ovf:id='appliance01'/></Envelope>"


def _build_ova(path):
    members = [
        ("appliance01.ovf", OVF.encode()),
        ("appliance01.mf", b"SHA256(appliance01-disk1.vmdk)= 00"),
        ("appliance01-disk1.vmdk", b"D" * 2048),
        ("appliance01-tools.iso", b"I" * 512),
    ]
    with tarfile.open(path, "w") as tar:
        for name, data in members:
            ti = tarfile.TarInfo(name)
            ti.size = len(data)
            ti.mode = 0o644
            tar.addfile(ti, io.BytesIO(data))


def _args(ova, **kw):
    base = dict(
        ova=str(ova),
        vm_name=None,
        memory_mb=2048,
        num_cpus=2,
        port_groups=["VM Network"],
        disk_provisioning="thin",
        deployment_option=None,
        properties={"guestinfo.hostname": "app01"},
        esx_host=None,
        datastore="datastore1",
        resource_pool=None,
        locale="US",
        lease_timeout=30.0,
        lease_poll_interval=0.0,
        import_settle=0.0,
        power_on=False,
        strict=False,
        no_progress=True,
    )
    base.update(kw)
    return argparse.Namespace(**base)


def _import_result():
    return SimpleNamespace(
        error=None,
        warning=None,
        importSpec=SimpleNamespace(configSpec=SimpleNamespace(memoryMB=512, numCPUs=1)),
    )


@pytest.fixture(autouse=True)
def fake_vim():
    with patch("ova2esxi.vmware.appliance.import_spec.vim", MagicMock()) as m:
        yield m


@pytest.fixture
def ova(tmp_path):
    p = tmp_path / "appliance01.ova"
    _build_ova(p)
    return p


@pytest.mark.integration
class TestImportPipeline:
    def test_happy_path(self, ova, fake_vim):
        lease = FakeLease(["initializing", "ready"], urls=("https://*/nfc/52b1/disk-0.vmdk",))
        ovf_manager = FakeOvfManager(result=_import_result())
        client = FakeESXiClient(ovf_manager=ovf_manager, resource_pool=FakeResourcePool(lease=lease))

        rc = ApplianceImporter(FakeLogger(), _args(ova), client).run()

        assert rc == 0
        assert client.events == ["connect", "disconnect"]

        # extraction
        assert (ova.parent / "appliance01-disk1.vmdk").read_bytes() == b"D" * 2048

        # import spec
        assert ovf_manager.calls[0].ovfDescriptor == OVF
        kw = fake_vim.OvfManager.CreateImportSpecParams.call_args.kwargs
        assert kw["entityName"] == "appliance01"
        assert kw["diskProvisioning"] == "thin"
        spec = client.resource_pool.imports[0].spec
        assert (spec.configSpec.memoryMB, spec.configSpec.numCPUs) == (2048, 2)
        assert client.resource_pool.imports[0].folder is client.datacenter.vmFolder

        # transfer
        posts = client.http.posts
        assert [p.label for p in posts] == ["appliance01-disk1.vmdk", "appliance01-tools.iso"]
        assert posts[0].url == "https://10.0.0.5/nfc/52b1/disk-0.vmdk"
        assert posts[0].size == 2048
        assert lease.progress == [50, 100]
        assert lease.completed

    def test_cannot_post_falls_back_to_datastore(self, ova):
        refused = UploadResponse(status_code=405, body="Cannot POST")
        http = FakeHTTP(post_responses={"appliance01-disk1.vmdk": refused, "appliance01-tools.iso": refused})
        lease = FakeLease(["ready"])
        client = FakeESXiClient(
            http=http,
            ovf_manager=FakeOvfManager(result=_import_result()),
            resource_pool=FakeResourcePool(lease=lease),
        )

        rc = ApplianceImporter(FakeLogger(), _args(ova, vm_name="web01"), client).run()

        assert rc == 0
        assert [p.remote_name for p in http.puts] == ["appliance01-disk1.vmdk", DEVICE_IMAGE_NAME]
        assert {p.remote_dir for p in http.puts} == {"/web01"}
        assert client.made_dirs == [("web01", "datastore1")]

    def test_failed_disk_sets_exit_code(self, ova):
        http = FakeHTTP(post_responses={"appliance01-tools.iso": UploadResponse(status_code=500, body="")})
        lease = FakeLease(["ready"])
        client = FakeESXiClient(
            http=http,
            ovf_manager=FakeOvfManager(result=_import_result()),
            resource_pool=FakeResourcePool(lease=lease),
        )

        assert ApplianceImporter(FakeLogger(), _args(ova), client).run() == 1
        assert lease.completed

    def test_lease_error_skips_transfer(self, ova):
        lease = FakeLease(["initializing", "error"], error_msg="Unsupported disk format")
        client = FakeESXiClient(
            ovf_manager=FakeOvfManager(result=_import_result()),
            resource_pool=FakeResourcePool(lease=lease),
        )

        with pytest.raises(LeaseError, match="lease error: error: Unsupported disk format"):
            ApplianceImporter(FakeLogger(), _args(ova), client).run()

        assert client.http.posts == []
        assert not lease.completed
        assert client.events == ["connect", "disconnect"]

    def test_power_on(self, ova):
        lease = FakeLease(["ready"], entity="vm-77")
        client = FakeESXiClient(
            ovf_manager=FakeOvfManager(result=_import_result()),
            resource_pool=FakeResourcePool(lease=lease),
        )

        assert ApplianceImporter(FakeLogger(), _args(ova, power_on=True), client).run() == 0
        assert client.powered_on == ["vm-77"]

    def test_stages_driven_one_by_one(self, ova):
        lease = FakeLease(["ready"])
        client = FakeESXiClient(
            ovf_manager=FakeOvfManager(result=_import_result()),
            resource_pool=FakeResourcePool(lease=lease),
        )
        importer = ApplianceImporter(FakeLogger(), _args(ova), client)

        descriptor = importer.extract_appliance(ova.parent, ova.name)
        request = importer.build_request(descriptor)
        got_lease = importer.import_appliance(request)
        snap = importer.await_lease_ready(got_lease)
        results = importer.transfer_disks(snap.first_url, descriptor.directory, descriptor.disks, got_lease, request)

        assert request.vm.name == "appliance01"
        assert request.properties == {"guestinfo.hostname": "app01"}
        assert [r.ok for r in results] == [True, True]

    def test_multiple_device_urls_warn_and_use_first(self, ova):
        lease = FakeLease(["ready"], urls=("https://*/nfc/52b1/disk-0.vmdk", "https://*/nfc/52b1/disk-1.vmdk"))
        client = FakeESXiClient(
            ovf_manager=FakeOvfManager(result=_import_result()),
            resource_pool=FakeResourcePool(lease=lease),
        )
        logger = FakeLogger()

        assert ApplianceImporter(logger, _args(ova), client).run() == 0

        assert {p.url for p in client.http.posts} == {"https://10.0.0.5/nfc/52b1/disk-0.vmdk"}
        warnings = [m for m in logger.messages("warning") if "device URLs" in m]
        assert len(warnings) == 1
        assert "Lease offers 2 device URLs" in warnings[0]
        assert "/appliance/VirtualLsiLogicController0:1" in warnings[0]
