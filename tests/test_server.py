"""Tests for the FastMCP tool surface."""

from unittest.mock import MagicMock

import pytest
from fastmcp import Client

from ec2_raid.server import Ec2RaidServer, parse_args

from .conftest import FakeVolumeService


@pytest.fixture
def server(config, volume_service) -> Ec2RaidServer:
    server = Ec2RaidServer(config, volume_service=volume_service)
    server._initialize_app()
    return server


@pytest.fixture
async def client(server: Ec2RaidServer):
    async with Client(server.app) as client:
        yield client


@pytest.mark.asyncio
async def test_tools_registered(client: Client):
    tools = {tool.name for tool in await client.list_tools()}
    assert {"provision_raid_array", "migrate_raid_array"} <= tools


@pytest.mark.asyncio
async def test_provision_preview_through_client(client: Client, volume_service):
    result = await client.call_tool(
        "provision_raid_array",
        {"size_gb": 1000, "zone": "us-east-1a", "instance_id": "i-target"},
    )

    assert result.data["success"] is True
    assert result.data["confirmed"] is False
    assert result.data["plan"]["per_disk_gb"] == 250
    assert result.data["devices"][0]["requested"] == "/dev/sdh1"
    assert volume_service.mutating_calls() == []


@pytest.mark.asyncio
async def test_provision_confirmed(server: Ec2RaidServer, volume_service: FakeVolumeService):
    result = await server.provision_raid_array(
        size_gb=100, zone="us-east-1a", instance_id="i-target", hvm=True, confirm=True
    )

    assert result["success"] is True
    assert result["confirmed"] is True
    assert result["virtualization"] == "hvm"
    assert len(result["attachments"]) == 4
    assert result["first_device"] == "/dev/xvdh"
    assert result["last_device"] == "/dev/xvdk"
    assert result["assemble_hint"].startswith("mdadm --create -l10 -n4 /dev/md0")
    assert len([c for c in volume_service.calls if c[0] == "create"]) == 4


@pytest.mark.asyncio
async def test_provision_domain_error(server: Ec2RaidServer, volume_service: FakeVolumeService):
    result = await server.provision_raid_array(
        size_gb=100, zone="us-east-1a", instance_id="i-target", disks=3, confirm=True
    )

    assert result["success"] is False
    assert result["type"] == "/problems/invalid-configuration"
    assert "at least 4 disks" in result["error"]
    assert volume_service.mutating_calls() == []


@pytest.mark.asyncio
async def test_provision_validation_error(server: Ec2RaidServer):
    result = await server.provision_raid_array(size_gb=0, zone="us-east-1a", instance_id="i-1")

    assert result["success"] is False
    assert result["field"] == "size_gb"


@pytest.mark.asyncio
async def test_provision_partial_failure(server: Ec2RaidServer, volume_service: FakeVolumeService):
    volume_service.fail_on["attach"] = 2

    result = await server.provision_raid_array(
        size_gb=100, zone="us-east-1a", instance_id="i-target", disks=4, confirm=True
    )

    assert result["success"] is False
    assert result["type"] == "/problems/provider-call-failed"
    assert [a["volume_id"] for a in result["completed"]] == ["vol-0001"]
    assert result["orphaned_volume_id"] == "vol-0002"


@pytest.mark.asyncio
async def test_migrate_preview(server: Ec2RaidServer, volume_service: FakeVolumeService):
    result = await server.migrate_raid_array(
        from_instance="i-source", to_instance="i-target", drive_id="h"
    )

    assert result["confirmed"] is False
    assert result["zone"] == "us-east-1a"
    assert len(result["volumes"]) == 8
    assert volume_service.mutating_calls() == []


@pytest.mark.asyncio
async def test_migrate_confirmed(server: Ec2RaidServer, volume_service, recovery_file):
    result = await server.migrate_raid_array(
        from_instance="i-source", to_instance="i-target", drive_id=" h ", confirm=True
    )

    assert result["success"] is True
    assert len(result["moved"]) == 8
    assert result["record_path"] == str(recovery_file)
    assert len(volume_service.volumes["i-target"]) == 8


@pytest.mark.asyncio
async def test_migrate_zone_mismatch(server: Ec2RaidServer):
    result = await server.migrate_raid_array(
        from_instance="i-source", to_instance="i-elsewhere", drive_id="h", confirm=True
    )

    assert result["success"] is False
    assert result["type"] == "/problems/zone-mismatch"
    assert result["instance"] == "/migrations/i-source/i-elsewhere/h"


def test_parse_args_defaults(monkeypatch):
    monkeypatch.delenv("EC2RAID_CONFIG", raising=False)
    monkeypatch.delenv("FASTMCP_PORT", raising=False)

    args = parse_args([])

    assert args.transport == "stdio"
    assert args.port == 8000
    assert args.config is None


@pytest.mark.asyncio
async def test_migrate_rejects_full_device_id(server: Ec2RaidServer, volume_service):
    result = await server.migrate_raid_array(
        from_instance="i-source", to_instance="i-target", drive_id="xvdh", confirm=True
    )

    assert result["success"] is False
    assert result["type"] == "/problems/invalid-configuration"
    assert "Only specify one drive letter" in result["error"]
    assert volume_service.calls == []


@pytest.mark.asyncio
async def test_rejected_request_logged_as_warning(server: Ec2RaidServer):
    server.logger = MagicMock()

    await server.migrate_raid_array(
        from_instance="i-source", to_instance="i-elsewhere", drive_id="h", confirm=True
    )

    server.logger.warning.assert_called_once()
    assert server.logger.warning.call_args.kwargs["error_type"] == "ZoneMismatch"
    server.logger.error.assert_not_called()


@pytest.mark.asyncio
async def test_provider_failure_logged_as_error(server: Ec2RaidServer, volume_service):
    server.logger = MagicMock()
    volume_service.fail_on["attach"] = 2

    await server.provision_raid_array(
        size_gb=100, zone="us-east-1a", instance_id="i-target", disks=4, confirm=True
    )

    server.logger.error.assert_called_once()
    kwargs = server.logger.error.call_args.kwargs
    assert kwargs["completed"] == 1
    assert kwargs["orphaned_volume_id"] == "vol-0002"
    server.logger.warning.assert_not_called()
