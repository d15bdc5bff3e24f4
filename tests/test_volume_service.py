"""Tests for the aws CLI backed volume service."""

import json
from unittest.mock import AsyncMock

import pytest

from ec2_raid.core.config_loader import AwsSettings
from ec2_raid.core.exceptions import ProviderCallFailed
from ec2_raid.core.subprocess_manager import SubprocessResult
from ec2_raid.services.volume_service import AwsCliVolumeService


def ok(payload) -> SubprocessResult:
    return SubprocessResult(returncode=0, stdout=json.dumps(payload), stderr="", cmd=[])


def failed(stderr: str) -> SubprocessResult:
    return SubprocessResult(returncode=255, stdout="", stderr=stderr, cmd=[])


@pytest.fixture
def runner() -> AsyncMock:
    manager = AsyncMock()
    manager.run_command = AsyncMock()
    return manager


@pytest.fixture
def service(runner) -> AwsCliVolumeService:
    return AwsCliVolumeService(AwsSettings(region="us-east-1", timeout=15), runner)


def last_cmd(runner) -> list[str]:
    return runner.run_command.await_args.args[0]


def test_build_command_includes_region_and_profile():
    service = AwsCliVolumeService(AwsSettings(cli_path="/usr/bin/aws", region="eu-west-1", profile="ops"))

    assert service.build_command("detach-volume", "--volume-id", "vol-1") == [
        "/usr/bin/aws",
        "--region",
        "eu-west-1",
        "--profile",
        "ops",
        "ec2",
        "detach-volume",
        "--volume-id",
        "vol-1",
        "--output",
        "json",
    ]


def test_build_command_without_region():
    assert AwsCliVolumeService().build_command("describe-availability-zones") == [
        "aws",
        "ec2",
        "describe-availability-zones",
        "--output",
        "json",
    ]


@pytest.mark.asyncio
async def test_list_zones_keeps_available_zones(service, runner):
    runner.run_command.return_value = ok(
        {
            "AvailabilityZones": [
                {"ZoneName": "us-east-1a", "State": "available"},
                {"ZoneName": "us-east-1b", "State": "impaired"},
                {"ZoneName": "us-east-1d", "State": "available"},
            ]
        }
    )

    assert await service.list_zones() == {"us-east-1a", "us-east-1d"}
    assert runner.run_command.await_args.kwargs["timeout"] == 15


@pytest.mark.asyncio
async def test_describe_instance_reads_placement(service, runner):
    runner.run_command.return_value = ok(
        {
            "Reservations": [
                {
                    "Instances": [
                        {"InstanceId": "i-1", "Placement": {"AvailabilityZone": "us-east-1a"}}
                    ]
                }
            ]
        }
    )

    info = await service.describe_instance("i-1")

    assert info.exists is True
    assert info.zone == "us-east-1a"
    assert last_cmd(runner)[-4:-2] == ["--instance-ids", "i-1"]
    assert runner.run_command.await_args.kwargs["check"] is False


@pytest.mark.asyncio
async def test_describe_instance_not_found(service, runner):
    runner.run_command.return_value = failed(
        "An error occurred (InvalidInstanceID.NotFound) when calling DescribeInstances"
    )

    info = await service.describe_instance("i-gone")

    assert info.exists is False
    assert info.zone is None


@pytest.mark.asyncio
async def test_describe_instance_other_failure(service, runner):
    runner.run_command.return_value = failed("Unable to locate credentials")

    with pytest.raises(ProviderCallFailed, match="Unable to locate credentials"):
        await service.describe_instance("i-1")


@pytest.mark.asyncio
async def test_create_volume_with_iops(service, runner):
    runner.run_command.return_value = ok({"VolumeId": "vol-123", "State": "creating"})

    volume_id = await service.create_volume(64, "us-east-1a", iops=100)

    assert volume_id == "vol-123"
    cmd = last_cmd(runner)
    assert cmd[cmd.index("--size") + 1] == "64"
    assert cmd[cmd.index("--availability-zone") + 1] == "us-east-1a"
    assert cmd[cmd.index("--volume-type") + 1] == "io1"
    assert cmd[cmd.index("--iops") + 1] == "100"


@pytest.mark.asyncio
async def test_create_volume_without_iops(service, runner):
    runner.run_command.return_value = ok({"VolumeId": "vol-123"})

    await service.create_volume(256, "us-east-1a")

    assert "--iops" not in last_cmd(runner)
    assert "--volume-type" not in last_cmd(runner)


@pytest.mark.asyncio
async def test_create_volume_without_id_fails(service, runner):
    runner.run_command.return_value = ok({})

    with pytest.raises(ProviderCallFailed, match="no VolumeId"):
        await service.create_volume(256, "us-east-1a")


@pytest.mark.asyncio
async def test_attach_volume_command(service, runner):
    runner.run_command.return_value = ok({"State": "attaching"})

    await service.attach_volume("vol-1", "i-1", "/dev/sdh1")

    cmd = last_cmd(runner)
    assert cmd[cmd.index("attach-volume") :] == [
        "attach-volume",
        "--volume-id",
        "vol-1",
        "--instance-id",
        "i-1",
        "--device",
        "/dev/sdh1",
        "--output",
        "json",
    ]


@pytest.mark.asyncio
async def test_provider_error_wrapped_with_operation(service, runner):
    runner.run_command.side_effect = ProviderCallFailed("Command failed with exit code 255: boom")

    with pytest.raises(ProviderCallFailed, match="^attach-volume failed"):
        await service.attach_volume("vol-1", "i-1", "/dev/sdh1")


@pytest.mark.asyncio
async def test_list_volumes_filters_instance_and_prefix(service, runner):
    runner.run_command.return_value = ok(
        {
            "Volumes": [
                {"VolumeId": "vol-root", "Attachments": [{"InstanceId": "i-1", "Device": "/dev/sda1"}]},
                {"VolumeId": "vol-2", "Attachments": [{"InstanceId": "i-1", "Device": "/dev/sdh2"}]},
                {"VolumeId": "vol-1", "Attachments": [{"InstanceId": "i-1", "Device": "/dev/sdh1"}]},
                {"VolumeId": "vol-x", "Attachments": [{"InstanceId": "i-2", "Device": "/dev/sdh1"}]},
                {"VolumeId": "vol-free", "Attachments": []},
            ]
        }
    )

    entries = await service.list_volumes_for_instance("i-1", "/dev/sdh")

    assert [(e.volume_id, e.device_path) for e in entries] == [
        ("vol-2", "/dev/sdh2"),
        ("vol-1", "/dev/sdh1"),
    ]
    assert "Name=attachment.instance-id,Values=i-1" in last_cmd(runner)


@pytest.mark.asyncio
async def test_detach_volume_command(service, runner):
    runner.run_command.return_value = ok({"State": "detaching"})

    await service.detach_volume("vol-1")

    assert last_cmd(runner)[-5:] == ["detach-volume", "--volume-id", "vol-1", "--output", "json"]


@pytest.mark.asyncio
async def test_get_volume_state(service, runner):
    runner.run_command.return_value = ok({"Volumes": [{"VolumeId": "vol-1", "State": "available"}]})

    assert await service.get_volume_state("vol-1") == "available"


@pytest.mark.asyncio
async def test_invalid_json_fails(service, runner):
    runner.run_command.return_value = SubprocessResult(
        returncode=0, stdout="not json", stderr="", cmd=[]
    )

    with pytest.raises(ProviderCallFailed, match="invalid JSON"):
        await service.list_zones()


@pytest.mark.asyncio
async def test_close_cleans_up_subprocesses(service, runner):
    await service.close()

    runner.cleanup_all.assert_awaited_once()
