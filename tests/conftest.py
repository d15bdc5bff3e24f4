"""Shared pytest fixtures for EC2 RAID tests."""

from pathlib import Path

import pytest

from ec2_raid.core.config_loader import Ec2RaidConfig, MigrationSettings
from ec2_raid.core.exceptions import ProviderCallFailed
from ec2_raid.models.array import InstanceInfo, RecordEntry


class FakeVolumeService:
    """In-memory CloudVolumeService that records every call in order."""

    def __init__(self, zones=None, instances=None, volumes=None):
        self.zones = set(zones or {"us-east-1a", "us-east-1b", "us-east-1d"})
        self.instances: dict[str, str] = dict(instances or {})
        # instance_id -> list of (volume_id, device_path) in provider order
        self.volumes: dict[str, list[tuple[str, str]]] = {
            instance_id: list(entries) for instance_id, entries in (volumes or {}).items()
        }
        self.states: dict[str, str] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, int] = {}  # operation -> 1-based call number that fails
        self._counts: dict[str, int] = {}
        self._next_volume = 0

    def _maybe_fail(self, operation: str) -> None:
        self._counts[operation] = self._counts.get(operation, 0) + 1
        if self.fail_on.get(operation) == self._counts[operation]:
            raise ProviderCallFailed(f"{operation} failed: simulated")

    def mutating_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in ("create", "attach", "detach")]

    async def list_zones(self) -> set[str]:
        self.calls.append(("list_zones",))
        return set(self.zones)

    async def describe_instance(self, instance_id: str) -> InstanceInfo:
        self.calls.append(("describe", instance_id))
        zone = self.instances.get(instance_id)
        return InstanceInfo(instance_id=instance_id, exists=zone is not None, zone=zone)

    async def create_volume(self, size_gb: int, zone: str, iops: int | None = None) -> str:
        self.calls.append(("create", size_gb, zone, iops))
        self._maybe_fail("create")
        self._next_volume += 1
        volume_id = f"vol-{self._next_volume:04d}"
        self.states[volume_id] = "available"
        return volume_id

    async def attach_volume(self, volume_id: str, instance_id: str, device_path: str) -> None:
        self.calls.append(("attach", volume_id, instance_id, device_path))
        self._maybe_fail("attach")
        self.volumes.setdefault(instance_id, []).append((volume_id, device_path))
        self.states[volume_id] = "in-use"

    async def list_volumes_for_instance(
        self, instance_id: str, device_prefix: str
    ) -> list[RecordEntry]:
        self.calls.append(("list_volumes", instance_id, device_prefix))
        return [
            RecordEntry(volume_id=volume_id, device_path=device)
            for volume_id, device in self.volumes.get(instance_id, [])
            if device.startswith(device_prefix)
        ]

    async def detach_volume(self, volume_id: str) -> None:
        self.calls.append(("detach", volume_id))
        self._maybe_fail("detach")
        for entries in self.volumes.values():
            entries[:] = [e for e in entries if e[0] != volume_id]
        self.states[volume_id] = "available"

    async def get_volume_state(self, volume_id: str) -> str:
        self.calls.append(("state", volume_id))
        return self.states.get(volume_id, "available")

    async def close(self) -> None:
        self.calls.append(("close",))


def make_array(count: int, letter: str = "h", prefix: str = "vol-src") -> list[tuple[str, str]]:
    return [(f"{prefix}{i}", f"/dev/sd{letter}{i}") for i in range(1, count + 1)]


@pytest.fixture
def recovery_file(tmp_path: Path) -> Path:
    return tmp_path / "ec2raid-safetyfile.dat"


@pytest.fixture
def config(recovery_file: Path) -> Ec2RaidConfig:
    """Config with no settle delay or polling pauses."""
    return Ec2RaidConfig(
        migration=MigrationSettings(
            settle_seconds=0,
            poll_attempts=3,
            poll_interval_seconds=0,
            recovery_file=str(recovery_file),
        )
    )


@pytest.fixture
def volume_service() -> FakeVolumeService:
    return FakeVolumeService(
        instances={
            "i-source": "us-east-1a",
            "i-target": "us-east-1a",
            "i-elsewhere": "us-east-1b",
        },
        volumes={"i-source": make_array(8) + [("vol-root", "/dev/sda1")]},
    )
