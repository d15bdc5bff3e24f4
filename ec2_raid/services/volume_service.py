"""Cloud volume service contract and its aws CLI implementation."""

import json
from typing import Any, Protocol

import structlog

from ..constants import IOPS_VOLUME_TYPE
from ..core.config_loader import AwsSettings
from ..core.exceptions import ProviderCallFailed
from ..core.subprocess_manager import SubprocessManager, SubprocessResult
from ..models.array import InstanceInfo, RecordEntry

logger = structlog.get_logger()

INSTANCE_NOT_FOUND_CODES = ("InvalidInstanceID.NotFound", "InvalidInstanceID.Malformed")


class CloudVolumeService(Protocol):
    """The slice of the provider API the orchestrators depend on."""

    async def list_zones(self) -> set[str]: ...

    async def describe_instance(self, instance_id: str) -> InstanceInfo: ...

    async def create_volume(self, size_gb: int, zone: str, iops: int | None = None) -> str: ...

    async def attach_volume(self, volume_id: str, instance_id: str, device_path: str) -> None: ...

    async def list_volumes_for_instance(
        self, instance_id: str, device_prefix: str
    ) -> list[RecordEntry]: ...

    async def detach_volume(self, volume_id: str) -> None: ...

    async def get_volume_state(self, volume_id: str) -> str: ...

    async def close(self) -> None: ...


class AwsCliVolumeService:
    """CloudVolumeService backed by ``aws ec2`` calls with JSON output."""

    def __init__(
        self,
        settings: AwsSettings | None = None,
        subprocess_manager: SubprocessManager | None = None,
    ):
        self.settings = settings or AwsSettings()
        self.subprocess_manager = subprocess_manager or SubprocessManager()
        self.logger = logger.bind(
            component="aws_volume_service",
            region=self.settings.region,
            profile=self.settings.profile,
        )

    def build_command(self, operation: str, *args: str) -> list[str]:
        """Build an ``aws ec2 <operation>`` argument list."""
        cmd = [self.settings.cli_path]
        if self.settings.region:
            cmd.extend(["--region", self.settings.region])
        if self.settings.profile:
            cmd.extend(["--profile", self.settings.profile])
        cmd.extend(["ec2", operation, *args, "--output", "json"])
        return cmd

    async def _call(self, operation: str, *args: str, check: bool = True) -> SubprocessResult:
        cmd = self.build_command(operation, *args)
        try:
            return await self.subprocess_manager.run_command(
                cmd, timeout=self.settings.timeout, check=check
            )
        except ProviderCallFailed as e:
            self.logger.error("aws ec2 call failed", operation=operation, error=str(e))
            raise ProviderCallFailed(f"{operation} failed: {e}") from e

    def _parse(self, operation: str, result: SubprocessResult) -> dict[str, Any]:
        if not result.stdout.strip():
            return {}
        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ProviderCallFailed(f"{operation} returned invalid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ProviderCallFailed(f"{operation} returned unexpected payload")
        return payload

    async def list_zones(self) -> set[str]:
        result = await self._call("describe-availability-zones")
        payload = self._parse("describe-availability-zones", result)
        return {
            zone["ZoneName"]
            for zone in payload.get("AvailabilityZones", [])
            if zone.get("State", "available") == "available"
        }

    async def describe_instance(self, instance_id: str) -> InstanceInfo:
        result = await self._call("describe-instances", "--instance-ids", instance_id, check=False)
        if not result.success:
            if any(code in result.stderr for code in INSTANCE_NOT_FOUND_CODES):
                return InstanceInfo(instance_id=instance_id, exists=False)
            raise ProviderCallFailed(f"describe-instances failed: {result.error_message}")

        payload = self._parse("describe-instances", result)
        for reservation in payload.get("Reservations", []):
            for instance in reservation.get("Instances", []):
                if instance.get("InstanceId") == instance_id:
                    return InstanceInfo(
                        instance_id=instance_id,
                        exists=True,
                        zone=instance.get("Placement", {}).get("AvailabilityZone"),
                    )
        return InstanceInfo(instance_id=instance_id, exists=False)

    async def create_volume(self, size_gb: int, zone: str, iops: int | None = None) -> str:
        args = ["--size", str(size_gb), "--availability-zone", zone]
        if iops is not None:
            args.extend(["--volume-type", IOPS_VOLUME_TYPE, "--iops", str(iops)])
        payload = self._parse("create-volume", await self._call("create-volume", *args))
        volume_id = payload.get("VolumeId")
        if not volume_id:
            raise ProviderCallFailed("create-volume returned no VolumeId")
        self.logger.info("Volume created", volume_id=volume_id, size_gb=size_gb, zone=zone)
        return volume_id

    async def attach_volume(self, volume_id: str, instance_id: str, device_path: str) -> None:
        await self._call(
            "attach-volume",
            "--volume-id",
            volume_id,
            "--instance-id",
            instance_id,
            "--device",
            device_path,
        )
        self.logger.info(
            "Volume attached", volume_id=volume_id, instance_id=instance_id, device=device_path
        )

    async def list_volumes_for_instance(
        self, instance_id: str, device_prefix: str
    ) -> list[RecordEntry]:
        result = await self._call(
            "describe-volumes",
            "--filters",
            f"Name=attachment.instance-id,Values={instance_id}",
        )
        payload = self._parse("describe-volumes", result)

        entries: list[RecordEntry] = []
        for volume in payload.get("Volumes", []):
            for attachment in volume.get("Attachments", []):
                device = attachment.get("Device", "")
                if attachment.get("InstanceId") == instance_id and device.startswith(
                    device_prefix
                ):
                    entries.append(RecordEntry(volume_id=volume["VolumeId"], device_path=device))
        return entries

    async def detach_volume(self, volume_id: str) -> None:
        await self._call("detach-volume", "--volume-id", volume_id)
        self.logger.info("Volume detach requested", volume_id=volume_id)

    async def get_volume_state(self, volume_id: str) -> str:
        result = await self._call("describe-volumes", "--volume-ids", volume_id)
        volumes = self._parse("describe-volumes", result).get("Volumes", [])
        if not volumes:
            raise ProviderCallFailed(f"Volume {volume_id} not found")
        return str(volumes[0].get("State", "unknown"))

    async def close(self) -> None:
        """Terminate any aws CLI process still running."""
        await self.subprocess_manager.cleanup_all()
