"""RAID array migration between instances in one availability zone."""

import asyncio

import structlog
from structlog.stdlib import BoundLogger

from ..constants import MIN_ARRAY_VOLUMES, VOLUME_STATE_AVAILABLE
from ..core.config_loader import Ec2RaidConfig
from ..core.exceptions import ArrayNotFound, InstanceNotFound, ProviderCallFailed, ZoneMismatch
from ..core.naming import discovery_prefix, validate_drive_id
from ..core.recovery import RecoveryRecorder
from ..models.array import MigrationResult, RecordEntry
from .volume_service import CloudVolumeService


class MigrationOrchestrator:
    """Moves an array's volumes from one instance to another, one volume at a time.

    The volume-to-device mapping is written to the recovery record before the
    first detach. A failure mid-sequence stops the run without retrying or
    rolling back; the record is what the operator recovers from.
    """

    def __init__(
        self,
        volume_service: CloudVolumeService,
        config: Ec2RaidConfig | None = None,
        recorder: RecoveryRecorder | None = None,
    ):
        self.volume_service = volume_service
        self.config = config or Ec2RaidConfig()
        self.recorder = recorder or RecoveryRecorder(self.config.migration.recovery_file)
        self.logger: BoundLogger = structlog.get_logger().bind(component="migration")

    async def _resolve_zone(self, instance_id: str) -> str:
        instance = await self.volume_service.describe_instance(instance_id)
        if not instance.exists or not instance.zone:
            raise InstanceNotFound(f"Instance ID: {instance_id} not found")
        return instance.zone

    async def discover(
        self, from_instance: str, to_instance: str, drive_id: str
    ) -> tuple[str, list[RecordEntry]]:
        """Validate a move and find the array's volumes without changing anything.

        Returns:
            Tuple of (zone, discovered entries in provider order)

        Raises:
            InvalidDriveId: drive_id is not a letter in d-z
            InstanceNotFound: Either instance is missing
            ZoneMismatch: Instances are in different zones
            ArrayNotFound: Fewer than 3 volumes under the drive id
        """
        letter = validate_drive_id(drive_id)

        from_zone = await self._resolve_zone(from_instance)
        to_zone = await self._resolve_zone(to_instance)
        self.logger.info(
            "Checked availability zones",
            from_instance=from_instance,
            from_zone=from_zone,
            to_instance=to_instance,
            to_zone=to_zone,
        )
        if from_zone != to_zone:
            raise ZoneMismatch(
                f"Instances {from_instance} and {to_instance} are not in the same "
                f"availability zone ({from_zone} != {to_zone})"
            )

        prefix = discovery_prefix(letter, self.config.naming)
        entries = await self.volume_service.list_volumes_for_instance(from_instance, prefix)
        # Heuristic floor only; the set is not checked for RAID 10 topology
        if len(entries) < MIN_ARRAY_VOLUMES:
            raise ArrayNotFound(
                f"No array found as {letter} on {from_instance} "
                f"({len(entries)} volumes under {prefix})"
            )
        return from_zone, entries

    async def _wait_for_detach(self, volume_id: str) -> None:
        """Sleep the settle delay, then poll until the volume is available."""
        settings = self.config.migration
        await asyncio.sleep(settings.settle_seconds)

        for attempt in range(1, settings.poll_attempts + 1):
            state = await self.volume_service.get_volume_state(volume_id)
            if state == VOLUME_STATE_AVAILABLE:
                return
            self.logger.debug(
                "Waiting for volume to detach", volume_id=volume_id, state=state, attempt=attempt
            )
            if attempt < settings.poll_attempts:
                await asyncio.sleep(settings.poll_interval_seconds)

        if settings.poll_attempts:
            raise ProviderCallFailed(
                f"Volume {volume_id} did not become available after "
                f"{settings.poll_attempts} checks"
            )

    async def migrate(self, from_instance: str, to_instance: str, drive_id: str) -> MigrationResult:
        """Move every array volume to to_instance at its original device path.

        Raises:
            ProviderCallFailed: A detach or attach failed; ``completed`` holds the
                entries already moved and ``record_path`` the recovery file
        """
        zone, entries = await self.discover(from_instance, to_instance, drive_id)
        letter = validate_drive_id(drive_id)
        log = self.logger.bind(from_instance=from_instance, to_instance=to_instance, zone=zone)

        record = await self.recorder.write(from_instance, letter, entries)
        log.info("Moving array", volumes=len(entries), record_path=record.path)

        moved: list[RecordEntry] = []
        for entry in record.entries:
            try:
                log.info("Detaching volume", volume_id=entry.volume_id)
                await self.volume_service.detach_volume(entry.volume_id)
                await self._wait_for_detach(entry.volume_id)

                log.info(
                    "Attaching volume", volume_id=entry.volume_id, device=entry.device_path
                )
                await self.volume_service.attach_volume(
                    entry.volume_id, to_instance, entry.device_path
                )
            except ProviderCallFailed as e:
                log.error(
                    "Array move stopped",
                    volume_id=entry.volume_id,
                    moved=len(moved),
                    remaining=len(entries) - len(moved),
                    record_path=record.path,
                    error=str(e),
                )
                raise ProviderCallFailed(
                    f"Moving {entry.volume_id} ({entry.device_path}) failed: {e}. "
                    f"The mapping is saved in {record.path}",
                    completed=moved,
                    record_path=record.path,
                ) from e
            moved.append(entry)

        log.info("Array moved", volumes=len(moved), record_path=record.path)
        return MigrationResult(
            from_instance=from_instance,
            to_instance=to_instance,
            zone=zone,
            moved=moved,
            record_path=record.path,
        )
