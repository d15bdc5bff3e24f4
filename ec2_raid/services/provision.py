"""RAID 10 array provisioning."""

import structlog
from structlog.stdlib import BoundLogger

from ..core.config_loader import Ec2RaidConfig
from ..core.exceptions import InstanceNotFound, InvalidConfiguration, ProviderCallFailed
from ..core.naming import assemble_hint, device_range, validate_drive_id
from ..core.planner import plan
from ..models.array import ArrayRequest, DevicePath, DiskPlan, ProvisionResult, VolumeAttachment
from ..models.enums import VirtualizationMode
from .volume_service import CloudVolumeService


class ProvisioningOrchestrator:
    """Creates and attaches the volumes of a RAID 10 array, one disk at a time.

    The run is fail-fast rather than transactional: the first failed create
    or attach stops the run and volumes created so far are left in place for
    manual cleanup.
    """

    def __init__(self, volume_service: CloudVolumeService, config: Ec2RaidConfig | None = None):
        self.volume_service = volume_service
        self.config = config or Ec2RaidConfig()
        self.logger: BoundLogger = structlog.get_logger().bind(component="provisioning")

    def resolve_disk_count(self, request: ArrayRequest) -> int:
        if request.disk_count is not None:
            return request.disk_count
        if request.virtualization is VirtualizationMode.HVM:
            return self.config.defaults.hvm_disk_count
        return self.config.defaults.disk_count

    async def preview(self, request: ArrayRequest) -> tuple[DiskPlan, list[DevicePath]]:
        """Validate a request and compute its plan without touching any volume.

        Raises:
            InvalidConfiguration: Unknown zone, bad disk count, size or drive id
            InstanceNotFound: Instance missing or in another zone
            IopsSizeViolation: IOPS volumes would be under the minimum size
        """
        zones = await self.volume_service.list_zones()
        if request.zone not in zones:
            raise InvalidConfiguration(
                f"{request.zone} is not a valid availability zone. "
                f"Valid zones: {' '.join(sorted(zones))}"
            )

        instance = await self.volume_service.describe_instance(request.instance_id)
        if not instance.exists:
            raise InstanceNotFound(
                f"Instance ID: {request.instance_id} not found. "
                "Check your credentials and the instance id."
            )
        if instance.zone != request.zone:
            raise InstanceNotFound(
                f"Instance {request.instance_id} is in {instance.zone}, not {request.zone}"
            )

        disk_plan = plan(request.usable_size_gb, self.resolve_disk_count(request), request.iops)
        devices = device_range(
            disk_plan.disk_count, request.drive_id, request.virtualization, self.config.naming
        )
        return disk_plan, devices

    async def provision(self, request: ArrayRequest) -> ProvisionResult:
        """Create and attach every volume of the array.

        Raises:
            ProviderCallFailed: A create or attach failed; ``completed`` holds the
                attachments made before it and ``orphaned_volume_id`` the volume
                that was created but not attached
        """
        disk_plan, devices = await self.preview(request)
        log = self.logger.bind(
            instance_id=request.instance_id,
            zone=request.zone,
            drive_letter=validate_drive_id(request.drive_id),
            virtualization=request.virtualization.value,
        )
        log.info(
            "Creating array",
            usable_size_gb=disk_plan.usable_size_gb,
            total_raw_gb=disk_plan.total_raw_gb,
            disk_count=disk_plan.disk_count,
            per_disk_gb=disk_plan.per_disk_gb,
            iops=disk_plan.iops,
        )

        attachments: list[VolumeAttachment] = []
        for disk, device in enumerate(devices, start=1):
            log.info("Creating volume", disk=disk, disk_count=disk_plan.disk_count)
            try:
                volume_id = await self.volume_service.create_volume(
                    disk_plan.per_disk_gb, request.zone, disk_plan.iops
                )
            except ProviderCallFailed as e:
                log.error("Volume creation failed", disk=disk, error=str(e))
                raise ProviderCallFailed(
                    f"Volume creation unsuccessful for disk {disk} of {disk_plan.disk_count}: {e}",
                    completed=attachments,
                ) from e

            try:
                await self.volume_service.attach_volume(
                    volume_id, request.instance_id, device.requested
                )
            except ProviderCallFailed as e:
                log.error(
                    "Volume attach failed", disk=disk, volume_id=volume_id, error=str(e)
                )
                raise ProviderCallFailed(
                    f"Association of volume {volume_id} to instance "
                    f"{request.instance_id} failed: {e}",
                    completed=attachments,
                    orphaned_volume_id=volume_id,
                ) from e

            attachments.append(
                VolumeAttachment(
                    volume_id=volume_id,
                    device_path=device.requested,
                    instance_id=request.instance_id,
                    visible_device=device.visible,
                )
            )

        log.info(
            "Array volumes attached",
            first_device=devices[0].visible,
            last_device=devices[-1].visible,
            volumes=[a.volume_id for a in attachments],
        )
        return ProvisionResult(
            instance_id=request.instance_id,
            zone=request.zone,
            plan=disk_plan,
            virtualization=request.virtualization,
            attachments=attachments,
            first_device=devices[0].visible,
            last_device=devices[-1].visible,
            assemble_hint=assemble_hint(devices),
        )
