"""RAID array data models."""

import re

from pydantic import BaseModel, Field, field_validator

from ..constants import DEFAULT_DRIVE_ID
from .enums import VirtualizationMode

# Full device ids accepted for a build: "sdh", "xvdh", "/dev/sdh", "/dev/xvdh"
DEVICE_ID_PATTERN = re.compile(r"^(?:/dev/)?(?:sd|xvd)([a-z])$")


class ArrayRequest(BaseModel):
    """Parameters for building a RAID 10 array on one instance."""

    usable_size_gb: int = Field(gt=0, description="Usable size of the array in GB")
    zone: str = Field(min_length=1, description="Availability zone")
    instance_id: str = Field(min_length=1, description="Instance to attach to")
    drive_id: str = Field(default=DEFAULT_DRIVE_ID, description="Drive letter or device id")
    disk_count: int | None = Field(
        default=None, description="Number of volumes (mode default when unset)"
    )
    iops: int | None = Field(default=None, gt=0, description="Provisioned IOPS per volume")
    virtualization: VirtualizationMode = VirtualizationMode.PV

    @field_validator("virtualization", mode="before")
    @classmethod
    def validate_virtualization(cls, v):
        if isinstance(v, str):
            return VirtualizationMode(v.lower())
        return v

    @field_validator("drive_id", mode="before")
    @classmethod
    def reduce_device_id(cls, v):
        """Reduce a full device id to its drive letter; the letter itself is checked later."""
        if isinstance(v, str):
            v = v.strip()
            match = DEVICE_ID_PATTERN.match(v)
            if match:
                return match.group(1)
        return v


class DiskPlan(BaseModel):
    """Per-disk sizing derived from a usable array size."""

    usable_size_gb: int
    disk_count: int
    total_raw_gb: int
    per_disk_gb: int
    iops: int | None = None


class DevicePath(BaseModel):
    """Device requested from the provider and the device the guest sees."""

    requested: str
    visible: str


class VolumeAttachment(BaseModel):
    """A volume attached to an instance at a device path."""

    volume_id: str
    device_path: str
    instance_id: str
    visible_device: str


class RecordEntry(BaseModel):
    """One volumeId:devicePath line of a migration recovery record."""

    volume_id: str
    device_path: str

    def to_line(self) -> str:
        return f"{self.volume_id}:{self.device_path}"

    @classmethod
    def from_line(cls, line: str) -> "RecordEntry":
        volume_id, sep, device_path = line.strip().partition(":")
        if not sep or not volume_id or not device_path:
            raise ValueError(f"Malformed recovery record line: {line!r}")
        return cls(volume_id=volume_id, device_path=device_path)


class MigrationRecord(BaseModel):
    """Volumes discovered on the source instance, as written to the recovery file."""

    instance_id: str
    drive_letter: str
    entries: list[RecordEntry]
    path: str


class InstanceInfo(BaseModel):
    """Instance existence and placement as reported by the provider."""

    instance_id: str
    exists: bool
    zone: str | None = None


class ProvisionResult(BaseModel):
    """Outcome of a successful array build."""

    instance_id: str
    zone: str
    plan: DiskPlan
    virtualization: VirtualizationMode
    attachments: list[VolumeAttachment] = Field(default_factory=list)
    first_device: str
    last_device: str
    assemble_hint: str


class MigrationResult(BaseModel):
    """Outcome of a successful array move."""

    from_instance: str
    to_instance: str
    zone: str
    moved: list[RecordEntry] = Field(default_factory=list)
    record_path: str
