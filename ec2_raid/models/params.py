"""Parameter models for FastMCP tool validation."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..constants import DEFAULT_DRIVE_ID
from .enums import VirtualizationMode


class MCPModel(BaseModel):
    """Base model with common MCP settings."""

    def model_dump(self, **kwargs) -> dict[str, Any]:
        """Convert to dict with exclude_none by default."""
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)


class ProvisionArrayParams(MCPModel):
    """Parameters for the provision_raid_array tool."""

    size_gb: int = Field(gt=0, description="Usable size of the RAID 10 array in GB")
    zone: str = Field(description="Availability zone, e.g. us-east-1a")
    instance_id: str = Field(description="Instance to attach the volumes to")
    drive_id: str = Field(default=DEFAULT_DRIVE_ID, description="Drive letter d-z or device id")
    disks: int | None = Field(default=None, ge=1, description="Number of volumes")
    iops: int | None = Field(default=None, gt=0, description="Provisioned IOPS per volume")
    hvm: bool = Field(default=False, description="Instance uses HVM virtualization")
    confirm: bool = Field(
        default=False, description="Create volumes; when false only the plan is returned"
    )

    @property
    def virtualization(self) -> VirtualizationMode:
        return VirtualizationMode.HVM if self.hvm else VirtualizationMode.PV


class MigrateArrayParams(MCPModel):
    """Parameters for the migrate_raid_array tool."""

    from_instance: str = Field(description="Instance the array is attached to")
    to_instance: str = Field(description="Instance to move the array to")
    drive_id: str = Field(description="Drive letter of the array, e.g. 'h' for /dev/sdh*")
    confirm: bool = Field(
        default=False, description="Move volumes; when false only discovery is returned"
    )

    @field_validator("drive_id", mode="before")
    @classmethod
    def strip_drive_id(cls, v):
        return v.strip() if isinstance(v, str) else v
