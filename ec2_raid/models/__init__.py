"""Data models for EC2 RAID tools."""

from .array import (  # noqa: F401
    ArrayRequest,
    DevicePath,
    DiskPlan,
    InstanceInfo,
    MigrationRecord,
    MigrationResult,
    ProvisionResult,
    RecordEntry,
    VolumeAttachment,
)
from .enums import RaidAction, VirtualizationMode  # noqa: F401
from .params import MigrateArrayParams, ProvisionArrayParams  # noqa: F401

__all__ = [
    # Array models
    "ArrayRequest",
    "DevicePath",
    "DiskPlan",
    "InstanceInfo",
    "MigrationRecord",
    "MigrationResult",
    "ProvisionResult",
    "RecordEntry",
    "VolumeAttachment",
    # Enums
    "RaidAction",
    "VirtualizationMode",
    # Parameter models
    "MigrateArrayParams",
    "ProvisionArrayParams",
]
