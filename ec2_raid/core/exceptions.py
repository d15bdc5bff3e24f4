"""Core exceptions for EC2 RAID operations."""

from typing import Any


class Ec2RaidError(Exception):
    """Base exception for EC2 RAID operations."""


class InvalidConfiguration(Ec2RaidError):
    """Array parameters failed validation (disk count, size, drive id)."""


class InvalidDriveId(InvalidConfiguration):
    """Drive identifier is not a single letter in d-z."""


class IopsSizeViolation(Ec2RaidError):
    """Provisioned IOPS volumes would fall under the provider minimum size."""


class ZoneMismatch(Ec2RaidError):
    """Source and target instances live in different availability zones."""


class InstanceNotFound(Ec2RaidError):
    """Instance does not exist or is not in the requested zone."""


class ArrayNotFound(Ec2RaidError):
    """No array was discovered on the source instance for the drive id."""


class ProviderCallFailed(Ec2RaidError):
    """A call to the cloud volume service failed.

    Orchestrators attach the progress made before the failure so the operator
    can finish or undo the run by hand.
    """

    def __init__(
        self,
        message: str,
        *,
        completed: list[Any] | None = None,
        orphaned_volume_id: str | None = None,
        record_path: str | None = None,
    ):
        super().__init__(message)
        self.completed = list(completed or [])
        self.orphaned_volume_id = orphaned_volume_id
        self.record_path = record_path
