"""RAID 10 capacity planning.

RAID 10 mirrors every stripe, so the raw capacity attached to the instance is
twice the usable size. The raw capacity is split evenly over the disks with
truncating integer division; pick a disk count that divides ``2 * size`` when
the exact size matters.
"""

from ..constants import MIN_IOPS_VOLUME_GB, MIN_RAID10_DISKS, RAID10_MIRROR_FACTOR
from ..models.array import DiskPlan
from .exceptions import InvalidConfiguration, IopsSizeViolation


def plan(usable_size_gb: int, disk_count: int, iops: int | None = None) -> DiskPlan:
    """Split a usable array size into equally sized volumes.

    Args:
        usable_size_gb: Usable size of the array in GB
        disk_count: Number of volumes in the array
        iops: Provisioned IOPS per volume, if any

    Returns:
        DiskPlan with raw and per-disk sizes

    Raises:
        InvalidConfiguration: Size below 1 GB or fewer than 4 disks
        IopsSizeViolation: IOPS requested and each volume would be under 10 GB
    """
    if usable_size_gb < 1:
        raise InvalidConfiguration(f"Array size must be at least 1 GB, got {usable_size_gb}")
    if disk_count < MIN_RAID10_DISKS:
        raise InvalidConfiguration(
            f"RAID 10 needs at least {MIN_RAID10_DISKS} disks, got {disk_count}"
        )

    total_raw_gb = usable_size_gb * RAID10_MIRROR_FACTOR
    per_disk_gb = total_raw_gb // disk_count

    if iops is not None and per_disk_gb < MIN_IOPS_VOLUME_GB:
        raise IopsSizeViolation(
            f"IOPS volumes must be at least {MIN_IOPS_VOLUME_GB}GB in size, "
            f"{disk_count} disks of {per_disk_gb}GB requested. "
            "Increase the array size or reduce the number of disks."
        )

    return DiskPlan(
        usable_size_gb=usable_size_gb,
        disk_count=disk_count,
        total_raw_gb=total_raw_gb,
        per_disk_gb=per_disk_gb,
        iops=iops,
    )
