"""Centralized constants for EC2 RAID provisioning and migration."""

# RAID 10 layout
RAID10_MIRROR_FACTOR = 2
MIN_RAID10_DISKS = 4

# Disk count defaults (8 is considered ideal for PV, HVM variants default to 4)
DEFAULT_DISK_COUNT = 8
DEFAULT_HVM_DISK_COUNT = 4

# Drive identifiers
DEFAULT_DRIVE_ID = "h"
FIRST_DRIVE_LETTER = "d"  # a-c are reserved on most AMIs
LAST_DRIVE_LETTER = "z"

# Device prefixes
REQUEST_DEVICE_PREFIX = "/dev/sd"
HVM_VISIBLE_DEVICE_PREFIX = "/dev/xvd"

# Provisioned IOPS
IOPS_VOLUME_TYPE = "io1"
MIN_IOPS_VOLUME_GB = 10

# Migration
MIN_ARRAY_VOLUMES = 3
DEFAULT_RECOVERY_FILE = "/tmp/ec2raid-safetyfile.dat"  # noqa: S108
VOLUME_STATE_AVAILABLE = "available"
