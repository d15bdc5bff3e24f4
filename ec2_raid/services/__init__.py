"""
EC2 RAID Services

Orchestration over the cloud volume service:
- provision: build a RAID 10 array on one instance
- migration: move an array between instances in one zone
- volume_service: provider contract and its aws CLI implementation
"""

from .migration import MigrationOrchestrator  # noqa: F401
from .provision import ProvisioningOrchestrator  # noqa: F401
from .volume_service import AwsCliVolumeService, CloudVolumeService  # noqa: F401

__all__ = [
    "AwsCliVolumeService",
    "CloudVolumeService",
    "MigrationOrchestrator",
    "ProvisioningOrchestrator",
]
