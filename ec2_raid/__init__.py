"""Provision and migrate RAID 10 EBS arrays on EC2 instances."""

__version__ = "0.3.0"
