"""Enum definitions for EC2 RAID tools."""

from enum import Enum


class VirtualizationMode(Enum):
    """Instance virtualization mode; decides how attached volumes are named."""

    HVM = "hvm"
    PV = "pv"


class RaidAction(Enum):
    """Top-level operations exposed by the CLI and the MCP server."""

    BUILD = "build"
    MOVE = "move"
