"""Device naming for array volumes.

PV guests see attachments under the requested name, so every volume shares
the base letter and gets a numeric suffix (``/dev/sdh1``..``/dev/sdh8``).
HVM guests renumber attachments to sequential letters (``/dev/xvdh``,
``/dev/xvdi``, ...), so the attach request uses the bare base letter and the
visible device moves one letter per disk.
"""

from ..constants import FIRST_DRIVE_LETTER, LAST_DRIVE_LETTER
from ..models.array import DevicePath
from ..models.enums import VirtualizationMode
from .config_loader import NamingPolicy
from .exceptions import InvalidConfiguration, InvalidDriveId


def validate_drive_id(drive_id: str) -> str:
    """Check that drive_id is exactly one letter in d-z and return it.

    Raises:
        InvalidDriveId: Not exactly one character, or outside d-z
    """
    if not isinstance(drive_id, str) or len(drive_id) != 1:
        raise InvalidDriveId(f"Only specify one drive letter d-z, got '{drive_id}'")
    if not FIRST_DRIVE_LETTER <= drive_id <= LAST_DRIVE_LETTER:
        raise InvalidDriveId(
            f"Drive letter '{drive_id}' is invalid. "
            f"Please specify {FIRST_DRIVE_LETTER}-{LAST_DRIVE_LETTER}."
        )
    return drive_id


def device_for(
    disk_index: int,
    drive_id: str,
    virtualization: VirtualizationMode,
    policy: NamingPolicy | None = None,
) -> DevicePath:
    """Device path for the 1-based disk_index of an array."""
    policy = policy or NamingPolicy()
    letter = validate_drive_id(drive_id)
    if disk_index < 1:
        raise InvalidConfiguration(f"Disk index starts at 1, got {disk_index}")

    if virtualization is VirtualizationMode.PV:
        path = f"{policy.request_prefix}{letter}{disk_index}"
        return DevicePath(requested=path, visible=path)

    offset = ord(letter) + disk_index - 1
    if offset > ord(LAST_DRIVE_LETTER):
        raise InvalidConfiguration(
            f"Disk {disk_index} starting at '{letter}' runs past "
            f"{policy.hvm_visible_prefix}{LAST_DRIVE_LETTER}"
        )
    visible_letter = chr(offset)
    requested_letter = visible_letter if policy.hvm_request_incremented_letter else letter
    return DevicePath(
        requested=f"{policy.request_prefix}{requested_letter}",
        visible=f"{policy.hvm_visible_prefix}{visible_letter}",
    )


def device_range(
    disk_count: int,
    drive_id: str,
    virtualization: VirtualizationMode,
    policy: NamingPolicy | None = None,
) -> list[DevicePath]:
    """Device paths for disks 1..disk_count, in attach order."""
    return [
        device_for(index, drive_id, virtualization, policy)
        for index in range(1, disk_count + 1)
    ]


def discovery_prefix(drive_id: str, policy: NamingPolicy | None = None) -> str:
    """Device path prefix that identifies an array's volumes on an instance."""
    policy = policy or NamingPolicy()
    return f"{policy.request_prefix}{validate_drive_id(drive_id)}"


def assemble_hint(devices: list[DevicePath], level: int = 10, md_device: str = "/dev/md0") -> str:
    """mdadm command the operator runs on the instance once volumes are attached."""
    visible = " ".join(device.visible for device in devices)
    return f"mdadm --create -l{level} -n{len(devices)} {md_device} {visible}"
