"""Command line interface: ``ec2raid build`` and ``ec2raid move``."""

import argparse
import asyncio
import sys
from collections.abc import Callable

import structlog
from pydantic import ValidationError

from .constants import DEFAULT_DISK_COUNT, DEFAULT_HVM_DISK_COUNT
from .core.config_loader import Ec2RaidConfig, load_config
from .core.exceptions import Ec2RaidError, ProviderCallFailed
from .core.logging_config import setup_logging
from .models.array import ArrayRequest
from .models.enums import RaidAction, VirtualizationMode
from .services import (
    AwsCliVolumeService,
    CloudVolumeService,
    MigrationOrchestrator,
    ProvisioningOrchestrator,
)

logger = structlog.get_logger()

MOVE_NOTICE = (
    "*** This will migrate a RAID array from one instance to another instance in the same "
    "availability zone. A safer way to do this is to build a new array on the destination "
    "instance and rsync everything over."
)


def confirm(prompt: str = "Continue? [y/N] ", read: Callable[[str], str] | None = None) -> bool:
    """Ask the operator for a yes/no answer; anything but y/yes is no."""
    try:
        response = (read or input)(prompt)
    except EOFError:
        return False
    return response.strip().lower() in ("y", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ec2raid", description="Build and move RAID 10 EBS arrays on EC2 instances"
    )
    parser.add_argument("--config", default=None, help="Configuration file path")
    parser.add_argument(
        "--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    parser.add_argument("--log-dir", default=None, help="Also write JSON logs to this directory")
    subparsers = parser.add_subparsers(dest="action", required=True)

    build = subparsers.add_parser(
        RaidAction.BUILD.value, help="Create EBS volumes and attach them for a RAID 10 array"
    )
    build.add_argument("-s", "--size", type=int, required=True, help="Usable array size in GB")
    build.add_argument("-z", "--zone", required=True, help="Availability zone")
    build.add_argument("-i", "--instance", required=True, help="Instance id to attach to")
    build.add_argument("-d", "--drive", default=None, help="Drive identifier (defaults to h)")
    build.add_argument(
        "-n",
        "--disks",
        type=int,
        default=None,
        help=f"Number of disks (defaults to {DEFAULT_DISK_COUNT}, {DEFAULT_HVM_DISK_COUNT} with --hvm)",
    )
    build.add_argument("-o", "--iops", type=int, default=None, help="Provisioned IOPS per volume")
    build.add_argument("--hvm", action="store_true", help="Instance uses HVM virtualization")
    build.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    move = subparsers.add_parser(
        RaidAction.MOVE.value, help="Move an array to another instance in the same zone"
    )
    move.add_argument("-f", "--from", dest="from_instance", required=True, help="Source instance")
    move.add_argument("-t", "--to", dest="to_instance", required=True, help="Target instance")
    move.add_argument(
        "-d", "--drive", required=True, help="Drive letter, ie 'h' for /dev/sdh*"
    )
    move.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    return parser


async def run_build(
    args: argparse.Namespace,
    config: Ec2RaidConfig,
    volume_service: CloudVolumeService,
    read: Callable[[str], str] | None = None,
) -> int:
    request = ArrayRequest(
        usable_size_gb=args.size,
        zone=args.zone,
        instance_id=args.instance,
        drive_id=args.drive or config.defaults.drive_id,
        disk_count=args.disks,
        iops=args.iops,
        virtualization=VirtualizationMode.HVM if args.hvm else VirtualizationMode.PV,
    )
    orchestrator = ProvisioningOrchestrator(volume_service, config)

    disk_plan, devices = await orchestrator.preview(request)
    iops_note = f" with {disk_plan.iops} I/O operations per second" if disk_plan.iops else ""
    print(
        f"Creating a {disk_plan.usable_size_gb} GB array in {request.zone} "
        f"for instance {request.instance_id}{iops_note}."
    )
    print(
        f"This means a total of {disk_plan.total_raw_gb} GB in {disk_plan.disk_count} disks "
        f"of {disk_plan.per_disk_gb} GB each, attached as {devices[0].requested}"
        f"..{devices[-1].requested}."
    )
    if not args.yes and not confirm(read=read):
        print("Aborted.")
        return 1

    result = await orchestrator.provision(request)
    for attachment in result.attachments:
        print(f"\t{attachment.volume_id} attached as {attachment.device_path}")
    print(
        f"EC2 volumes creation is complete ({result.first_device} - {result.last_device}). "
        f"You can now log into the instance and create the raid array:\n\t{result.assemble_hint}"
    )
    return 0


async def run_move(
    args: argparse.Namespace,
    config: Ec2RaidConfig,
    volume_service: CloudVolumeService,
    read: Callable[[str], str] | None = None,
) -> int:
    orchestrator = MigrationOrchestrator(volume_service, config)

    print(MOVE_NOTICE)
    zone, entries = await orchestrator.discover(args.from_instance, args.to_instance, args.drive)
    print(
        f"Moving an array of {len(entries)} disks from {args.from_instance} "
        f"to {args.to_instance} in {zone}."
    )
    print(f"Found {len(entries)} volumes:")
    for entry in entries:
        print(f"{entry.volume_id} as {entry.device_path}")
    if not args.yes and not confirm(read=read):
        print("Aborted.")
        return 1

    result = await orchestrator.migrate(args.from_instance, args.to_instance, args.drive)
    print(f"Done. There is a backup file of the mapping in {result.record_path}.")
    return 0


def report_failure(error: Exception) -> None:
    print(f"Error: {error}", file=sys.stderr)
    if isinstance(error, ProviderCallFailed):
        for item in error.completed:
            print(f"\tcompleted: {item.volume_id} {item.device_path}", file=sys.stderr)
        if error.orphaned_volume_id:
            print(
                f"\tcreated but not attached: {error.orphaned_volume_id}", file=sys.stderr
            )
        if error.record_path:
            print(f"\trecovery record: {error.record_path}", file=sys.stderr)


def main(
    argv: list[str] | None = None, volume_service: CloudVolumeService | None = None
) -> int:
    """Entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(log_dir=args.log_dir, log_level=args.log_level or config.log_level)
    volume_service = volume_service or AwsCliVolumeService(config.aws)

    runner = run_build if args.action == RaidAction.BUILD.value else run_move

    async def run() -> int:
        try:
            return await runner(args, config, volume_service)
        finally:
            await volume_service.close()

    try:
        return asyncio.run(run())
    except (Ec2RaidError, ValidationError) as e:
        logger.error("Command failed", action=args.action, error=str(e))
        report_failure(e)
        return 1


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()
