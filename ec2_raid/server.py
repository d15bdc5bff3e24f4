"""FastMCP server exposing RAID array provisioning and migration as tools."""

import argparse
import asyncio
import os
import sys
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import Field, ValidationError

from .core.config_loader import Ec2RaidConfig, load_config
from .core.error_response import Ec2RaidErrorResponse
from .core.exceptions import Ec2RaidError, ProviderCallFailed
from .core.logging_config import get_server_logger, setup_logging
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware
from .models.array import ArrayRequest
from .models.params import MigrateArrayParams, ProvisionArrayParams
from .services import (
    AwsCliVolumeService,
    CloudVolumeService,
    MigrationOrchestrator,
    ProvisioningOrchestrator,
)


class Ec2RaidServer:
    """FastMCP server wrapping the provisioning and migration orchestrators."""

    def __init__(
        self, config: Ec2RaidConfig, volume_service: CloudVolumeService | None = None
    ):
        self.config = config
        self.logger = get_server_logger()

        self.volume_service = volume_service or AwsCliVolumeService(config.aws)
        self.provisioning = ProvisioningOrchestrator(self.volume_service, config)
        self.migration = MigrationOrchestrator(self.volume_service, config)

        # FastMCP app will be created later to prevent auto-start
        self.app: FastMCP | None = None

        self.logger.info(
            "EC2 RAID server initialized",
            region=config.aws.region,
            recovery_file=config.migration.recovery_file,
        )

    def _initialize_app(self) -> None:
        """Initialize FastMCP app, middleware, and register tools."""
        self.app = FastMCP("EC2 RAID Manager")

        self.app.add_middleware(
            ErrorHandlingMiddleware(
                include_traceback=self.config.log_level.upper() == "DEBUG",
                track_error_stats=True,
            )
        )
        self.app.add_middleware(LoggingMiddleware())

        self.app.tool(
            self.provision_raid_array,
            annotations={
                "title": "Provision RAID 10 Array",
                "readOnlyHint": False,  # Creates and attaches volumes when confirmed
                "destructiveHint": False,
                "idempotentHint": False,  # Every confirmed call creates new volumes
                "openWorldHint": True,
            },
        )
        self.app.tool(
            self.migrate_raid_array,
            annotations={
                "title": "Migrate RAID Array",
                "readOnlyHint": False,
                "destructiveHint": True,  # Detaches volumes from the source instance
                "idempotentHint": False,
                "openWorldHint": True,
            },
        )

    def _domain_failure(self, error: Ec2RaidError, instance: str) -> dict[str, Any]:
        """Log a failed operation and turn it into an error result.

        Rejected requests changed nothing on the provider side and are logged at
        warning level; provider failures may have left partial work behind.
        """
        log_data = {"error_type": type(error).__name__, "error": str(error), "instance": instance}
        if isinstance(error, ProviderCallFailed):
            self.logger.error(
                "Operation failed",
                **log_data,
                completed=len(error.completed),
                orphaned_volume_id=error.orphaned_volume_id,
                record_path=error.record_path,
            )
        else:
            self.logger.warning("Request rejected", **log_data)
        return Ec2RaidErrorResponse.from_exception(error, instance=instance)

    @staticmethod
    def _validation_failure(error: ValidationError) -> dict[str, Any]:
        first = error.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "request"
        return Ec2RaidErrorResponse.validation_error(field, first.get("input"), first["msg"])

    async def provision_raid_array(
        self,
        size_gb: Annotated[int, Field(description="Usable size of the RAID 10 array in GB")],
        zone: Annotated[str, Field(description="Availability zone, e.g. us-east-1a")],
        instance_id: Annotated[str, Field(description="Instance to attach the volumes to")],
        drive_id: Annotated[str, Field(description="Drive letter d-z or device id")] = "h",
        disks: Annotated[int | None, Field(description="Number of volumes")] = None,
        iops: Annotated[int | None, Field(description="Provisioned IOPS per volume")] = None,
        hvm: Annotated[bool, Field(description="Instance uses HVM virtualization")] = False,
        confirm: Annotated[
            bool, Field(description="Create volumes; when false only the plan is returned")
        ] = False,
    ) -> dict[str, Any]:
        """Create a RAID 10 array of EBS volumes and attach it to an instance."""
        try:
            params = ProvisionArrayParams(
                size_gb=size_gb,
                zone=zone,
                instance_id=instance_id,
                drive_id=drive_id,
                disks=disks,
                iops=iops,
                hvm=hvm,
                confirm=confirm,
            )
            request = ArrayRequest(
                usable_size_gb=params.size_gb,
                zone=params.zone,
                instance_id=params.instance_id,
                drive_id=params.drive_id,
                disk_count=params.disks,
                iops=params.iops,
                virtualization=params.virtualization,
            )
        except ValidationError as e:
            return self._validation_failure(e)

        instance = f"/instances/{request.instance_id}/arrays/{request.drive_id}"
        try:
            if not params.confirm:
                disk_plan, devices = await self.provisioning.preview(request)
                return {
                    "success": True,
                    "confirmed": False,
                    "plan": disk_plan.model_dump(),
                    "devices": [device.model_dump() for device in devices],
                    "message": (
                        f"Would create {disk_plan.disk_count} volumes of "
                        f"{disk_plan.per_disk_gb} GB in {request.zone}. "
                        "Call again with confirm=true to proceed."
                    ),
                }

            result = await self.provisioning.provision(request)
        except Ec2RaidError as e:
            return self._domain_failure(e, instance)

        return {"success": True, "confirmed": True, **result.model_dump(mode="json")}

    async def migrate_raid_array(
        self,
        from_instance: Annotated[str, Field(description="Instance the array is attached to")],
        to_instance: Annotated[str, Field(description="Instance to move the array to")],
        drive_id: Annotated[str, Field(description="Drive letter of the array, e.g. 'h'")],
        confirm: Annotated[
            bool, Field(description="Move volumes; when false only discovery is returned")
        ] = False,
    ) -> dict[str, Any]:
        """Move a RAID array's volumes to another instance in the same zone."""
        try:
            params = MigrateArrayParams(
                from_instance=from_instance,
                to_instance=to_instance,
                drive_id=drive_id,
                confirm=confirm,
            )
        except ValidationError as e:
            return self._validation_failure(e)

        instance = f"/migrations/{params.from_instance}/{params.to_instance}/{params.drive_id}"
        try:
            if not params.confirm:
                zone, entries = await self.migration.discover(
                    params.from_instance, params.to_instance, params.drive_id
                )
                return {
                    "success": True,
                    "confirmed": False,
                    "zone": zone,
                    "volumes": [entry.model_dump() for entry in entries],
                    "message": (
                        f"Would move {len(entries)} volumes from {params.from_instance} "
                        f"to {params.to_instance}. Call again with confirm=true to proceed."
                    ),
                }

            result = await self.migration.migrate(
                params.from_instance, params.to_instance, params.drive_id
            )
        except Ec2RaidError as e:
            return self._domain_failure(e, instance)

        return {"success": True, "confirmed": True, **result.model_dump(mode="json")}

    def run(self, transport: str = "stdio", host: str = "127.0.0.1", port: int = 8000) -> None:
        if self.app is None:
            self._initialize_app()
        if transport == "http":
            self.app.run(transport="http", host=host, port=port)
        else:
            self.app.run()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="FastMCP EC2 RAID manager")
    parser.add_argument("--config", default=os.getenv("EC2RAID_CONFIG"), help="Config file path")
    parser.add_argument(
        "--transport", default="stdio", choices=["stdio", "http"], help="MCP transport"
    )
    parser.add_argument("--host", default=os.getenv("FASTMCP_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("FASTMCP_PORT", "8000")))
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--log-dir", default=os.getenv("LOG_DIR"), help="Directory for log files")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(log_dir=args.log_dir, log_level=args.log_level or config.log_level)
    logger = get_server_logger()

    server = Ec2RaidServer(config)
    try:
        server.run(transport=args.transport, host=args.host, port=args.port)
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e))
        sys.exit(1)
    finally:
        asyncio.run(server.volume_service.close())


if __name__ == "__main__":
    main()
