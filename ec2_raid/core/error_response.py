"""RFC 7807 style error responses for EC2 RAID tool results."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import (
    ArrayNotFound,
    Ec2RaidError,
    InstanceNotFound,
    InvalidConfiguration,
    IopsSizeViolation,
    ProviderCallFailed,
    ZoneMismatch,
)


class ErrorDetail(BaseModel):
    """RFC 7807 compliant error detail structure."""

    success: bool = Field(default=False, description="Always False for errors")
    error: str = Field(description="Human-readable error message")
    type: str | None = Field(default=None, description="Problem type URI")
    title: str | None = Field(default=None, description="Problem type summary")
    detail: str | None = Field(default=None, description="Specific problem details")
    instance: str | None = Field(default=None, description="Problem occurrence URI")
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class Ec2RaidErrorResponse:
    """Factory for creating standardized EC2 RAID error responses."""

    PROBLEM_TYPES: dict[str, dict[str, str]] = {
        "invalid-configuration": {
            "type": "/problems/invalid-configuration",
            "title": "Invalid Array Configuration",
        },
        "iops-size-violation": {
            "type": "/problems/iops-size-violation",
            "title": "IOPS Volume Too Small",
        },
        "zone-mismatch": {
            "type": "/problems/zone-mismatch",
            "title": "Availability Zone Mismatch",
        },
        "instance-not-found": {
            "type": "/problems/instance-not-found",
            "title": "Instance Not Found",
        },
        "array-not-found": {
            "type": "/problems/array-not-found",
            "title": "Array Not Found",
        },
        "provider-call-failed": {
            "type": "/problems/provider-call-failed",
            "title": "Provider Call Failed",
        },
    }

    # Most specific first: InvalidDriveId resolves through InvalidConfiguration
    EXCEPTION_PROBLEMS: list[tuple[type[Ec2RaidError], str]] = [
        (InvalidConfiguration, "invalid-configuration"),
        (IopsSizeViolation, "iops-size-violation"),
        (ZoneMismatch, "zone-mismatch"),
        (InstanceNotFound, "instance-not-found"),
        (ArrayNotFound, "array-not-found"),
        (ProviderCallFailed, "provider-call-failed"),
    ]

    @classmethod
    def create_error(
        cls,
        error_message: str,
        problem_type: str | None = None,
        detail: str | None = None,
        instance: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a standardized error response.

        Args:
            error_message: Primary error message
            problem_type: Standard problem type key or custom type URI
            detail: Additional problem-specific details
            instance: Identifier for this specific occurrence
            context: Additional context fields (instance_id, record_path, etc.)

        Returns:
            RFC 7807 compliant error response dictionary
        """
        error_detail = ErrorDetail(error=error_message, detail=detail, instance=instance)

        if problem_type and problem_type in cls.PROBLEM_TYPES:
            problem_info = cls.PROBLEM_TYPES[problem_type]
            error_detail.type = problem_info["type"]
            error_detail.title = problem_info["title"]
        elif problem_type:
            error_detail.type = problem_type

        response = error_detail.model_dump(exclude_none=True)

        if context:
            reserved_fields = set(ErrorDetail.model_fields)
            response.update({k: v for k, v in context.items() if k not in reserved_fields})

        return response

    @classmethod
    def problem_type_for(cls, error: Ec2RaidError) -> str | None:
        for exc_type, problem_type in cls.EXCEPTION_PROBLEMS:
            if isinstance(error, exc_type):
                return problem_type
        return None

    @classmethod
    def from_exception(
        cls, error: Ec2RaidError, instance: str | None = None, context: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Error response for a domain exception, keeping any partial progress."""
        context = dict(context or {})
        if isinstance(error, ProviderCallFailed):
            context["completed"] = [
                item.model_dump() if hasattr(item, "model_dump") else item
                for item in error.completed
            ]
            if error.orphaned_volume_id:
                context["orphaned_volume_id"] = error.orphaned_volume_id
            if error.record_path:
                context["record_path"] = error.record_path

        return cls.create_error(
            error_message=str(error),
            problem_type=cls.problem_type_for(error),
            instance=instance,
            context=context,
        )

    @classmethod
    def validation_error(cls, field: str, value: Any, reason: str) -> dict[str, Any]:
        """Standard validation error."""
        return cls.create_error(
            error_message=f"Validation failed for '{field}': {reason}",
            problem_type="invalid-configuration",
            detail=f"The value '{value}' for field '{field}' is invalid: {reason}",
            instance=f"/validation/{field}",
            context={"field": field, "value": str(value), "reason": reason},
        )
