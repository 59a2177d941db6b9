"""
Base Request DTO for Use Cases

Provides a base class for all request DTOs with common fields and behavior.
"""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from .base import UseCaseRequest


@dataclass(kw_only=True)
class BaseRequestDTO(UseCaseRequest):
    """
    Base class for all request DTOs with common fields.

    Uses kw_only=True to allow derived classes to have required fields
    before optional ones from the base class.
    """

    request_id: UUID = field(default_factory=uuid4)
    correlation_id: UUID | None = field(default=None)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert request to dictionary representation."""
        return {
            "request_id": str(self.request_id),
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "metadata": self.metadata,
            **{
                k: v
                for k, v in self.__dict__.items()
                if k not in ["request_id", "correlation_id", "metadata"]
            },
        }
