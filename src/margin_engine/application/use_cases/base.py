"""
Base Use Case

Provides the foundation for all use cases in the application layer.
Implements common patterns like logging, validation, and error handling.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID, uuid4

from margin_engine.application.interfaces.exceptions import EntityNotFoundError
from margin_engine.domain.exceptions import (
    ConcurrencyException,
    StaleDataException,
    ValidationError,
)
from margin_engine.domain.exceptions_trading import (
    InsufficientFundsException,
    OrderStateConflictException,
)

logger = logging.getLogger(__name__)

# Type variables for request and response
TRequest = TypeVar("TRequest")
TResponse = TypeVar("TResponse")


class ErrorCode(Enum):
    """Failure categories reported on unsuccessful responses."""

    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_ASSET_CLASS = "unknown_asset_class"
    TRADE_EXECUTION_FAILURE = "trade_execution_failure"
    ORDER_STATE_CONFLICT = "order_state_conflict"
    NOT_FOUND = "not_found"
    CONCURRENCY_CONFLICT = "concurrency_conflict"


@dataclass
class UseCaseRequest:
    """Base class for use case requests."""

    request_id: UUID | None = None
    correlation_id: UUID | None = None
    metadata: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        """Initialize request with defaults."""
        if self.request_id is None:
            self.request_id = uuid4()
        if self.metadata is None:
            self.metadata = {}


@dataclass
class UseCaseResponse:
    """Base class for use case responses."""

    success: bool
    data: Any | None = None
    error: str | None = None
    request_id: UUID | None = None
    error_code: ErrorCode | None = None
    message: str | None = None

    @classmethod
    def success_response(
        cls, data: Any, request_id: UUID, message: str | None = None
    ) -> "UseCaseResponse":
        """Create a successful response."""
        return cls(success=True, data=data, request_id=request_id, message=message)

    @classmethod
    def error_response(
        cls,
        error: str,
        request_id: UUID,
        error_code: ErrorCode = ErrorCode.TRADE_EXECUTION_FAILURE,
    ) -> "UseCaseResponse":
        """Create an error response."""
        return cls(
            success=False,
            error=error,
            message=error,
            error_code=error_code,
            request_id=request_id,
        )


def error_code_for(exc: Exception) -> ErrorCode:
    """Classify an exception raised while processing a request."""
    if isinstance(exc, ValidationError):
        return ErrorCode.VALIDATION_ERROR
    if isinstance(exc, InsufficientFundsException):
        return ErrorCode.INSUFFICIENT_FUNDS
    if isinstance(exc, OrderStateConflictException):
        return ErrorCode.ORDER_STATE_CONFLICT
    if isinstance(exc, EntityNotFoundError):
        return ErrorCode.NOT_FOUND
    if isinstance(exc, (ConcurrencyException, StaleDataException)):
        return ErrorCode.CONCURRENCY_CONFLICT
    return ErrorCode.TRADE_EXECUTION_FAILURE


class UseCase(ABC, Generic[TRequest, TResponse]):
    """
    Abstract base class for all use cases.

    Provides a consistent interface and common functionality for
    business logic orchestration. Failures come back as error responses;
    only version conflicts propagate, so the caller can retry the whole
    transaction.
    """

    response_class: type[UseCaseResponse] = UseCaseResponse

    def __init__(self, name: str | None = None) -> None:
        """
        Initialize use case.

        Args:
            name: Optional name for the use case (defaults to class name)
        """
        self.name = name or self.__class__.__name__
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    async def execute(self, request: TRequest) -> TResponse:
        """
        Execute the use case.

        This method provides the template for use case execution with
        logging, validation, and error handling.
        """
        request_id = getattr(request, "request_id", None) or uuid4()

        self.logger.info(
            f"Executing {self.name}",
            extra={
                "request_id": str(request_id),
                "use_case": self.name,
            },
        )

        try:
            # Validate the request
            validation_error = await self.validate(request)
            if validation_error:
                self.logger.warning(
                    f"Validation failed for {self.name}: {validation_error}",
                    extra={"request_id": str(request_id)},
                )
                return self._create_error_response(
                    validation_error, request_id, ErrorCode.VALIDATION_ERROR
                )

            # Execute the business logic
            response = await self.process(request)

            self.logger.info(
                f"Successfully executed {self.name}",
                extra={
                    "request_id": str(request_id),
                    "success": getattr(response, "success", True),
                },
            )

            return response

        except (ConcurrencyException, StaleDataException):
            raise

        except Exception as e:
            error_code = error_code_for(e)
            if error_code == ErrorCode.TRADE_EXECUTION_FAILURE:
                self.logger.error(
                    f"Error executing {self.name}: {e}",
                    extra={"request_id": str(request_id)},
                    exc_info=True,
                )
            else:
                self.logger.warning(
                    f"{self.name} rejected: {e}",
                    extra={"request_id": str(request_id), "error_code": error_code.value},
                )
            return self._create_error_response(str(e), request_id, error_code)

    @abstractmethod
    async def validate(self, request: TRequest) -> str | None:
        """
        Validate the request.

        Returns:
            Error message if validation fails, None otherwise
        """
        pass

    @abstractmethod
    async def process(self, request: TRequest) -> TResponse:
        """Process the validated request and execute business logic."""
        pass

    def _create_error_response(
        self, error: str, request_id: UUID, error_code: ErrorCode
    ) -> TResponse:
        return self.response_class.error_response(error, request_id, error_code)  # type: ignore


class TransactionalUseCase(UseCase[TRequest, TResponse]):
    """
    Base class for use cases that require database transactions.

    Commits when the response is successful and rolls back otherwise, so a
    failed or rejected request never leaves partial writes behind.
    """

    def __init__(self, unit_of_work: Any, name: str | None = None) -> None:
        """
        Initialize transactional use case.

        Args:
            unit_of_work: Unit of work for transaction management
            name: Optional name for the use case
        """
        super().__init__(name)
        self.unit_of_work = unit_of_work

    async def execute(self, request: TRequest) -> TResponse:
        """Execute the use case within a transaction."""
        request_id = getattr(request, "request_id", None) or uuid4()

        self.logger.debug(
            f"Starting transaction for {self.name}", extra={"request_id": str(request_id)}
        )

        async with self.unit_of_work as uow:
            try:
                # Call parent execute which handles validation and processing
                response = await super().execute(request)

                # Commit if successful
                if getattr(response, "success", True):
                    await uow.commit()
                    self.logger.debug(
                        f"Transaction committed for {self.name}",
                        extra={"request_id": str(request_id)},
                    )
                else:
                    await uow.rollback()
                    self.logger.info(
                        f"Transaction rolled back for {self.name}",
                        extra={"request_id": str(request_id)},
                    )

                return response

            except Exception as e:
                if await uow.is_active():
                    await uow.rollback()
                self.logger.warning(
                    f"Transaction rolled back due to error in {self.name}: {e}",
                    extra={"request_id": str(request_id)},
                )
                raise
