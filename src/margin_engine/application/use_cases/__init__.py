"""Application use cases."""

from .account import (
    GetAccountMetricsRequest,
    GetAccountMetricsResponse,
    GetAccountMetricsUseCase,
    GetOrdersRequest,
    GetOrdersResponse,
    GetOrdersUseCase,
    GetPositionsRequest,
    GetPositionsResponse,
    GetPositionsUseCase,
    PositionView,
    OpenAccountRequest,
    OpenAccountResponse,
    OpenAccountUseCase,
    trade_to_dict,
)
from .base import ErrorCode, TransactionalUseCase, UseCase, UseCaseRequest, UseCaseResponse
from .base_request import BaseRequestDTO
from .liquidation import (
    CheckLiquidationRequest,
    CheckLiquidationResponse,
    CheckLiquidationUseCase,
)
from .margin import CalculateMarginRequest, CalculateMarginResponse, CalculateMarginUseCase
from .trading import (
    CancelOrderRequest,
    CancelOrderResponse,
    CancelOrderUseCase,
    ClosePositionRequest,
    ClosePositionResponse,
    ClosePositionUseCase,
    PlaceOrderRequest,
    PlaceOrderResponse,
    PlaceOrderUseCase,
)

__all__ = [
    "BaseRequestDTO",
    "CalculateMarginRequest",
    "CalculateMarginResponse",
    "CalculateMarginUseCase",
    "CancelOrderRequest",
    "CancelOrderResponse",
    "CancelOrderUseCase",
    "CheckLiquidationRequest",
    "CheckLiquidationResponse",
    "CheckLiquidationUseCase",
    "ClosePositionRequest",
    "ClosePositionResponse",
    "ClosePositionUseCase",
    "ErrorCode",
    "GetAccountMetricsRequest",
    "GetAccountMetricsResponse",
    "GetAccountMetricsUseCase",
    "GetOrdersRequest",
    "GetOrdersResponse",
    "GetOrdersUseCase",
    "GetPositionsRequest",
    "GetPositionsResponse",
    "GetPositionsUseCase",
    "OpenAccountRequest",
    "OpenAccountResponse",
    "OpenAccountUseCase",
    "PlaceOrderRequest",
    "PlaceOrderResponse",
    "PlaceOrderUseCase",
    "PositionView",
    "TransactionalUseCase",
    "UseCase",
    "UseCaseRequest",
    "UseCaseResponse",
    "trade_to_dict",
]
