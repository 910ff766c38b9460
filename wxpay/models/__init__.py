from .schemas import (
    CreateOrderRequest,
    FailureKind,
    JsapiPayment,
    PaymentNotification,
    PaymentStatus,
    PrepayResult,
    RefundNotification,
    RefundQueryCode,
    RefundQueryResult,
    RefundRequest,
    RefundResult,
    RefundStatus,
)
