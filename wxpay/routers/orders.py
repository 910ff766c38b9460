"""
订单与退款路由
统一下单（返回小程序调起支付参数）、申请退款、退款查询
"""
import logging
from fastapi import APIRouter, HTTPException

from ..models.schemas import CreateOrderRequest, FailureKind, RefundQueryCode, RefundRequest
from ..services import wx_pay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["订单管理"])


def _failure_status(failure) -> int:
    """网络异常返回 502，业务失败返回 400"""
    return 502 if failure == FailureKind.TRANSPORT else 400


@router.post("/")
async def create_order(request: CreateOrderRequest):
    """统一下单"""
    result = await wx_pay.wx_pay_client.place_order(
        order_id=request.order_id,
        amount=request.amount,
        open_id=request.open_id,
        client_ip=request.client_ip,
        attach=request.attach
    )
    if not result.ok:
        raise HTTPException(status_code=_failure_status(result.failure), detail=f"统一下单失败: {result.failure.value}")
    return {"order_id": request.order_id, "prepay_id": result.prepay_id}


@router.post("/jsapi")
async def create_jsapi_payment(request: CreateOrderRequest):
    """统一下单并返回 wx.requestPayment 参数"""
    payment = await wx_pay.wx_pay_client.preplace(
        order_id=request.order_id,
        amount=request.amount,
        open_id=request.open_id,
        client_ip=request.client_ip,
        attach=request.attach
    )
    if payment is None:
        raise HTTPException(status_code=400, detail="统一下单失败")
    return {
        "appId": payment.app_id,
        "timeStamp": payment.time_stamp,
        "nonceStr": payment.nonce_str,
        "package": payment.package,
        "signType": payment.sign_type,
        "paySign": payment.pay_sign
    }


@router.post("/refund")
async def refund_order(request: RefundRequest):
    """申请退款"""
    result = await wx_pay.wx_pay_client.refund(
        out_refund_no=request.out_refund_no,
        out_trade_no=request.out_trade_no,
        total_fee=request.total_fee,
        transaction_id=request.transaction_id,
        refund_fee=request.refund_fee,
        refund_desc=request.refund_desc
    )
    if not result.ok:
        raise HTTPException(status_code=_failure_status(result.failure), detail=f"退款申请失败: {result.failure.value}")
    return {"message": "退款申请已提交", "out_refund_no": request.out_refund_no, "refund_id": result.refund_id}


@router.get("/refund/{refund_id}")
async def query_refund(refund_id: str):
    """查询退款状态"""
    result = await wx_pay.wx_pay_client.query_refund(refund_id)
    logger.info(f"退款查询结果: refund_id={refund_id}, code={result.code.value}, status={result.refund_status}")

    if result.code == RefundQueryCode.SUCCESS:
        return {"refund_id": refund_id, "refund_status": result.refund_status}
    if result.code == RefundQueryCode.RESULT_FAILED:
        raise HTTPException(status_code=400, detail="退款查询业务失败")
    raise HTTPException(status_code=502, detail="退款查询通信失败，可稍后重试")
