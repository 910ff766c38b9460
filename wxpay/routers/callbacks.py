"""
回调处理路由
接收微信支付/退款结果通知，应答 XML
"""
import logging
from fastapi import APIRouter, Request
from fastapi.responses import Response

from ..models.schemas import PaymentStatus, RefundStatus
from ..services import wx_pay
from ..services.xml_utils import build_ack

router = APIRouter(prefix="/callback", tags=["回调处理"])
logger = logging.getLogger(__name__)


def _xml_response(return_code: str, return_msg: str, status_code: int = 200) -> Response:
    return Response(content=build_ack(return_code, return_msg), media_type="application/xml",
                    status_code=status_code)


@router.post("/pay")
async def pay_callback(request: Request):
    """
    支付结果通知
    验签通过后应答 SUCCESS，否则微信会重复推送
    """
    try:
        xml = (await request.body()).decode('utf-8')
        notification = wx_pay.wx_pay_client.verify_payment_callback(xml)

        if not notification.trusted:
            logger.warning(f"支付通知验签失败: {notification.failure.value}")
            return _xml_response("FAIL", "签名失败", status_code=400)

        if notification.status == PaymentStatus.SUCCESS:
            logger.info(f"订单 {notification.out_trade_no} 支付成功, transaction_id={notification.transaction_id}")
        else:
            logger.info(f"订单 {notification.out_trade_no} 支付失败: {notification.err_code_des}")

        return _xml_response("SUCCESS", "OK")

    except Exception as e:
        logger.error(f"处理支付通知异常: {e}")
        return _xml_response("FAIL", "处理异常", status_code=500)


@router.post("/refund")
async def refund_callback(request: Request):
    """
    退款结果通知
    req_info 解密失败视为不可信
    """
    try:
        xml = (await request.body()).decode('utf-8')
        notification = wx_pay.wx_pay_client.verify_refund_callback(xml)

        if notification.status == RefundStatus.UNTRUSTED:
            logger.warning(f"退款通知处理失败: {notification.failure.value}")
            return _xml_response("FAIL", "解密失败", status_code=400)

        logger.info(f"退款通知: refund_id={notification.refund_id}, refund_status={notification.refund_status}")
        return _xml_response("SUCCESS", "OK")

    except Exception as e:
        logger.error(f"处理退款通知异常: {e}")
        return _xml_response("FAIL", "处理异常", status_code=500)


@router.get("/test")
async def test_callback():
    """测试回调接口是否可访问"""
    return {"status": "ok", "message": "回调接口正常"}
