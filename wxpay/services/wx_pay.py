"""
微信支付 v2 客户端（异步版本）
统一下单、退款、退款查询，以及支付/退款通知验签
"""
import hmac
import logging
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Union

import httpx

from ..config import Settings, settings as default_settings
from ..models.schemas import (
    FailureKind, JsapiPayment, PaymentNotification, PaymentStatus, PrepayResult,
    RefundNotification, RefundQueryCode, RefundQueryResult, RefundResult, RefundStatus,
)
from .crypto_utils import decrypt_req_info
from .sign_utils import (
    PAY_NOTIFY_HEAD_FIELDS, PAY_NOTIFY_TAIL_FIELDS, REFUND_DETAIL_FIELDS, REFUND_FIELDS,
    REFUND_NOTIFY_FIELDS, REFUND_QUERY_FIELDS, SIGN_TYPE_MD5, UNIFIED_ORDER_FIELDS,
    get_sign_content, iter_present, md5_hex, sign_content, sign_fields,
)
from .xml_utils import (
    PREPAY_ID_PATTERN, REFUND_ID_PATTERN, REFUND_STATUS_PATTERN, contains_result_success,
    decode_xml, encode_xml, extract_coupons, is_return_success, parse_count,
)

logger = logging.getLogger(__name__)

UNIFIED_ORDER_PATH = '/pay/unifiedorder'
REFUND_PATH = '/secapi/pay/refund'
REFUND_QUERY_PATH = '/pay/refundquery'

REFUND_STATUS_MAP = {
    'SUCCESS': RefundStatus.SUCCESS,
    'CHANGE': RefundStatus.CHANGE,
    'REFUNDCLOSE': RefundStatus.REFUNDCLOSE,
}


def to_fen(amount: Union[Decimal, str, int, float]) -> str:
    """元转分，四舍五入到整数"""
    fen = (Decimal(str(amount)) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return str(int(fen))


class WxPayClient:
    """微信支付客户端"""

    def __init__(self, options: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.options = options or default_settings
        self.gateway_url = self.options.WX_GATEWAY_URL.rstrip('/')
        self._client = http_client

    @property
    def mch_key(self) -> str:
        return self.options.WX_MCH_KEY

    def _debug(self, message: str):
        if self.options.WX_IS_DEBUG:
            logger.info(message)

    def _cert(self):
        if self.options.WX_API_CERT and self.options.WX_API_KEY:
            return self.options.WX_API_CERT, self.options.WX_API_KEY
        return self.options.WX_API_CERT or None

    async def _post_xml(self, path: str, xml: str, use_cert: bool = False) -> str:
        """POST 原始 XML，返回响应文本"""
        url = f'{self.gateway_url}{path}'
        content = xml.encode('utf-8')
        if self._client is not None:
            response = await self._client.post(url, content=content)
        else:
            cert = self._cert() if use_cert else None
            async with httpx.AsyncClient(timeout=self.options.WX_HTTP_TIMEOUT, cert=cert) as client:
                response = await client.post(url, content=content)
        return response.content.decode('utf-8')

    # ==================== 订单接口 ====================

    async def place_order(self, order_id: str, amount: Union[Decimal, str, int, float], open_id: str,
                          client_ip: str, attach: str = '') -> PrepayResult:
        """
        统一下单

        Args:
            order_id: 商户订单号，同时用于生成 nonce_str（相同订单号签名相同，便于幂等重试）
            amount: 订单金额（元），按分取整
            open_id: 用户 openid
            client_ip: 终端 IP
            attach: 附加数据，支付通知中原样返回

        Returns:
            PrepayResult，失败时 prepay_id 为空
        """
        fields = {
            'appid': self.options.WX_APP_ID,
            'attach': attach,
            'body': f'{self.options.WX_PLATFORM_NAME}订单',
            'mch_id': self.options.WX_MCH_ID,
            'nonce_str': md5_hex(order_id),
            'notify_url': self.options.WX_PAYMENT_NOTIFY_URL,
            'openid': open_id,
            'out_trade_no': order_id,
            'sign_type': SIGN_TYPE_MD5,
            'spbill_create_ip': client_ip,
            'total_fee': to_fen(amount),
            'trade_type': 'JSAPI',
        }
        sign = sign_fields(fields, UNIFIED_ORDER_FIELDS, self.mch_key)
        request_xml = encode_xml(fields, UNIFIED_ORDER_FIELDS, sign)
        self._debug(f"UnifiedOrder: {request_xml}")

        try:
            xml = await self._post_xml(UNIFIED_ORDER_PATH, request_xml)
        except Exception as e:
            logger.exception(f"统一下单异常: order_id={order_id}, {e}")
            return PrepayResult(failure=FailureKind.TRANSPORT)

        self._debug(f"UnifiedOrder 返回: {xml}")
        if not is_return_success(xml) or not contains_result_success(xml):
            logger.warning(f"统一下单失败: order_id={order_id}, {xml}")
            return PrepayResult(failure=FailureKind.PROTOCOL)

        match = PREPAY_ID_PATTERN.search(xml)
        if not match:
            logger.warning(f"统一下单返回缺少 prepay_id: {xml}")
            return PrepayResult(failure=FailureKind.MALFORMED)
        return PrepayResult(prepay_id=match.group(1))

    async def preplace(self, order_id: str, amount: Union[Decimal, str, int, float], open_id: str,
                       client_ip: str, attach: str = '') -> Optional[JsapiPayment]:
        """统一下单并生成小程序调起支付参数，下单失败返回 None"""
        result = await self.place_order(order_id, amount, open_id, client_ip, attach)
        if not result.ok:
            return None

        nonce_str = md5_hex(order_id)
        time_stamp = str(int(time.time()))
        package = f'prepay_id={result.prepay_id}'
        content = (f'appId={self.options.WX_APP_ID}&nonceStr={nonce_str}&package={package}'
                   f'&signType={SIGN_TYPE_MD5}&timeStamp={time_stamp}&key={self.mch_key}')
        return JsapiPayment(
            app_id=self.options.WX_APP_ID,
            time_stamp=time_stamp,
            nonce_str=nonce_str,
            package=package,
            sign_type=SIGN_TYPE_MD5,
            pay_sign=md5_hex(content),
        )

    # ==================== 退款接口 ====================

    async def refund(self, out_refund_no: str, out_trade_no: str, total_fee: str, transaction_id: str,
                     refund_fee: str, refund_account: str = '', refund_desc: str = '',
                     refund_fee_type: str = 'CNY', device_info: str = '') -> RefundResult:
        """
        申请退款

        Args:
            out_refund_no: 商户退款单号，同一退款单号多次请求只退一笔
            out_trade_no: 商户订单号
            total_fee: 订单金额（分）
            transaction_id: 微信订单号，与 out_trade_no 二选一
            refund_fee: 退款金额（分）
            refund_account: 退款资金来源
            refund_desc: 退款原因
            refund_fee_type: 货币种类
            device_info: 设备号

        Returns:
            RefundResult，成功时包含微信退款单号
        """
        fields = {
            'appid': self.options.WX_APP_ID,
            'device_info': device_info,
            'mch_id': self.options.WX_MCH_ID,
            'nonce_str': md5_hex(out_refund_no),
            'notify_url': self.options.WX_REFUND_NOTIFY_URL,
            'out_refund_no': out_refund_no,
            'out_trade_no': out_trade_no,
            'refund_account': refund_account,
            'refund_desc': refund_desc,
            'refund_fee': refund_fee,
            'refund_fee_type': refund_fee_type,
            'sign_type': SIGN_TYPE_MD5,
            'total_fee': total_fee,
            'transaction_id': transaction_id,
        }
        sign = sign_fields(fields, REFUND_FIELDS, self.mch_key)
        request_xml = encode_xml(fields, REFUND_FIELDS, sign)
        self._debug(f"WxRefundXml: {request_xml}")

        try:
            xml = await self._post_xml(REFUND_PATH, request_xml, use_cert=True)
        except Exception as e:
            logger.exception(f"申请退款异常: out_refund_no={out_refund_no}, {e}")
            return RefundResult(failure=FailureKind.TRANSPORT)

        self._debug(f"WxRefundRes: {xml}")
        if not is_return_success(xml) or not contains_result_success(xml):
            logger.warning(f"申请退款失败: out_refund_no={out_refund_no}, {xml}")
            return RefundResult(failure=FailureKind.PROTOCOL)

        match = REFUND_ID_PATTERN.search(xml)
        if not match:
            return RefundResult(failure=FailureKind.MALFORMED)
        return RefundResult(refund_id=match.group(1))

    async def query_refund(self, refund_id: str) -> RefundQueryResult:
        """
        查询退款状态

        Returns:
            code 1: 成功 -1: 通信失败 -2: 业务失败 -3: 异常
        """
        fields = {
            'appid': self.options.WX_APP_ID,
            'mch_id': self.options.WX_MCH_ID,
            'nonce_str': md5_hex(refund_id),
            'refund_id': refund_id,
            'sign_type': SIGN_TYPE_MD5,
        }
        sign = sign_fields(fields, REFUND_QUERY_FIELDS, self.mch_key)
        request_xml = encode_xml(fields, REFUND_QUERY_FIELDS, sign)

        try:
            xml = await self._post_xml(REFUND_QUERY_PATH, request_xml)
        except Exception as e:
            logger.exception(f"退款查询异常: refund_id={refund_id}, {e}")
            return RefundQueryResult(code=RefundQueryCode.EXCEPTION, failure=FailureKind.TRANSPORT)

        if not is_return_success(xml):
            logger.warning(f"退款查询通信失败: {xml}")
            return RefundQueryResult(code=RefundQueryCode.RETURN_FAILED, failure=FailureKind.PROTOCOL)

        if contains_result_success(xml):
            match = REFUND_STATUS_PATTERN.search(xml)
            return RefundQueryResult(refund_status=match.group(1) if match else '', code=RefundQueryCode.SUCCESS)

        logger.warning(f"退款查询业务失败: {xml}")
        return RefundQueryResult(code=RefundQueryCode.RESULT_FAILED, failure=FailureKind.PROTOCOL)

    # ==================== 回调验签 ====================

    def payment_sign_content(self, xml: str, fields: Dict[str, str]) -> str:
        """按通知字段顺序重建签名串（不含 sign）"""
        pairs = list(iter_present(fields, PAY_NOTIFY_HEAD_FIELDS))
        coupon_count = parse_count(fields.get('coupon_count', ''))
        if coupon_count is not None:
            pairs.append(('coupon_count', fields['coupon_count']))
            pairs.append(('coupon_fee', fields.get('coupon_fee', '')))
            pairs.extend(extract_coupons(xml, coupon_count))
        pairs.extend(iter_present(fields, PAY_NOTIFY_TAIL_FIELDS))
        return get_sign_content(pairs, self.mch_key)

    def verify_payment_callback(self, xml: str) -> PaymentNotification:
        """
        支付结果通知验签

        验签失败时 status 为 UNTRUSTED，调用方不得据此更新订单
        """
        self._debug(f"WxPayCallback: {xml}")

        names = PAY_NOTIFY_HEAD_FIELDS + ('coupon_count', 'coupon_fee') + PAY_NOTIFY_TAIL_FIELDS + ('sign',)
        fields = decode_xml(xml, names)
        sign = fields['sign']
        if not sign:
            logger.warning("支付通知缺少 sign")
            return PaymentNotification(failure=FailureKind.MALFORMED)

        try:
            content = self.payment_sign_content(xml, fields)
            expected = sign_content(content, self.mch_key, fields['sign_type'] or SIGN_TYPE_MD5)
        except ValueError as e:
            logger.warning(f"支付通知无法验签: {e}")
            return PaymentNotification(failure=FailureKind.MALFORMED)

        self._debug(f"WxPayCallback Hash: {expected}")
        if not hmac.compare_digest(expected.encode('utf-8'), sign.encode('utf-8')):
            logger.warning(f"支付通知签名验证失败: out_trade_no={fields['out_trade_no']}")
            return PaymentNotification(failure=FailureKind.SIGNATURE_MISMATCH)

        succeeded = fields['return_code'] == 'SUCCESS' and fields['result_code'] == 'SUCCESS'
        return PaymentNotification(
            transaction_id=fields['transaction_id'],
            out_trade_no=fields['out_trade_no'],
            status=PaymentStatus.SUCCESS if succeeded else PaymentStatus.FAILED,
            err_code_des='' if succeeded else fields['err_code_des'],
            attach=fields['attach'],
        )

    def verify_refund_callback(self, xml: str) -> RefundNotification:
        """
        退款结果通知

        通知本身不带签名，能用商户密钥解密 req_info 即视为可信
        """
        self._debug(f"WxRefundCallback: {xml}")

        envelope = decode_xml(xml, REFUND_NOTIFY_FIELDS)
        req_info = envelope['req_info']
        if not req_info:
            logger.warning(f"退款通知缺少 req_info: return_code={envelope['return_code']}")
            return RefundNotification(failure=FailureKind.MALFORMED)

        plain = decrypt_req_info(req_info, self.mch_key)
        if not plain:
            return RefundNotification(failure=FailureKind.DECRYPTION)

        detail = {k: v for k, v in decode_xml(plain, REFUND_DETAIL_FIELDS).items() if v}
        if not detail.get('refund_id'):
            logger.warning("退款通知 req_info 缺少 refund_id")
            return RefundNotification(failure=FailureKind.MALFORMED)

        refund_status = detail.get('refund_status', '')
        return RefundNotification(
            refund_id=detail.get('refund_id', ''),
            refund_recv_account=detail.get('refund_recv_accout', ''),
            refund_status=refund_status,
            status=REFUND_STATUS_MAP.get(refund_status, RefundStatus.UNKNOWN),
            detail=detail,
        )


# 全局客户端实例
wx_pay_client = WxPayClient()
