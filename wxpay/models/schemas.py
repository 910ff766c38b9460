"""
微信支付 Demo 数据模型
使用 Pydantic 定义请求/响应模型与网关调用结果
"""
from pydantic import BaseModel, Field
from typing import Dict, Optional
from enum import Enum
from decimal import Decimal


class FailureKind(str, Enum):
    """失败类型枚举"""
    TRANSPORT = "transport"                     # 网络/HTTP 异常
    PROTOCOL = "protocol"                       # return_code / result_code 非 SUCCESS
    SIGNATURE_MISMATCH = "signature_mismatch"   # 签名不一致
    DECRYPTION = "decryption"                   # req_info 解密失败
    MALFORMED = "malformed"                     # 报文缺少必要字段


class PaymentStatus(int, Enum):
    """支付通知状态"""
    UNTRUSTED = 0     # 验签失败，不可信
    SUCCESS = 1
    FAILED = 2        # 业务失败，如银行拒绝


class RefundStatus(int, Enum):
    """退款通知状态"""
    UNTRUSTED = 0
    SUCCESS = 1
    CHANGE = 2
    REFUNDCLOSE = 3
    UNKNOWN = 4


class RefundQueryCode(int, Enum):
    """退款查询结果码"""
    SUCCESS = 1
    RETURN_FAILED = -1    # 通信失败，可重试
    RESULT_FAILED = -2    # 业务失败，不要重试
    EXCEPTION = -3


# ==================== 网关调用结果 ====================

class PrepayResult(BaseModel):
    """统一下单结果"""
    prepay_id: str = ""
    failure: Optional[FailureKind] = None

    @property
    def ok(self) -> bool:
        return bool(self.prepay_id)


class JsapiPayment(BaseModel):
    """小程序 wx.requestPayment 所需参数"""
    app_id: str
    time_stamp: str
    nonce_str: str
    package: str
    sign_type: str = "MD5"
    pay_sign: str


class PaymentNotification(BaseModel):
    """支付结果通知"""
    transaction_id: str = ""
    out_trade_no: str = ""
    status: PaymentStatus = PaymentStatus.UNTRUSTED
    err_code_des: str = ""
    attach: str = ""
    failure: Optional[FailureKind] = None

    @property
    def trusted(self) -> bool:
        return self.status != PaymentStatus.UNTRUSTED


class RefundResult(BaseModel):
    """申请退款结果"""
    refund_id: str = ""
    failure: Optional[FailureKind] = None

    @property
    def ok(self) -> bool:
        return bool(self.refund_id)


class RefundNotification(BaseModel):
    """退款结果通知"""
    refund_id: str = ""
    refund_recv_account: str = ""
    refund_status: str = ""
    status: RefundStatus = RefundStatus.UNTRUSTED
    detail: Dict[str, str] = Field(default_factory=dict)
    failure: Optional[FailureKind] = None


class RefundQueryResult(BaseModel):
    """退款查询结果"""
    refund_status: str = ""
    code: RefundQueryCode
    failure: Optional[FailureKind] = None


# ==================== HTTP 接口模型 ====================

class CreateOrderRequest(BaseModel):
    """统一下单请求"""
    order_id: str                 # 商户订单号
    amount: Decimal               # 金额（元）
    open_id: str                  # 用户 openid
    client_ip: str = "127.0.0.1"
    attach: str = ""


class RefundRequest(BaseModel):
    """退款请求"""
    out_refund_no: str            # 商户退款单号，同一单号多次请求只退一笔
    out_trade_no: str
    total_fee: str                # 订单金额（分）
    refund_fee: str               # 退款金额（分）
    transaction_id: str = ""
    refund_desc: str = ""
