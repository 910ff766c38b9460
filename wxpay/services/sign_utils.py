"""
微信支付 v2 签名工具
MD5 / HMAC-SHA256 摘要、按字段顺序拼接签名串
"""
import hashlib
import hmac
from typing import Dict, Iterable, Optional

SIGN_TYPE_MD5 = 'MD5'
SIGN_TYPE_HMAC_SHA256 = 'HMAC-SHA256'

# ==================== 各接口字段顺序 ====================
# 与官方文档参数顺序一致（字母序），签名串与 XML 共用同一张表

UNIFIED_ORDER_FIELDS = (
    'appid', 'attach', 'body', 'detail', 'device_info', 'fee_type', 'goods_tag',
    'limit_pay', 'mch_id', 'nonce_str', 'notify_url', 'openid', 'out_trade_no',
    'product_id', 'receipt', 'scene_info', 'sign_type', 'spbill_create_ip',
    'time_expire', 'time_start', 'total_fee', 'trade_type',
)

REFUND_FIELDS = (
    'appid', 'device_info', 'mch_id', 'nonce_str', 'notify_url', 'out_refund_no',
    'out_trade_no', 'refund_account', 'refund_desc', 'refund_fee', 'refund_fee_type',
    'sign_type', 'total_fee', 'transaction_id',
)

REFUND_QUERY_FIELDS = (
    'appid', 'mch_id', 'nonce_str', 'offset', 'out_refund_no', 'out_trade_no',
    'refund_id', 'sign_type', 'transaction_id',
)

# 支付通知中 coupon 相关字段之前、之后的字段
PAY_NOTIFY_HEAD_FIELDS = (
    'appid', 'attach', 'bank_type', 'cash_fee', 'cash_fee_type',
)

PAY_NOTIFY_TAIL_FIELDS = (
    'device_info', 'err_code', 'err_code_des', 'fee_type', 'is_subscribe', 'mch_id',
    'nonce_str', 'openid', 'out_trade_no', 'result_code', 'return_code', 'return_msg',
    'settlement_total_fee', 'sign_type', 'time_end', 'total_fee', 'trade_type',
    'transaction_id',
)

REFUND_NOTIFY_FIELDS = (
    'appid', 'mch_id', 'nonce_str', 'req_info', 'return_code', 'return_msg',
)

REFUND_DETAIL_FIELDS = (
    'out_refund_no', 'out_trade_no', 'refund_account', 'refund_fee', 'refund_id',
    'refund_recv_accout', 'refund_request_source', 'refund_status',
    'settlement_refund_fee', 'settlement_total_fee', 'success_time', 'total_fee',
    'transaction_id',
)


def md5_hex(text: str) -> str:
    """对 UTF-8 字符串计算 MD5，返回小写十六进制"""
    if text is None:
        raise ValueError('text 不能为 None')
    return hashlib.md5(text.encode('utf-8')).hexdigest()


def verify_hash(text: str, expected: str) -> bool:
    """校验 MD5 摘要（忽略大小写）"""
    if text is None:
        raise ValueError('text 不能为 None')
    return md5_hex(text).lower() == (expected or '').lower()


def digest(text: str, sign_type: str = SIGN_TYPE_MD5, key: Optional[str] = None) -> str:
    """按签名类型计算摘要，返回小写十六进制"""
    if sign_type == SIGN_TYPE_MD5:
        return md5_hex(text)
    if sign_type == SIGN_TYPE_HMAC_SHA256:
        if text is None or key is None:
            raise ValueError('HMAC-SHA256 需要 text 和 key')
        return hmac.new(key.encode('utf-8'), text.encode('utf-8'), hashlib.sha256).hexdigest()
    raise ValueError(f'不支持的签名类型: {sign_type}')


def iter_present(fields: Dict[str, Optional[str]], field_order: Iterable[str]):
    """按字段顺序产出非空的 (name, value)"""
    for name in field_order:
        value = fields.get(name)
        if value:
            yield name, value


def get_sign_content(pairs: Iterable[tuple], key: str) -> str:
    """将 (name, value) 拼接为 name=value&...&key=商户密钥"""
    content = '&'.join(f'{k}={v}' for k, v in pairs if v)
    return f'{content}&key={key}' if content else f'key={key}'


def build_sign_string(fields: Dict[str, Optional[str]], field_order: Iterable[str], key: str) -> str:
    """按固定字段顺序构造签名串，跳过空字段"""
    return get_sign_content(iter_present(fields, field_order), key)


def sign_fields(fields: Dict[str, Optional[str]], field_order: Iterable[str], key: str,
                sign_type: str = SIGN_TYPE_MD5) -> str:
    """计算请求签名（大写）"""
    content = build_sign_string(fields, field_order, key)
    return digest(content, sign_type, key).upper()


def sign_content(content: str, key: str, sign_type: str = SIGN_TYPE_MD5) -> str:
    """对已拼好的签名串计算签名（大写）"""
    return digest(content, sign_type, key).upper()
