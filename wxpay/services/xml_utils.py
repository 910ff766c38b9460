"""
微信支付 XML 报文编解码
请求方向输出纯文本子节点；响应方向按正则提取字段（优先 CDATA，其次裸值）
"""
import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from .sign_utils import iter_present

RETURN_SUCCESS_PREFIX = '<xml><return_code><![CDATA[SUCCESS]]></return_code>'
RETURN_SUCCESS_MARKER = '<return_code><![CDATA[SUCCESS]]></return_code>'
RESULT_SUCCESS_MARKER = '<result_code><![CDATA[SUCCESS]]></result_code>'

PREPAY_ID_PATTERN = re.compile(r'<prepay_id><!\[CDATA\[([^\]]+)\]\]></prepay_id>')
REFUND_ID_PATTERN = re.compile(r'<refund_id><!\[CDATA\[([^\]]+)\]\]></refund_id>')
REFUND_STATUS_PATTERN = re.compile(r'<refund_status_0><!\[CDATA\[([^\]]+)\]\]></refund_status_0>')

COUPON_KINDS = ('fee', 'id', 'type')
COUPON_FIELD_PATTERN = re.compile(
    r'<(coupon_(fee|id|type)_(\d+))>(?:<!\[CDATA\[([^\]]+)\]\]>|([^<]+))</\1>', re.ASCII)


def encode_xml(fields: Dict[str, Optional[str]], field_order: Iterable[str],
               sign: Optional[str] = None) -> str:
    """构造请求 XML，空字段不输出，sign 放在最后"""
    parts = ['<xml>']
    for name, value in iter_present(fields, field_order):
        parts.append(f'<{name}>{value}</{name}>')
    if sign:
        parts.append(f'<sign>{sign}</sign>')
    parts.append('</xml>')
    return ''.join(parts)


@lru_cache(maxsize=256)
def _field_patterns(name: str) -> Tuple[re.Pattern, re.Pattern]:
    tag = re.escape(name)
    cdata = re.compile(rf'<{tag}><!\[CDATA\[([^\]]+)\]\]></{tag}>')
    bare = re.compile(rf'<{tag}>([^<]+)</{tag}>')
    return cdata, bare


def extract_field(xml: str, name: str) -> str:
    """提取单个字段，找不到时返回空字符串"""
    cdata, bare = _field_patterns(name)
    match = cdata.search(xml)
    if not match:
        match = bare.search(xml)
    return match.group(1) if match else ''


def decode_xml(xml: str, field_names: Iterable[str]) -> Dict[str, str]:
    """批量提取字段"""
    return {name: extract_field(xml, name) for name in field_names}


def parse_count(value: str) -> Optional[int]:
    """解析非负整数，失败返回 None"""
    if value and value.isascii() and value.isdigit():
        return int(value)
    return None


def extract_coupons(xml: str, count: int) -> List[Tuple[str, str]]:
    """
    按下标顺序提取代金券字段，每个下标依次为 fee、id、type

    只扫描一遍报文，只处理报文中实际出现的下标，coupon_count 再大也不会多扫
    """
    cdata_values: Dict[Tuple[int, str], str] = {}
    bare_values: Dict[Tuple[int, str], str] = {}
    for match in COUPON_FIELD_PATTERN.finditer(xml):
        index = int(match.group(3))
        # coupon_fee_01 不是 coupon_fee_1
        if index >= count or match.group(3) != str(index):
            continue
        key = (index, match.group(2))
        cdata, bare = match.group(4), match.group(5)
        if cdata:
            cdata_values.setdefault(key, cdata)
        elif bare:
            bare_values.setdefault(key, bare)

    pairs = []
    for index in sorted({i for i, _ in cdata_values} | {i for i, _ in bare_values}):
        for kind in COUPON_KINDS:
            value = cdata_values.get((index, kind)) or bare_values.get((index, kind))
            if value:
                pairs.append((f'coupon_{kind}_{index}', value))
    return pairs


# ==================== 成功判断 ====================

def is_return_success(xml: str) -> bool:
    """请求应答：严格前缀匹配"""
    return xml.startswith(RETURN_SUCCESS_PREFIX)


def contains_return_success(xml: str) -> bool:
    return RETURN_SUCCESS_MARKER in xml


def contains_result_success(xml: str) -> bool:
    return RESULT_SUCCESS_MARKER in xml


def build_ack(return_code: str = 'SUCCESS', return_msg: str = 'OK') -> str:
    """通知应答报文"""
    return (f'<xml><return_code><![CDATA[{return_code}]]></return_code>'
            f'<return_msg><![CDATA[{return_msg}]]></return_msg></xml>')
