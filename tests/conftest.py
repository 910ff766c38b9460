"""
Pytest fixtures for WxPay tests
"""
import asyncio
import hashlib
from typing import Callable, List

import httpx
import pytest

from wxpay.config import Settings
from wxpay.services.wx_pay import WxPayClient

MCH_KEY = "key1"

SUCCESS_PREFIX = "<xml><return_code><![CDATA[SUCCESS]]></return_code>"


@pytest.fixture
def options() -> Settings:
    """Settings with fixed merchant credentials"""
    s = Settings()
    s.WX_APP_ID = "wx1"
    s.WX_APP_SECRET = "secret1"
    s.WX_MCH_ID = "10001"
    s.WX_MCH_KEY = MCH_KEY
    s.WX_PLATFORM_NAME = "测试平台"
    s.WX_GATEWAY_URL = "https://gateway.test"
    s.WX_API_URL = "https://api.test"
    s.WX_PAYMENT_NOTIFY_URL = "https://merchant.test/callback/pay"
    s.WX_REFUND_NOTIFY_URL = "https://merchant.test/callback/refund"
    s.WX_IS_DEBUG = False
    return s


@pytest.fixture
def captured() -> List[httpx.Request]:
    return []


@pytest.fixture
def make_client(options, captured) -> Callable:
    """
    Build a WxPayClient whose HTTP calls are answered by ``responder``.
    ``responder`` receives the request and returns a response body string,
    or raises to simulate a transport failure.
    """
    clients = []

    def _make(responder):
        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, content=responder(request).encode("utf-8"))

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(http_client)
        return WxPayClient(options=options, http_client=http_client)

    yield _make

    for http_client in clients:
        asyncio.run(http_client.aclose())


def md5_upper(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest().upper()


def cdata_xml(fields: dict, bare=()) -> str:
    """Build a gateway style XML document, CDATA unless the name is in ``bare``"""
    parts = ["<xml>"]
    for name, value in fields.items():
        if name in bare:
            parts.append(f"<{name}>{value}</{name}>")
        else:
            parts.append(f"<{name}><![CDATA[{value}]]></{name}>")
    parts.append("</xml>")
    return "".join(parts)
