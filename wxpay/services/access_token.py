"""
微信接口调用凭证与小程序登录
access_token 先读缓存，缓存失效再向微信获取，过期时间取 expires_in
"""
import logging
import time
from typing import Dict, Optional, Tuple

import httpx

from ..config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = 'wxaccesstoken'


class TokenCache:
    """简单的带过期时间的内存缓存"""

    def __init__(self):
        self._items: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        item = self._items.get(key)
        if not item:
            return None
        value, expires_at = item
        if time.time() >= expires_at:
            self._items.pop(key, None)
            return None
        return value

    def set(self, key: str, value: str, ttl: float):
        self._items[key] = (value, time.time() + ttl)


class AccessTokenCache:
    """access_token 获取（缓存优先）"""

    def __init__(self, options: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None,
                 cache: Optional[TokenCache] = None):
        self.options = options or default_settings
        self.api_url = self.options.WX_API_URL.rstrip('/')
        self._client = http_client
        self.cache = cache or TokenCache()

    async def _get_json(self, path: str, params: Dict[str, str]) -> Dict:
        url = f'{self.api_url}{path}'
        if self._client is not None:
            response = await self._client.get(url, params=params)
        else:
            async with httpx.AsyncClient(timeout=self.options.WX_HTTP_TIMEOUT) as client:
                response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    async def get_token(self) -> str:
        """获取 access_token，失败返回空字符串"""
        token = self.cache.get(ACCESS_TOKEN_KEY)
        if token:
            return token

        params = {
            'grant_type': 'client_credential',
            'appid': self.options.WX_APP_ID,
            'secret': self.options.WX_APP_SECRET,
        }
        try:
            result = await self._get_json('/cgi-bin/token', params)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"获取 access_token 异常: {e}")
            return ''

        if 'errcode' in result or not result.get('access_token'):
            logger.error(f"获取 access_token 失败: {result}")
            return ''

        token = result['access_token']
        self.cache.set(ACCESS_TOKEN_KEY, token, result.get('expires_in', 7200))
        return token

    async def code_to_session(self, code: str) -> Tuple[str, str]:
        """小程序登录凭证校验，返回 (session_key, openid)，失败返回空字符串"""
        params = {
            'appid': self.options.WX_APP_ID,
            'secret': self.options.WX_APP_SECRET,
            'js_code': code,
            'grant_type': 'authorization_code',
        }
        try:
            result = await self._get_json('/sns/jscode2session', params)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"code2session 异常: {e}")
            return '', ''

        session_key = result.get('session_key', '')
        open_id = result.get('openid', '')
        if not session_key or not open_id:
            logger.warning(f"code2session 返回异常: {result}")
        return session_key, open_id
