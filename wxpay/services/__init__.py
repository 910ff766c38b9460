from .access_token import AccessTokenCache
from .app_logger import AppLogger, AppLoggerHandler
from .wx_pay import WxPayClient, wx_pay_client

__all__ = ["AccessTokenCache", "AppLogger", "AppLoggerHandler", "WxPayClient", "wx_pay_client"]
