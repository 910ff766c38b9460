"""微信支付 v2 商户接入"""

__version__ = "1.0.0"
