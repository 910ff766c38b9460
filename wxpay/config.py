"""
微信支付 Demo 配置管理模块
从环境变量加载商户配置
"""
import os
from dotenv import load_dotenv

# 加载 .env 文件
load_dotenv()


class Settings:
    """应用配置类"""

    # 小程序 / 公众号配置
    WX_APP_ID: str = os.getenv("WX_APP_ID", "")
    WX_APP_SECRET: str = os.getenv("WX_APP_SECRET", "")
    WX_PLATFORM_NAME: str = os.getenv("WX_PLATFORM_NAME", "")

    # 商户配置
    WX_MCH_ID: str = os.getenv("WX_MCH_ID", "")
    WX_MCH_KEY: str = os.getenv("WX_MCH_KEY", "")

    # 退款接口需要双向证书（PEM 格式）
    WX_API_CERT: str = os.getenv("WX_API_CERT", "")
    WX_API_KEY: str = os.getenv("WX_API_KEY", "")

    # 网关配置
    WX_GATEWAY_URL: str = os.getenv("WX_GATEWAY_URL", "https://api.mch.weixin.qq.com")
    WX_API_URL: str = os.getenv("WX_API_URL", "https://api.weixin.qq.com")
    WX_HTTP_TIMEOUT: float = float(os.getenv("WX_HTTP_TIMEOUT", "10"))

    # 回调地址
    WX_PAYMENT_NOTIFY_URL: str = os.getenv("WX_PAYMENT_NOTIFY_URL", "")
    WX_REFUND_NOTIFY_URL: str = os.getenv("WX_REFUND_NOTIFY_URL", "")

    # 日志配置
    WX_IS_DEBUG: bool = os.getenv("WX_IS_DEBUG", "false").lower() == "true"
    WX_LOG_DIR: str = os.getenv("WX_LOG_DIR", "logging")

    # 应用配置
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))
    APP_DEBUG: bool = os.getenv("APP_DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """验证必要配置是否已设置"""
        errors = []
        if not self.WX_APP_ID:
            errors.append("WX_APP_ID 未配置")
        if not self.WX_MCH_ID:
            errors.append("WX_MCH_ID 未配置")
        if not self.WX_MCH_KEY:
            errors.append("WX_MCH_KEY 未配置")
        if not self.WX_PAYMENT_NOTIFY_URL:
            errors.append("WX_PAYMENT_NOTIFY_URL 未配置")
        if not self.WX_REFUND_NOTIFY_URL:
            errors.append("WX_REFUND_NOTIFY_URL 未配置")
        return errors


settings = Settings()
