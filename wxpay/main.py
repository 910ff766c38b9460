"""
微信支付 Demo - FastAPI 应用入口
演示如何对接微信支付 v2 接口
"""
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException

from .config import settings
from .routers import orders_router, callbacks_router
from .services import AccessTokenCache, AppLogger, AppLoggerHandler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# 创建 FastAPI 应用
app = FastAPI(
    title="WxPay Demo",
    description="微信支付 v2 接口对接演示项目",
    version="1.0.0"
)

# 注册路由
app.include_router(orders_router)
app.include_router(callbacks_router)

access_token_cache = AccessTokenCache()
file_log_handler: Optional[AppLoggerHandler] = None


@app.get("/health")
async def health_check():
    """健康检查"""
    errors = settings.validate()
    return {
        "status": "ok" if not errors else "warning",
        "config_errors": errors,
        "gateway_url": settings.WX_GATEWAY_URL
    }


@app.get("/session")
async def code_to_session(code: str):
    """小程序登录：code 换取 openid"""
    session_key, open_id = await access_token_cache.code_to_session(code)
    if not open_id:
        raise HTTPException(status_code=400, detail="code2session 失败")
    return {"openid": open_id}


@app.on_event("startup")
async def startup_event():
    """应用启动事件"""
    global file_log_handler
    file_log_handler = AppLoggerHandler(AppLogger(settings.WX_LOG_DIR))
    file_log_handler.setFormatter(logging.Formatter('%(name)s - %(levelname)s - %(message)s'))
    logging.getLogger("wxpay").addHandler(file_log_handler)

    errors = settings.validate()
    if errors:
        logger.warning(f"配置警告: {errors}")
    else:
        logger.info("WxPay Demo 启动成功")
        logger.info(f"网关地址: {settings.WX_GATEWAY_URL}")
        logger.info(f"支付通知地址: {settings.WX_PAYMENT_NOTIFY_URL}")


@app.on_event("shutdown")
async def shutdown_event():
    """应用关闭事件：写完剩余日志"""
    global file_log_handler
    if file_log_handler is not None:
        logging.getLogger("wxpay").removeHandler(file_log_handler)
        file_log_handler.close()
        file_log_handler = None


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wxpay.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.APP_DEBUG
    )
