"""
业务异常定义与全局 HTTP 错误处理

服务层只抛出这里定义的异常，由 register_error_handlers 统一转换为 JSON 响应：
{"error": <code>, "detail": <message>}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PressroomError(Exception):
    """业务异常基类"""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(PressroomError):
    """提交/审核时缺少标题或正文等输入问题，无任何写入"""

    status_code = 400
    code = "validation"


class ForbiddenError(PressroomError):
    """无权操作（非作者编辑草稿、普通用户设置署名覆盖）"""

    status_code = 403
    code = "forbidden"


class NotFoundError(PressroomError):
    status_code = 404
    code = "not_found"


class InvalidTransitionError(PressroomError):
    """审核状态机不允许的状态迁移"""

    status_code = 409
    code = "invalid_transition"


class DraftLockedError(PressroomError):
    """草稿已提交/已发布，作者不可再编辑"""

    status_code = 409
    code = "draft_locked"


class ConflictError(PressroomError):
    """唯一约束冲突；答题记录写入时由服务内部恢复，不会返回给调用方"""

    status_code = 409
    code = "conflict"


class TransientStorageError(PressroomError):
    """存储层的一般 I/O 故障"""

    status_code = 503
    code = "storage_unavailable"


def register_error_handlers(app: FastAPI) -> None:
    """注册业务异常到 HTTP 响应的映射"""

    @app.exception_handler(PressroomError)
    async def handle_pressroom_error(request: Request, exc: PressroomError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 失败: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.code, "detail": exc.message},
        )
