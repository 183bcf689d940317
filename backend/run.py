"""
启动脚本
在 backend 目录下运行：python run.py
"""

import uvicorn

from pressroom.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "pressroom.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
