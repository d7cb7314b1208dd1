"""日志模块

提供日志配置与管理：
- setup_logger / setup_root_logger: 日志器配置（控制台 + 轮转文件）
- get_logger: 按模块名自动推断日志器

使用示例:
    from ydrag.log import setup_logger, get_logger

    # 打开排序算法的调试日志（候选值、重平衡前后）
    setup_logger("ydrag.orm.dragsort", level="DEBUG")

    logger = get_logger()
"""

from .logger import (
    setup_logger,
    setup_root_logger,
    create_formatter,
    MicrosecondFormatter,
    LoggingConfigProtocol,
    DEFAULT_LOG_FORMAT,
    logger,
    get_logger,
)

__all__ = [
    "setup_logger",
    "setup_root_logger",
    "create_formatter",
    "MicrosecondFormatter",
    "LoggingConfigProtocol",
    "DEFAULT_LOG_FORMAT",
    "logger",
    "get_logger",
]
