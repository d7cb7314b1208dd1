"""
日志工具模块
提供简化的日志配置功能
"""

import inspect
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Optional, Any, Protocol, runtime_checkable


@runtime_checkable
class LoggingConfigProtocol(Protocol):
    """日志配置协议

    定义日志配置对象需要提供的属性。
    业务项目的 LoggingSettings 类应该实现这些属性。
    """
    level: str
    file_path: str
    file_backup_count: int
    file_encoding: str

    @property
    def parsed_file_max_bytes(self) -> int: ...


def _extract_file_handler_options(config: Any) -> dict:
    """从配置对象中提取文件处理器选项

    Args:
        config: 配置对象，需要有相关属性

    Returns:
        file_handler_options 字典
    """
    return {
        "maxBytes": getattr(config, "parsed_file_max_bytes", 10 * 1024 * 1024),
        "backupCount": getattr(config, "file_backup_count", 5),
        "encoding": getattr(config, "file_encoding", "utf-8"),
    }


def _load_logging_config_from_file(config_path: str, base_dir: str = None) -> Any:
    """从配置文件加载日志配置

    Args:
        config_path: 配置文件路径
        base_dir: 基础目录，用于解析相对路径

    Returns:
        LoggingSettings 配置对象
    """
    from ..config import ConfigLoader, LoggingSettings

    config_data = ConfigLoader.load(config_path, base_dir=base_dir)
    return LoggingSettings(**config_data.get("logging", {}))


class MicrosecondFormatter(logging.Formatter):
    """支持微秒精度的日志格式化器"""

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        if datefmt:
            s = time.strftime(datefmt, ct)
        else:
            s = time.strftime("%Y-%m-%d %H:%M:%S", ct)
        return "%s.%06d" % (s, (record.created - int(record.created)) * 1000000)


# 默认日志格式
DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"


def create_formatter(
    log_format: str = None,
    datefmt: str = "%Y-%m-%d %H:%M:%S",
    use_microseconds: bool = True
) -> logging.Formatter:
    """创建日志格式化器

    Args:
        log_format: 日志格式字符串
        datefmt: 时间格式
        use_microseconds: 是否使用微秒精度

    Returns:
        日志格式化器
    """
    fmt = log_format or DEFAULT_LOG_FORMAT
    if use_microseconds:
        return MicrosecondFormatter(fmt=fmt, datefmt=datefmt)
    return logging.Formatter(fmt, datefmt=datefmt)


def setup_logger(
    name: str = None,
    level: str = "INFO",
    log_file: str = None,
    log_format: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    propagate: bool = True,
    file_handler_options: dict = None
) -> logging.Logger:
    """设置并返回配置好的日志记录器

    Args:
        name: 日志记录器名称，默认为root logger
        level: 日志级别，可选：DEBUG, INFO, WARNING, ERROR, CRITICAL
        log_file: 日志文件路径，如果不指定则不写入文件
        log_format: 日志格式，如果不指定则使用默认格式
        console: 是否输出到控制台
        use_microseconds: 是否使用微秒精度时间戳
        propagate: 是否传播到父日志器
        file_handler_options: 轮转文件处理器选项
            - maxBytes: 文件最大大小
            - backupCount: 备份文件数量
            - encoding: 文件编码

    Returns:
        配置好的日志记录器

    使用示例:
        from ydrag.log import setup_logger

        # 排序算法的调试日志
        logger = setup_logger("ydrag.orm.dragsort", level="DEBUG")

        # 写入轮转文件
        logger = setup_logger(
            "ydrag",
            log_file="logs/ydrag.log",
            file_handler_options={"maxBytes": 10*1024*1024, "backupCount": 5}
        )
    """
    _logger = logging.getLogger(name) if name else logging.getLogger()
    _logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _logger.propagate = propagate

    # 清除现有的处理器
    _logger.handlers.clear()

    formatter = create_formatter(log_format, use_microseconds=use_microseconds)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        _logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        if file_handler_options:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=file_handler_options.get("maxBytes", 10 * 1024 * 1024),
                backupCount=file_handler_options.get("backupCount", 5),
                encoding=file_handler_options.get("encoding", "utf-8"),
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')

        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def setup_root_logger(
    level: str = "INFO",
    log_file: str = None,
    console: bool = True,
    use_microseconds: bool = True,
    file_handler_options: dict = None,
    config: Any = None,
    config_path: str = None,
    config_base_dir: str = None,
) -> logging.Logger:
    """设置根日志记录器

    子日志器会自动继承根日志器的处理器配置。

    Args:
        level: 日志级别（如果提供 config/config_path 则忽略）
        log_file: 日志文件路径（如果提供 config/config_path 则忽略）
        console: 是否输出到控制台
        use_microseconds: 是否使用微秒精度
        file_handler_options: 文件处理器选项（如果提供 config/config_path 则忽略）
        config: 日志配置对象，提供后自动提取配置
        config_path: 配置文件路径（YAML），提供后自动加载配置
        config_base_dir: 配置文件基础目录，用于解析相对路径

    Returns:
        根日志记录器

    使用示例:
        logger = setup_root_logger(level="INFO", log_file="logs/app.log")
        logger = setup_root_logger(config=settings.logging)
        logger = setup_root_logger(config_path="config/settings.yaml")
    """
    if config_path is not None:
        config = _load_logging_config_from_file(config_path, config_base_dir)
        console = getattr(config, "enable_console", console)

    if config is not None:
        level = getattr(config, "level", level)
        log_file = getattr(config, "file_path", log_file)
        file_handler_options = _extract_file_handler_options(config)

    return setup_logger(
        name=None,
        level=level,
        log_file=log_file,
        console=console,
        use_microseconds=use_microseconds,
        propagate=False,
        file_handler_options=file_handler_options
    )


def get_logger(name: str = None) -> logging.Logger:
    """获取日志记录器，支持自动推断模块名

    无参数调用时，自动从调用栈获取模块的 __name__ 作为日志器名称。
    有参数调用时，简写名称（不含点号）自动添加 'ydrag.' 前缀。

    Args:
        name: 日志记录器名称。
              - None: 自动使用调用模块的 __name__
              - 字符串: 使用指定名称（如 "orm" -> "ydrag.orm"）

    Returns:
        日志记录器实例

    使用示例:
        logger = get_logger()                    # ydrag/orm/dragsort/allocator.py -> "ydrag.orm.dragsort.allocator"
        logger = get_logger("orm")               # -> "ydrag.orm"
        logger = get_logger("sqlalchemy.engine") # -> "sqlalchemy.engine"
    """
    if name is None:
        frame = inspect.currentframe()
        if frame is not None and frame.f_back is not None:
            name = frame.f_back.f_globals.get('__name__', 'ydrag')
        else:
            name = 'ydrag'
    elif not name.startswith('ydrag.') and name != 'ydrag' and '.' not in name:
        name = f"ydrag.{name}"

    return logging.getLogger(name)


# 通用日志记录器
logger = logging.getLogger("ydrag")
