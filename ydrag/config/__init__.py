"""配置模块

提供配置管理功能：
- AppSettings: 应用基础配置，支持 YAML + 环境变量
- 子配置类: DatabaseSettings, LoggingSettings, DragSortSettings
- ConfigLoader: YAML 配置加载器

快速开始:
    from ydrag.config import AppSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)

配置优先级: 显式参数（含 YAML 文件内容）> 环境变量 > 默认值
"""

from .settings import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    DragSortSettings,
    parse_file_size,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "DragSortSettings",
    "parse_file_size",
    "ConfigLoader",
    "load_yaml_config",
]
