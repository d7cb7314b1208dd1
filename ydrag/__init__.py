"""
ydrag - 多对多关系拖拽排序类库

基于 SQLAlchemy，提供排序值分配、冲突检测、重平衡，以及配置与日志等基础功能
"""

from .version import __version__, __author__, __description__

from .log import get_logger, setup_logger, setup_root_logger

from .config import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    DragSortSettings,
    ConfigLoader,
    load_yaml_config,
)

from .orm import (
    CoreModel,
    fields,
    init_database,
    db_session_scope,
    SortKeyAllocator,
    SiblingsRelation,
    AttachMethod,
    Position,
    configure_dragsort,
    DragSortError,
    PivotNotFoundError,
    NoSortValueAvailableError,
    UnsavedModelError,
)

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    # 日志
    "get_logger",
    "setup_logger",
    "setup_root_logger",
    # 配置
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "DragSortSettings",
    "ConfigLoader",
    "load_yaml_config",
    # ORM
    "CoreModel",
    "fields",
    "init_database",
    "db_session_scope",
    "SortKeyAllocator",
    "SiblingsRelation",
    "AttachMethod",
    "Position",
    "configure_dragsort",
    "DragSortError",
    "PivotNotFoundError",
    "NoSortValueAvailableError",
    "UnsavedModelError",
]
