"""
拖拽排序全局配置管理

中间表模型未声明 __max_sort_value__ / __insert_step__ / __sort_field__ 时，
使用这里的全局值；全局值未配置时使用内置默认值。
"""

from typing import Any


DEFAULT_MAX_SORT_VALUE = 2 ** 63 - 1
DEFAULT_INSERT_STEP = 2 ** 32
DEFAULT_SORT_FIELD = "sort_value"

LOCK_MODES = ("none", "thread", "row")


class DragSortConfig:
    """拖拽排序全局配置类

    使用类变量存储全局配置：
    - max_sort_value: 排序值上限（含）
    - insert_step: 无邻居追加时在当前最大值上增加的步长
    - sort_field: 中间表上的排序字段名
    - lock_mode: 并发保护方式（none / thread / row）
    """
    _max_sort_value: int = DEFAULT_MAX_SORT_VALUE
    _insert_step: int = DEFAULT_INSERT_STEP
    _sort_field: str = DEFAULT_SORT_FIELD
    _lock_mode: str = "none"

    @classmethod
    def configure(
        cls,
        max_sort_value: int = DEFAULT_MAX_SORT_VALUE,
        insert_step: int = DEFAULT_INSERT_STEP,
        sort_field: str = DEFAULT_SORT_FIELD,
        lock_mode: str = "none",
    ):
        """配置全局排序参数

        Args:
            max_sort_value: 排序值上限，必须为正整数
            insert_step: 追加步长，必须为正整数
            sort_field: 排序字段名
            lock_mode: 并发保护方式

        Raises:
            ValueError: 参数验证失败

        Examples:
            >>> DragSortConfig.configure(max_sort_value=2 ** 31 - 1, insert_step=1024)
        """
        if max_sort_value <= 0:
            raise ValueError(f"max_sort_value必须大于0，当前值: {max_sort_value}")
        if insert_step <= 0:
            raise ValueError(f"insert_step必须大于0，当前值: {insert_step}")
        if not sort_field:
            raise ValueError("sort_field不能为空")
        if lock_mode not in LOCK_MODES:
            raise ValueError(f"lock_mode必须是 {LOCK_MODES} 之一，当前值: {lock_mode}")

        cls._max_sort_value = max_sort_value
        cls._insert_step = insert_step
        cls._sort_field = sort_field
        cls._lock_mode = lock_mode

    @classmethod
    def reset(cls):
        """恢复内置默认值"""
        cls._max_sort_value = DEFAULT_MAX_SORT_VALUE
        cls._insert_step = DEFAULT_INSERT_STEP
        cls._sort_field = DEFAULT_SORT_FIELD
        cls._lock_mode = "none"

    @classmethod
    def get_max_sort_value(cls) -> int:
        return cls._max_sort_value

    @classmethod
    def get_insert_step(cls) -> int:
        return cls._insert_step

    @classmethod
    def get_sort_field(cls) -> str:
        return cls._sort_field

    @classmethod
    def get_lock_mode(cls) -> str:
        return cls._lock_mode


def configure_dragsort(settings: Any = None, **kwargs):
    """从 DragSortSettings（或关键字参数）安装全局配置

    Args:
        settings: DragSortSettings 实例，或任何带同名属性的对象
        **kwargs: 覆盖 settings 中的同名字段

    使用示例:
        from ydrag.config import AppSettings
        from ydrag.orm import configure_dragsort

        settings = AppSettings()
        configure_dragsort(settings.dragsort)
        configure_dragsort(insert_step=1024)
    """
    options = {
        "max_sort_value": DragSortConfig.get_max_sort_value(),
        "insert_step": DragSortConfig.get_insert_step(),
        "sort_field": DragSortConfig.get_sort_field(),
        "lock_mode": DragSortConfig.get_lock_mode(),
    }
    if settings is not None:
        for key in options:
            options[key] = getattr(settings, key, options[key])
    options.update(kwargs)
    DragSortConfig.configure(**options)


__all__ = [
    "DragSortConfig",
    "configure_dragsort",
    "DEFAULT_MAX_SORT_VALUE",
    "DEFAULT_INSERT_STEP",
    "DEFAULT_SORT_FIELD",
    "LOCK_MODES",
]
