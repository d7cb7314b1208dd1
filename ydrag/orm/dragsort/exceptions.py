"""拖拽排序异常定义

DragSortError 及其子类是可恢复的业务异常；
UnsavedModelError 表示调用前置条件不满足，不属于该异常族。
"""

from typing import Any


class DragSortError(Exception):
    """拖拽排序基础异常"""
    pass


class PivotNotFoundError(DragSortError):
    """中间表记录不存在

    move / detach 的目标成员在关系中没有中间表记录时抛出，
    通常意味着成员已被并发移除。

    Attributes:
        member_id: 查找的成员ID
    """

    def __init__(self, member_id: Any):
        self.member_id = member_id
        super().__init__(f"No pivot found when try to search the pivot: {member_id}")


class NoSortValueAvailableError(DragSortError):
    """无可用排序值

    重平衡一次之后生成的候选值仍然无效时抛出。

    Attributes:
        candidate: 最后一次生成的候选值
    """

    def __init__(self, candidate: int = None):
        self.candidate = candidate
        super().__init__(
            f"Generate sort value error when trying to resolve conflict "
            f"(candidate={candidate})."
        )


class UnsavedModelError(RuntimeError):
    """拥有者尚未持久化

    在没有主键的拥有者上查询排序成员时抛出。

    Attributes:
        model: 未保存的拥有者对象
    """

    def __init__(self, model: Any = None):
        self.model = model
        super().__init__(f"Cannot query from unsaved model: {model!r}")


__all__ = [
    "DragSortError",
    "PivotNotFoundError",
    "NoSortValueAvailableError",
    "UnsavedModelError",
]
