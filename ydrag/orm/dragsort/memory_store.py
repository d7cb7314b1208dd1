"""内存中间表存储

不依赖数据库的 PivotStore 实现，适合单元测试与纯内存的排序列表。
读取返回记录副本，修改必须经 persist / persist_all 写回才生效。
"""

import copy
import itertools
import threading
from typing import Any, Dict, List, Optional

from ydrag.log import get_logger

from .pivot import DragableMixin
from .store import PivotStore

logger = get_logger("ydrag.orm.dragsort.store")


class MemoryPivot(DragableMixin):
    """内存中间表记录

    子类可通过 __max_sort_value__ / __insert_step__ 覆盖排序参数:

        class TightPivot(MemoryPivot):
            __max_sort_value__ = 1000
            __insert_step__ = 50
    """

    def __init__(self, owner_id: Any = None, member_id: Any = None, sort_value: int = 0, **extra):
        self.id: Optional[int] = None
        self.owner_id = owner_id
        self.member_id = member_id
        self.sort_value = sort_value
        for key, value in extra.items():
            setattr(self, key, value)

    def __repr__(self):
        return (
            f"<{self.__class__.__name__} id={self.id} "
            f"member={self.member_id} sort_value={self.sort_value}>"
        )


class MemoryPivotStore(PivotStore):
    """内存中间表存储

    Args:
        members: 成员ID到成员对象的映射，query_members_ordered 用；
                 未登记的成员直接返回其ID

    使用示例:
        store = MemoryPivotStore()
        relation = SiblingsRelation(MemoryPivot, owner_id=1)
        allocator = SortKeyAllocator(store)
        allocator.attach("a", relation)
    """

    def __init__(self, members: Optional[Dict[Any, Any]] = None):
        self._pivots: Dict[int, Any] = {}
        self._members: Dict[Any, Any] = dict(members or {})
        self._id_seq = itertools.count(1)
        self._lock = threading.RLock()

    # ==================== 内部方法 ====================

    def _iter_relation(self, relation):
        for pivot in self._pivots.values():
            if not isinstance(pivot, relation.pivot_model):
                continue
            if getattr(pivot, relation.from_key) == relation.owner_id:
                yield pivot

    def _sorted(self, relation) -> List[Any]:
        return sorted(
            self._iter_relation(relation),
            key=lambda p: (p.get_sort_value(), p.id),
        )

    @staticmethod
    def _check(pivot, value) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"非法排序值: {value!r} ({pivot!r})")

    # ==================== 成员 ====================

    def add_member(self, member_id: Any, member: Any = None) -> None:
        """登记成员对象"""
        with self._lock:
            self._members[member_id] = member if member is not None else member_id

    # ==================== 查询 ====================

    def find_pivot_by_member_id(self, member_id, relation):
        with self._lock:
            for pivot in self._sorted(relation):
                if getattr(pivot, relation.to_key) == member_id:
                    return copy.copy(pivot)
        return None

    def find_pivot_by_sort_value(self, value, relation):
        with self._lock:
            for pivot in self._sorted(relation):
                if pivot.get_sort_value() == value:
                    return copy.copy(pivot)
        return None

    def all_pivots(self, relation, force_reload=False):
        with self._lock:
            return [copy.copy(pivot) for pivot in self._sorted(relation)]

    def max_sort_value_pivot(self, relation):
        with self._lock:
            pivots = self._sorted(relation)
            return copy.copy(pivots[-1]) if pivots else None

    def query_members_ordered(self, relation):
        with self._lock:
            return [
                self._members.get(member_id, member_id)
                for member_id in (getattr(p, relation.to_key) for p in self._sorted(relation))
            ]

    # ==================== 写入 ====================

    def persist(self, pivot):
        self.persist_all([(pivot, pivot.get_sort_value())])

    def persist_all(self, assignments):
        with self._lock:
            # 整批校验通过后才修改记录并写入
            for pivot, value in assignments:
                if pivot.id not in self._pivots:
                    raise ValueError(f"中间表记录不存在: {pivot!r}")
                self._check(pivot, value)
            for pivot, value in assignments:
                pivot.set_sort_value(value)
                self._pivots[pivot.id] = copy.copy(pivot)

    def create_pivot(self, relation, member_id, sort_value, edit=None):
        pivot = relation.pivot_model(**{
            relation.from_key: relation.owner_id,
            relation.to_key: member_id,
        })
        pivot.set_sort_value(sort_value)
        if edit is not None:
            edit(pivot)
        self._check(pivot, pivot.get_sort_value())
        with self._lock:
            pivot.id = next(self._id_seq)
            self._pivots[pivot.id] = copy.copy(pivot)
        logger.debug(f"创建内存中间表记录: {pivot!r}")
        return pivot

    def delete_pivot(self, pivot):
        with self._lock:
            if self._pivots.pop(pivot.id, None) is None:
                raise ValueError(f"中间表记录不存在: {pivot!r}")


__all__ = [
    "MemoryPivot",
    "MemoryPivotStore",
]
