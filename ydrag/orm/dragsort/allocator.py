"""排序值分配器

为多对多关系的拖拽排序计算排序值：

- 生成：按前后邻居的排序值取中点，或在当前最大值后追加一个步长
- 冲突检测：候选值已被占用或超过上限即无效
- 重平衡：把整个关系的排序值均匀铺开到 [0, 上限)

参数约定:
    before: 移动后位于目标成员前面的邻居
    after:  移动后位于目标成员后面的邻居

    A(100)  B(200)  C(300)
    move(C, before=None, after=A)  ->  50   ->  C A B
    move(A, before=B, after=C)     ->  250  ->  B A C
    move(A, before=C, after=None)  ->  上限//2 + 150

使用示例:
    from ydrag.orm.dragsort import SortKeyAllocator, MemoryPivotStore, MemoryPivot, SiblingsRelation

    store = MemoryPivotStore()
    relation = SiblingsRelation(MemoryPivot, owner_id=1)
    allocator = SortKeyAllocator(store)

    allocator.attach("a", relation)
    allocator.attach("b", relation)
    allocator.move("b", None, "a", relation)
    allocator.get_sorted(relation)  # ["b", "a"]
"""

from typing import Any, Callable, List, Optional

from ydrag.log import get_logger

from .exceptions import NoSortValueAvailableError, PivotNotFoundError, UnsavedModelError
from .locks import NullRelationLock, RelationLock
from .relation import AttachMethod, Position, SiblingsRelation
from .store import PivotStore

logger = get_logger("ydrag.orm.dragsort.allocator")


class SortKeyAllocator:
    """排序值分配器

    本身无状态，所有状态都在 PivotStore 中，可被多个线程共享。

    Args:
        store: 中间表存储
        lock: 关系锁，包裹 move / attach / detach，默认不加锁
    """

    def __init__(self, store: PivotStore, lock: RelationLock = None):
        self.store = store
        self.lock = lock or NullRelationLock()

    # ==================== 辅助查询 ====================

    def sort_value(self, member_id: Any, relation: SiblingsRelation) -> Optional[int]:
        """成员当前的排序值，成员ID为 None 或未挂载时返回 None"""
        if member_id is None:
            return None
        pivot = self.store.find_pivot_by_member_id(member_id, relation)
        return pivot.get_sort_value() if pivot is not None else None

    def max_sort_value(self, relation: SiblingsRelation) -> Optional[int]:
        """关系内当前最大的排序值，空关系返回 None"""
        pivot = self.store.max_sort_value_pivot(relation)
        return pivot.get_sort_value() if pivot is not None else None

    # ==================== 生成 ====================

    def generate(self, before: Any, after: Any, relation: SiblingsRelation) -> int:
        """计算候选排序值（不校验、不写入）

        Args:
            before: 前邻居成员ID，可为 None
            after: 后邻居成员ID，可为 None
            relation: 关系实例

        Returns:
            候选排序值
        """
        limit = relation.max_sort_value
        before_value = self.sort_value(before, relation)
        after_value = self.sort_value(after, relation)

        if before_value is None and after_value is None:
            current_max = self.max_sort_value(relation)
            if current_max is None:
                candidate = limit // 2
            else:
                candidate = current_max + relation.insert_step
        elif before_value is None:
            candidate = after_value // 2
        elif after_value is None:
            candidate = limit // 2 + before_value // 2
        else:
            candidate = before_value // 2 + after_value // 2

        logger.debug(
            f"生成候选排序值 {relation!r}: before={before}({before_value}) "
            f"after={after}({after_value}) -> {candidate}"
        )
        return candidate

    def next_sort_value(self, before: Any, after: Any, relation: SiblingsRelation) -> int:
        """计算可用的排序值

        候选值无效时重平衡一次并重新生成，仍无效则抛出异常。

        Raises:
            NoSortValueAvailableError: 重平衡后仍没有可用值
        """
        candidate = self.generate(before, after, relation)
        if self.is_valid(candidate, relation):
            return candidate

        self.resolve_conflict(relation)
        candidate = self.generate(before, after, relation)
        if self.is_valid(candidate, relation):
            return candidate

        logger.error(f"重平衡后仍无可用排序值 {relation!r}: candidate={candidate}")
        raise NoSortValueAvailableError(candidate)

    def init_sort_value(self, relation: SiblingsRelation) -> int:
        """新挂载成员的排序值（不指定邻居）"""
        return self.next_sort_value(None, None, relation)

    # ==================== 冲突检测 ====================

    def is_conflict(self, value: int, relation: SiblingsRelation) -> bool:
        """关系内是否已有记录使用该排序值（包括被移动成员自己的记录）"""
        return self.store.find_pivot_by_sort_value(value, relation) is not None

    def is_valid(self, value: int, relation: SiblingsRelation) -> bool:
        """未被占用且不超过上限

        只检查上限，生成公式不会产生负数。
        """
        # 超过上限的值不查库
        return value <= relation.max_sort_value and not self.is_conflict(value, relation)

    # ==================== 重平衡 ====================

    def resolve_conflict(self, relation: SiblingsRelation) -> List[Any]:
        """把关系内全部记录按当前顺序重新编号为 0, g, 2g, ...（g = 上限 // 数量）

        Returns:
            重新编号后的中间表记录
        """
        pivots = self.store.all_pivots(relation, force_reload=True)
        if not pivots:
            return pivots

        gap = relation.max_sort_value // len(pivots)
        logger.warning(f"排序值冲突，开始重平衡 {relation!r}: {len(pivots)} 条记录")

        self.store.persist_all([(pivot, gap * index) for index, pivot in enumerate(pivots)])

        logger.warning(f"重平衡完成 {relation!r}: {len(pivots)} 条记录，间隔 {gap}")
        return pivots

    # ==================== 排序操作 ====================

    def move(self, member_id: Any, before: Any, after: Any, relation: SiblingsRelation):
        """移动成员到 before 与 after 之间

        只修改被移动成员的排序值（触发重平衡时除外）。

        Returns:
            被移动成员的中间表记录

        Raises:
            PivotNotFoundError: 成员未挂载
            NoSortValueAvailableError: 无可用排序值
        """
        with self.lock.hold(relation):
            pivot = self.store.find_pivot_by_member_id(member_id, relation)
            if pivot is None:
                raise PivotNotFoundError(member_id)

            value = self.next_sort_value(before, after, relation)
            pivot.set_sort_value(value)
            self.store.persist(pivot)
            return pivot

    def get_sorted(self, relation: SiblingsRelation) -> List[Any]:
        """按排序值升序返回关系内的成员

        Raises:
            UnsavedModelError: 拥有者尚未保存
        """
        if relation.owner_id is None:
            raise UnsavedModelError(relation.owner)
        return self.store.query_members_ordered(relation)

    def attach(
        self,
        member_id: Any,
        relation: SiblingsRelation,
        method: AttachMethod = AttachMethod.IF_NOT_EXISTS,
        position: Position = Position.END,
        edit: Optional[Callable[[Any], None]] = None,
    ):
        """挂载成员

        Position.END 按无邻居规则追加；Position.BEGINNING 以当前第一个成员作为后邻居，
        第一个成员已在 0 时重平衡并把 0 留给新成员，空关系时同 END。

        Args:
            member_id: 成员ID
            relation: 关系实例
            method: ALWAYS 总是新建；IF_NOT_EXISTS 已挂载时原样返回已有记录
            position: 挂载位置
            edit: 保存前修改中间表记录的回调

        Returns:
            中间表记录

        Raises:
            UnsavedModelError: 拥有者尚未保存
            NoSortValueAvailableError: 无可用排序值
        """
        if relation.owner_id is None:
            raise UnsavedModelError(relation.owner)

        with self.lock.hold(relation):
            if method == AttachMethod.IF_NOT_EXISTS:
                existing = self.store.find_pivot_by_member_id(member_id, relation)
                if existing is not None:
                    return existing

            if position == Position.BEGINNING:
                value = self._head_sort_value(relation)
            else:
                value = self.init_sort_value(relation)
            return self.store.create_pivot(relation, member_id, value, edit=edit)

    def _head_sort_value(self, relation: SiblingsRelation) -> int:
        """挂载到最前面时的排序值

        以当前第一个成员作为后邻居生成候选值。候选值不可用时（第一个成员已在 0），
        重平衡为 N+1 个位置并把 0 留给新成员。
        """
        pivots = self.store.all_pivots(relation, force_reload=True)
        if not pivots:
            return self.init_sort_value(relation)

        candidate = self.generate(None, getattr(pivots[0], relation.to_key), relation)
        if self.is_valid(candidate, relation):
            return candidate

        gap = relation.max_sort_value // (len(pivots) + 1)
        if gap == 0:
            logger.error(f"排序空间不足，无法挂载到最前面 {relation!r}: {len(pivots)} 条记录")
            raise NoSortValueAvailableError(candidate)

        logger.warning(f"首位没有空隙，重平衡并让出 0 {relation!r}: {len(pivots)} 条记录")
        self.store.persist_all(
            [(pivot, gap * (index + 1)) for index, pivot in enumerate(pivots)]
        )
        logger.warning(f"重平衡完成 {relation!r}: {len(pivots)} 条记录，间隔 {gap}")
        return 0

    def detach(self, member_id: Any, relation: SiblingsRelation) -> None:
        """移除成员的中间表记录

        Raises:
            PivotNotFoundError: 成员未挂载
        """
        with self.lock.hold(relation):
            pivot = self.store.find_pivot_by_member_id(member_id, relation)
            if pivot is None:
                raise PivotNotFoundError(member_id)
            self.store.delete_pivot(pivot)


__all__ = ["SortKeyAllocator"]
