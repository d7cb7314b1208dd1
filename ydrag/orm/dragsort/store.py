"""中间表存储模块

排序分配器通过 PivotStore 访问中间表，不直接接触数据库。

提供的实现:
- SQLAlchemyPivotStore: 基于 SQLAlchemy Session
- MemoryPivotStore: 纯内存实现（见 memory_store.py）
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from ydrag.log import get_logger

logger = get_logger("ydrag.orm.dragsort.store")


class PivotStore(ABC):
    """中间表存储抽象基类

    所有返回多条中间表记录的方法都按 (排序值, 主键) 升序返回。
    """

    @abstractmethod
    def find_pivot_by_member_id(self, member_id: Any, relation) -> Optional[Any]:
        """按成员ID查找关系内的中间表记录"""
        pass

    @abstractmethod
    def find_pivot_by_sort_value(self, value: int, relation) -> Optional[Any]:
        """查找关系内排序值等于 value 的任意一条记录"""
        pass

    @abstractmethod
    def all_pivots(self, relation, force_reload: bool = False) -> List[Any]:
        """获取关系内全部中间表记录

        Args:
            relation: 关系实例
            force_reload: 是否绕过缓存重新读取
        """
        pass

    @abstractmethod
    def max_sort_value_pivot(self, relation) -> Optional[Any]:
        """获取排序值最大的记录"""
        pass

    @abstractmethod
    def persist(self, pivot: Any) -> None:
        """写回一条记录"""
        pass

    @abstractmethod
    def persist_all(self, assignments: Sequence[Tuple[Any, int]]) -> None:
        """原子地为一批记录赋新排序值并写回，失败时不留下部分修改

        Args:
            assignments: (记录, 新排序值) 列表
        """
        pass

    @abstractmethod
    def query_members_ordered(self, relation) -> List[Any]:
        """按排序值升序返回关系内的成员"""
        pass

    @abstractmethod
    def create_pivot(
        self,
        relation,
        member_id: Any,
        sort_value: int,
        edit: Optional[Callable[[Any], None]] = None,
    ) -> Any:
        """创建中间表记录

        Args:
            relation: 关系实例
            member_id: 成员ID
            sort_value: 排序值
            edit: 保存前修改记录的回调，用于填写中间表上的附加字段
        """
        pass

    @abstractmethod
    def delete_pivot(self, pivot: Any) -> None:
        """删除中间表记录"""
        pass


class SQLAlchemyPivotStore(PivotStore):
    """基于 SQLAlchemy Session 的中间表存储

    写操作只 flush 不 commit，事务边界由调用方（或 commit=True 参数）决定。

    使用示例:
        store = SQLAlchemyPivotStore(session)
        allocator = SortKeyAllocator(store)
    """

    def __init__(self, session: Session):
        self.session = session

    # ==================== 内部方法 ====================

    def _relation_query(self, relation):
        pivot_model = relation.pivot_model
        owner_column = getattr(pivot_model, relation.from_key)
        return select(pivot_model).where(owner_column == relation.owner_id)

    # ==================== 查询 ====================

    def find_pivot_by_member_id(self, member_id, relation):
        member_column = getattr(relation.pivot_model, relation.to_key)
        stmt = self._relation_query(relation).where(member_column == member_id).limit(1)
        return self.session.execute(stmt).scalars().first()

    def find_pivot_by_sort_value(self, value, relation):
        sort_column = relation.pivot_model.get_sort_column()
        stmt = self._relation_query(relation).where(sort_column == value).limit(1)
        return self.session.execute(stmt).scalars().first()

    def all_pivots(self, relation, force_reload=False):
        pivot_model = relation.pivot_model
        stmt = self._relation_query(relation).order_by(
            pivot_model.get_sort_column(), pivot_model.id
        )
        if force_reload:
            # 用数据库中的值覆盖 identity map 里已加载的对象
            stmt = stmt.execution_options(populate_existing=True)
        return list(self.session.execute(stmt).scalars().all())

    def max_sort_value_pivot(self, relation):
        pivot_model = relation.pivot_model
        stmt = self._relation_query(relation).order_by(
            pivot_model.get_sort_column().desc(), pivot_model.id.desc()
        ).limit(1)
        return self.session.execute(stmt).scalars().first()

    def query_members_ordered(self, relation):
        pivot_model = relation.pivot_model
        member_model = relation.member_model
        if member_model is None:
            raise ValueError(f"{relation!r} 未指定成员模型，无法查询成员")
        stmt = (
            select(member_model)
            .join(pivot_model, getattr(pivot_model, relation.to_key) == member_model.id)
            .where(getattr(pivot_model, relation.from_key) == relation.owner_id)
            .order_by(pivot_model.get_sort_column(), pivot_model.id)
        )
        return list(self.session.execute(stmt).scalars().all())

    # ==================== 写入 ====================

    def persist(self, pivot):
        self.session.add(pivot)
        self.session.flush()

    def persist_all(self, assignments):
        # begin_nested 会先 flush 已有修改，新值要在保存点打开之后再赋
        with self.session.begin_nested():
            for pivot, value in assignments:
                pivot.set_sort_value(value)
                self.session.add(pivot)
            self.session.flush()
        logger.debug(f"批量写回 {len(assignments)} 条中间表记录")

    def create_pivot(self, relation, member_id, sort_value, edit=None):
        pivot = relation.pivot_model(**{
            relation.from_key: relation.owner_id,
            relation.to_key: member_id,
        })
        pivot.set_sort_value(sort_value)
        if edit is not None:
            edit(pivot)
        self.persist(pivot)
        return pivot

    def delete_pivot(self, pivot):
        self.session.delete(pivot)
        self.session.flush()


__all__ = [
    "PivotStore",
    "SQLAlchemyPivotStore",
]
