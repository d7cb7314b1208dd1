"""拥有者上的排序关系访问

fields.SortedManyToMany 在模型类上被替换为 SiblingsProperty，
通过实例访问时得到绑定到该拥有者的 Siblings。

    playlist.songs.attach(song)
    playlist.songs.move(song, after=first_song)
    playlist.songs.get_sorted()
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from sqlalchemy.orm import Session, object_session

from .allocator import SortKeyAllocator
from .locks import RelationLock, create_relation_lock
from .relation import AttachMethod, Position, SiblingsRelation
from .store import SQLAlchemyPivotStore


class Siblings:
    """绑定到某个拥有者的排序关系

    成员参数既可以是模型实例，也可以是成员ID。
    写操作只 flush，commit=True 时提交当前 session。

    Args:
        relation: 关系实例
        session: 数据库 session
        lock: 关系锁，默认按 DragSortConfig.lock_mode 创建
    """

    def __init__(self, relation: SiblingsRelation, session: Session, lock: RelationLock = None):
        self.relation = relation
        self.session = session
        self.store = SQLAlchemyPivotStore(session)
        self.allocator = SortKeyAllocator(
            self.store, lock or create_relation_lock(session=session)
        )

    def __repr__(self):
        return f"<Siblings {self.relation!r}>"

    @staticmethod
    def _member_id(member: Any) -> Any:
        if member is None:
            return None
        return getattr(member, "id", member)

    def _commit_if(self, commit: bool):
        if commit:
            self.session.commit()

    # ==================== 查询 ====================

    def get_sorted(self) -> List[Any]:
        """按排序值升序返回成员"""
        return self.allocator.get_sorted(self.relation)

    def pivot(self, member: Any) -> Optional[Any]:
        """获取成员的中间表记录，未挂载返回 None"""
        return self.store.find_pivot_by_member_id(self._member_id(member), self.relation)

    def is_attached(self, member: Any) -> bool:
        return self.pivot(member) is not None

    def sort_value(self, member: Any) -> Optional[int]:
        return self.allocator.sort_value(self._member_id(member), self.relation)

    def next_sort_value(self, before: Any = None, after: Any = None) -> int:
        return self.allocator.next_sort_value(
            self._member_id(before), self._member_id(after), self.relation
        )

    # ==================== 修改 ====================

    def move(self, member: Any, before: Any = None, after: Any = None, commit: bool = False):
        """移动成员

        Args:
            member: 要移动的成员
            before: 移动后位于其前面的成员
            after: 移动后位于其后面的成员
            commit: 是否立即提交

        Returns:
            被移动成员的中间表记录

        Raises:
            PivotNotFoundError: 成员未挂载
            NoSortValueAvailableError: 无可用排序值

        Example:
            # 拖到 first 前面（列表最前）
            playlist.songs.move(song, after=first)
            # 拖到 a 与 b 之间
            playlist.songs.move(song, before=a, after=b)
        """
        pivot = self.allocator.move(
            self._member_id(member),
            self._member_id(before),
            self._member_id(after),
            self.relation,
        )
        self._commit_if(commit)
        return pivot

    def attach(
        self,
        member: Any,
        method: AttachMethod = AttachMethod.IF_NOT_EXISTS,
        position: Position = Position.END,
        edit: Optional[Callable[[Any], None]] = None,
        commit: bool = False,
    ):
        """挂载成员

        Args:
            member: 成员
            method: ALWAYS 总是新建记录；IF_NOT_EXISTS 已挂载时返回已有记录
            position: END 追加到末尾；BEGINNING 放到最前
            edit: 保存前修改中间表记录的回调，如 lambda p: setattr(p, "note", "x")
            commit: 是否立即提交

        Returns:
            中间表记录
        """
        pivot = self.allocator.attach(
            self._member_id(member), self.relation,
            method=method, position=position, edit=edit,
        )
        self._commit_if(commit)
        return pivot

    def attach_all(
        self,
        members: Iterable[Any],
        method: AttachMethod = AttachMethod.IF_NOT_EXISTS,
        position: Position = Position.END,
        edit: Optional[Callable[[Any], None]] = None,
        commit: bool = False,
    ) -> List[Any]:
        """批量挂载，挂载后成员之间保持传入顺序

        Returns:
            与 members 顺序一致的中间表记录列表
        """
        members = list(members)
        ordered = reversed(members) if position == Position.BEGINNING else members
        pivots = [
            self.attach(member, method=method, position=position, edit=edit)
            for member in ordered
        ]
        if position == Position.BEGINNING:
            pivots.reverse()
        self._commit_if(commit)
        return pivots

    def detach(self, member: Any, commit: bool = False) -> None:
        """移除成员

        Raises:
            PivotNotFoundError: 成员未挂载
        """
        self.allocator.detach(self._member_id(member), self.relation)
        self._commit_if(commit)

    def resolve_conflict(self, commit: bool = False) -> List[Any]:
        """立即重平衡整个关系"""
        pivots = self.allocator.resolve_conflict(self.relation)
        self._commit_if(commit)
        return pivots


class SiblingsProperty:
    """排序关系描述符

    由 CoreModel.__init_subclass__ 安装，类访问返回描述符本身，实例访问返回 Siblings。
    """

    def __init__(self, name: str, config):
        self.name = name
        self.config = config
        self._resolved: Dict[Type, tuple] = {}

    def resolve(self, owner_model: Type) -> tuple:
        """解析 (成员模型, 中间表模型, from_key, to_key)，按拥有者模型缓存"""
        resolved = self._resolved.get(owner_model)
        if resolved is None:
            from ..fields import resolve_relation_keys
            resolved = resolve_relation_keys(owner_model, self.config)
            self._resolved[owner_model] = resolved
        return resolved

    def __get__(self, instance, owner=None):
        if instance is None:
            return self

        member_model, pivot_model, from_key, to_key = self.resolve(type(instance))
        relation = SiblingsRelation(
            pivot_model,
            owner=instance,
            member_model=member_model,
            from_key=from_key,
            to_key=to_key,
        )
        session = object_session(instance) or instance.session
        return Siblings(relation, session)

    def __set__(self, instance, value):
        raise AttributeError(f"排序关系 {self.name} 只读，请使用 attach / detach 修改")


__all__ = [
    "Siblings",
    "SiblingsProperty",
]
