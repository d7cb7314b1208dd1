"""排序关系实例与挂载选项

一个拥有者 + 连接它与成员的中间表模型。分配器的所有查询都限定在关系实例内。
"""

from enum import Enum
from typing import Any, Hashable, Optional, Tuple, Type

from .config import DragSortConfig


class AttachMethod(Enum):
    """挂载方式"""
    ALWAYS = "always"                # 总是新建中间表记录
    IF_NOT_EXISTS = "if_not_exists"  # 已挂载时返回已有记录


class Position(Enum):
    """挂载位置"""
    BEGINNING = "beginning"
    END = "end"


class SiblingsRelation:
    """排序关系实例

    本身不保存排序状态，每次操作时由调用方构造或由 Siblings 提供。

    Args:
        pivot_model: 中间表模型类
        owner: 拥有者对象（可选，提供时 owner_id 取其 id）
        owner_id: 拥有者ID（未提供 owner 时使用）
        member_model: 成员模型类（get_sorted 用）
        from_key: 中间表上指向拥有者的外键属性名
        to_key: 中间表上指向成员的外键属性名

    使用示例:
        relation = SiblingsRelation(PlaylistSong, owner=playlist, member_model=Song,
                                    from_key="playlist_id", to_key="song_id")
        allocator.move(song.id, None, first_song.id, relation)
    """

    def __init__(
        self,
        pivot_model: Type,
        owner: Any = None,
        owner_id: Any = None,
        member_model: Optional[Type] = None,
        from_key: str = "owner_id",
        to_key: str = "member_id",
    ):
        self.pivot_model = pivot_model
        self.owner = owner
        self._owner_id = owner_id
        self.member_model = member_model
        self.from_key = from_key
        self.to_key = to_key

    @property
    def owner_id(self) -> Any:
        if self.owner is not None:
            return getattr(self.owner, "id", None)
        return self._owner_id

    @property
    def owner_model(self) -> Optional[Type]:
        return type(self.owner) if self.owner is not None else None

    @property
    def key(self) -> Tuple[str, Hashable]:
        """关系标识：(中间表名, 拥有者ID)"""
        table = getattr(self.pivot_model, "__tablename__", self.pivot_model.__name__)
        return table, self.owner_id

    @property
    def max_sort_value(self) -> int:
        getter = getattr(self.pivot_model, "get_max_sort_value", None)
        return getter() if getter else DragSortConfig.get_max_sort_value()

    @property
    def insert_step(self) -> int:
        getter = getattr(self.pivot_model, "get_insert_step", None)
        return getter() if getter else DragSortConfig.get_insert_step()

    def __repr__(self):
        return f"<SiblingsRelation {self.key[0]} owner={self.owner_id}>"


__all__ = [
    "AttachMethod",
    "Position",
    "SiblingsRelation",
]
