"""可拖拽中间表定义

提供中间表模型的排序值字段与排序参数能力。

使用示例:
    from ydrag.orm import CoreModel
    from ydrag.orm.dragsort import SortValueFieldMixin, DragableMixin

    class PlaylistSong(CoreModel, SortValueFieldMixin, DragableMixin):
        __tablename__ = "playlist_songs"
        __max_sort_value__ = 2 ** 31 - 1   # 可选，默认取全局配置
        __insert_step__ = 1024             # 可选

        playlist_id = mapped_column(ForeignKey("playlists.id"))
        song_id = mapped_column(ForeignKey("songs.id"))
"""

from typing import Optional, Protocol, runtime_checkable

from sqlalchemy import BigInteger
from sqlalchemy.orm import Mapped, mapped_column

from .config import DragSortConfig


@runtime_checkable
class Dragable(Protocol):
    """排序分配器对中间表的能力要求

    读写排序值，以及读取排序值上限与追加步长。
    """

    @classmethod
    def get_max_sort_value(cls) -> int: ...

    @classmethod
    def get_insert_step(cls) -> int: ...

    @classmethod
    def get_sort_field(cls) -> str: ...

    def get_sort_value(self) -> Optional[int]: ...

    def set_sort_value(self, value: int) -> None: ...


class SortValueFieldMixin:
    """排序值字段 Mixin

    提供标准的 sort_value 字段定义，值越小越靠前。

    使用示例:
        PlaylistSong.query.order_by(PlaylistSong.sort_value).all()
    """

    sort_value: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        index=True,
        comment="拖拽排序值"
    )


class DragableMixin:
    """可拖拽中间表 Mixin

    可配置属性（子类可覆盖，None 表示使用 DragSortConfig 全局值）:
        - __max_sort_value__: 排序值上限（含）
        - __insert_step__: 追加步长
        - __sort_field__: 排序字段名
    """

    __max_sort_value__: Optional[int] = None
    __insert_step__: Optional[int] = None
    __sort_field__: Optional[str] = None

    @classmethod
    def get_max_sort_value(cls) -> int:
        value = getattr(cls, '__max_sort_value__', None)
        return value if value is not None else DragSortConfig.get_max_sort_value()

    @classmethod
    def get_insert_step(cls) -> int:
        value = getattr(cls, '__insert_step__', None)
        return value if value is not None else DragSortConfig.get_insert_step()

    @classmethod
    def get_sort_field(cls) -> str:
        return getattr(cls, '__sort_field__', None) or DragSortConfig.get_sort_field()

    @classmethod
    def get_sort_column(cls):
        """获取排序字段的 Column 对象"""
        return getattr(cls, cls.get_sort_field())

    def get_sort_value(self) -> Optional[int]:
        return getattr(self, self.get_sort_field(), None)

    def set_sort_value(self, value: int) -> None:
        setattr(self, self.get_sort_field(), value)


__all__ = [
    "Dragable",
    "SortValueFieldMixin",
    "DragableMixin",
]
