"""拖拽排序模块

为多对多关系提供可拖拽的稳定排序：

- SortKeyAllocator: 排序值分配器（生成、冲突检测、重平衡）
- PivotStore: 中间表存储接口（SQLAlchemyPivotStore / MemoryPivotStore）
- SortValueFieldMixin / DragableMixin: 中间表模型的排序字段与排序参数
- Siblings: 拥有者上的排序关系（由 fields.SortedManyToMany 提供）
- 关系锁: NullRelationLock / ThreadRelationLock / RowRelationLock

使用示例:
    from ydrag.orm import CoreModel, fields
    from ydrag.orm.dragsort import SortValueFieldMixin, DragableMixin

    class Playlist(CoreModel):
        __tablename__ = "playlists"
        songs = fields.SortedManyToMany("Song", through="PlaylistSong")

    class PlaylistSong(CoreModel, SortValueFieldMixin, DragableMixin):
        __tablename__ = "playlist_songs"
        playlist_id = mapped_column(ForeignKey("playlists.id"))
        song_id = mapped_column(ForeignKey("songs.id"))

    playlist.songs.attach(song)
    playlist.songs.move(song, before=a, after=b)
"""

from .exceptions import (
    DragSortError,
    PivotNotFoundError,
    NoSortValueAvailableError,
    UnsavedModelError,
)
from .config import (
    DragSortConfig,
    configure_dragsort,
    DEFAULT_MAX_SORT_VALUE,
    DEFAULT_INSERT_STEP,
    DEFAULT_SORT_FIELD,
)
from .pivot import Dragable, SortValueFieldMixin, DragableMixin
from .relation import AttachMethod, Position, SiblingsRelation
from .store import PivotStore, SQLAlchemyPivotStore
from .memory_store import MemoryPivot, MemoryPivotStore
from .locks import (
    RelationLock,
    NullRelationLock,
    ThreadRelationLock,
    RowRelationLock,
    create_relation_lock,
)
from .allocator import SortKeyAllocator
from .siblings import Siblings, SiblingsProperty

__all__ = [
    # 异常
    "DragSortError",
    "PivotNotFoundError",
    "NoSortValueAvailableError",
    "UnsavedModelError",
    # 配置
    "DragSortConfig",
    "configure_dragsort",
    "DEFAULT_MAX_SORT_VALUE",
    "DEFAULT_INSERT_STEP",
    "DEFAULT_SORT_FIELD",
    # 中间表
    "Dragable",
    "SortValueFieldMixin",
    "DragableMixin",
    # 关系
    "AttachMethod",
    "Position",
    "SiblingsRelation",
    "Siblings",
    "SiblingsProperty",
    # 存储
    "PivotStore",
    "SQLAlchemyPivotStore",
    "MemoryPivot",
    "MemoryPivotStore",
    # 锁
    "RelationLock",
    "NullRelationLock",
    "ThreadRelationLock",
    "RowRelationLock",
    "create_relation_lock",
    # 分配器
    "SortKeyAllocator",
]
