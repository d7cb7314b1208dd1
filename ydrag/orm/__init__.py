"""ORM模块

提供多对多关系拖拽排序的数据访问层：
- CoreModel: 核心模型基类，包含ID、时间戳、CRUD
- fields.SortedManyToMany: 可拖拽排序的多对多关系字段
- dragsort: 排序值分配器、中间表存储、关系锁
- 数据库会话管理

使用示例:
    from ydrag.orm import CoreModel, fields, init_database
    from ydrag.orm.dragsort import SortValueFieldMixin, DragableMixin

    init_database("sqlite:///./app.db")

    class Song(CoreModel):
        __tablename__ = "songs"
        title = mapped_column(String(100))

    class Playlist(CoreModel):
        __tablename__ = "playlists"
        songs = fields.SortedManyToMany(Song, through="PlaylistSong")

    class PlaylistSong(CoreModel, SortValueFieldMixin, DragableMixin):
        __tablename__ = "playlist_songs"
        playlist_id = mapped_column(ForeignKey("playlists.id"))
        song_id = mapped_column(ForeignKey("songs.id"))

    playlist.songs.attach(song, commit=True)
    playlist.songs.move(song, after=first_song, commit=True)
"""

from .id_model import IdModel, Base
from .core_model import CoreModel
from . import fields
from .fields import SortedManyToMany
from .db_session import (
    # 管理器单例
    db_manager,
    # 公开 API
    init_database,
    get_engine,
    get_db,
    on_request_end,
    db_session_scope,
    with_db_session,
)
from .dragsort import (
    SortKeyAllocator,
    SiblingsRelation,
    Siblings,
    AttachMethod,
    Position,
    SortValueFieldMixin,
    DragableMixin,
    SQLAlchemyPivotStore,
    MemoryPivotStore,
    DragSortConfig,
    configure_dragsort,
    DragSortError,
    PivotNotFoundError,
    NoSortValueAvailableError,
    UnsavedModelError,
)

__all__ = [
    # 模型
    "Base",
    "IdModel",
    "CoreModel",
    "fields",
    "SortedManyToMany",
    # 数据库
    "db_manager",
    "init_database",
    "get_engine",
    "get_db",
    "on_request_end",
    "db_session_scope",
    "with_db_session",
    # 拖拽排序
    "SortKeyAllocator",
    "SiblingsRelation",
    "Siblings",
    "AttachMethod",
    "Position",
    "SortValueFieldMixin",
    "DragableMixin",
    "SQLAlchemyPivotStore",
    "MemoryPivotStore",
    "DragSortConfig",
    "configure_dragsort",
    "DragSortError",
    "PivotNotFoundError",
    "NoSortValueAvailableError",
    "UnsavedModelError",
]
