"""
ORM基础模型

提供常用的CRUD操作，并在子类定义时处理 fields.SortedManyToMany 排序关系字段
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, declared_attr, Session, Query

if TYPE_CHECKING:
    from typing import Self

from .id_model import IdModel
from .utils import to_snake_case


class CoreModel(IdModel):
    """ORM基础模型类

    继承自 IdModel，提供功能：
    - 自动表名生成（驼峰转下划线）
    - 创建/更新时间戳
    - 常用CRUD操作方法
    - 排序多对多关系字段（fields.SortedManyToMany）

    使用示例:
        from ydrag.orm import CoreModel, init_database, fields

        init_database("sqlite:///./test.db")

        class Tag(CoreModel):
            __tablename__ = "tags"
            label: Mapped[str] = mapped_column(String(50))

        class Article(CoreModel):
            __tablename__ = "articles"
            title: Mapped[str] = mapped_column(String(100))
            tags = fields.SortedManyToMany(Tag, through="ArticleTag")

        article = Article(title="hello").save(commit=True)
        article.tags.attach(tag)
        article.tags.move(tag, after=other_tag)
    """
    __abstract__ = True

    # 允许非 Mapped[] 的类属性（如排序关系描述符）
    __allow_unmapped__ = True

    def __init_subclass__(cls, **kwargs):
        """子类初始化钩子

        处理 fields.SortedManyToMany 定义，替换为绑定到本模型的关系描述符
        """
        super().__init_subclass__(**kwargs)

        # 类自身声明为抽象时跳过
        if cls.__dict__.get('__abstract__', False):
            return

        from .fields import process_sorted_relationship_fields
        process_sorted_relationship_fields(cls)

    # query 属性由 init_database() 通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]

    _session: Session = None

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """驼峰命名转下划线"""
        name = cls.__name__
        if '_' in name:
            raise ValueError(f'{name}字符中包含下划线，无法转换')
        return to_snake_case(name)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        comment="创建时间"
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        onupdate=func.now(),
        comment="更新时间"
    )

    # 系统字段列表（构造时自动忽略这些字段）
    _system_fields: ClassVar[set] = {'id', 'created_at', 'updated_at'}

    def __init__(self, **kwargs):
        """初始化模型实例，静默忽略系统字段"""
        for field in self._system_fields:
            kwargs.pop(field, None)
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    def __getattribute__(self, name):
        """访问 pending 对象的 id 时自动 flush，以便立即拿到自增主键

            article = Article(title="hello")
            article.save()
            print(article.id)  # 自动 flush，立即可用
        """
        value = super().__getattribute__(name)

        if name == 'id' and value is None:
            try:
                state = super().__getattribute__('_sa_instance_state')
                session = state.session
                # flush 过程中（如 before_insert 事件）不能再次 flush
                if session is not None and state.pending and not session._flushing:
                    session.flush()
                    return super().__getattribute__(name)
            except (AttributeError, KeyError):
                pass

        return value

    @property
    def session(self) -> Session:
        """获取当前session

        优先从 query 属性获取 session，否则从全局 scoped_session 获取
        """
        if self._session is None:
            query = getattr(self.__class__, "query", None)
            if query is not None:
                self._session = query.session
            else:
                from .db_session import db_manager
                self._session = db_manager.get_session()
        return self._session

    # ==================== CRUD 操作方法 ====================

    def save(self, commit: bool = False) -> Self:
        """保存对象（新增或更新）

        Args:
            commit: 是否立即提交，默认False

        Returns:
            self: 返回自身，支持链式调用
        """
        self.session.add(self)
        self._commit_if(self.session, commit)
        return self

    @classmethod
    def save_all(cls, objects: list, commit: bool = False) -> list:
        """批量保存对象"""
        if not objects:
            return objects
        session = cls.query.session
        session.add_all(objects)
        cls._commit_if(session, commit)
        return objects

    def update(self, commit: bool = False, **kwargs) -> Self:
        """更新对象属性

            tag.update(label="python", commit=True)
        """
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
        self._commit_if(self.session, commit)
        return self

    def delete(self, commit: bool = False):
        """删除对象"""
        self.session.delete(self)
        self._commit_if(self.session, commit)

    def refresh(self, attribute_names: list = None) -> Self:
        """从数据库重新加载对象状态"""
        if attribute_names:
            self.session.refresh(self, attribute_names)
        else:
            self.session.refresh(self)
        return self

    @classmethod
    def get(cls, id: int):
        """根据ID获取对象，不存在返回None"""
        return cls.query.filter_by(id=id).first()

    @classmethod
    def get_all(cls) -> List[Self]:
        return cls.query.all()

    def to_dict(self, exclude: set = None) -> dict:
        """序列化列字段为字典"""
        exclude = exclude or set()
        return {
            column.name: getattr(self, column.key, None)
            for column in self.__table__.columns
            if column.name not in exclude
        }

    @staticmethod
    def _commit_if(session: Session, commit: bool):
        if commit:
            session.commit()
