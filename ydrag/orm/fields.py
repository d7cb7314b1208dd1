"""Django 风格的排序关系字段定义

在拥有者模型上声明一个“可拖拽排序”的多对多关系，中间表模型由使用者定义
（需混入 SortValueFieldMixin + DragableMixin 提供排序值）。

使用示例:
    from ydrag.orm import CoreModel, fields
    from ydrag.orm.dragsort import SortValueFieldMixin, DragableMixin

    class Tag(CoreModel):
        __tablename__ = "tags"
        label: Mapped[str] = mapped_column(String(50))

    class Article(CoreModel):
        __tablename__ = "articles"
        title: Mapped[str] = mapped_column(String(100))

        # 中间表可以用类名字符串延迟引用
        tags = fields.SortedManyToMany(Tag, through="ArticleTag")

    class ArticleTag(CoreModel, SortValueFieldMixin, DragableMixin):
        __tablename__ = "article_tags"
        __insert_step__ = 1024

        article_id: Mapped[int] = mapped_column(ForeignKey("articles.id"))
        tag_id: Mapped[int] = mapped_column(ForeignKey("tags.id"))

    article.tags.attach(tag)            # 追加到末尾
    article.tags.move(tag, after=first) # 拖到 first 前面
    article.tags.get_sorted()           # 按排序值返回 Tag 列表

外键列名约定（未显式指定 from_key / to_key 时）:
    拥有者表名去复数 + _id（articles → article_id）
    成员表名去复数 + _id（tags → tag_id）
"""
from __future__ import annotations

from typing import Optional, Type, Union, TYPE_CHECKING

from .utils import fk_column_name

if TYPE_CHECKING:
    from .core_model import CoreModel


class _SortedManyToManyConfig:
    """排序多对多字段配置"""

    def __init__(
        self,
        target_model: Union[Type["CoreModel"], str],
        through: Union[Type, str],
        from_key: Optional[str] = None,
        to_key: Optional[str] = None,
    ):
        self.target_model = target_model
        self.through = through
        self.from_key = from_key
        self.to_key = to_key


def SortedManyToMany(
    target_model: Union[Type["CoreModel"], str],
    through: Union[Type, str],
    from_key: Optional[str] = None,
    to_key: Optional[str] = None,
) -> _SortedManyToManyConfig:
    """可拖拽排序的多对多关系字段

    关系示意图：

        ┌─────────────┐          ┌──────────────────┐          ┌─────────────┐
        │   Article   │    1     │   article_tags   │    N     │     Tag     │
        │─────────────│─────────►│──────────────────│◄─────────│─────────────│
        │ id (PK)     │          │ article_id (FK)  │          │ id (PK)     │
        │ tags ───────┼─────┐    │ tag_id (FK)      │          │ label       │
        └─────────────┘     │    │ sort_value       │          └─────────────┘
                            └───►│ (拖拽排序值)     │
                                 └──────────────────┘

    Args:
        target_model: 成员模型类（或类名字符串）
        through: 中间表模型类（或类名字符串），需提供排序值能力
        from_key: 中间表上指向拥有者的外键属性名
        to_key: 中间表上指向成员的外键属性名

    Returns:
        字段配置，在 CoreModel.__init_subclass__ 中被替换为关系描述符
    """
    return _SortedManyToManyConfig(
        target_model=target_model,
        through=through,
        from_key=from_key,
        to_key=to_key,
    )


def _resolve_model(ref: Union[Type, str]) -> Type:
    """把类名字符串解析为已注册的映射类"""
    if not isinstance(ref, str):
        return ref
    from .id_model import Base

    for mapper in Base.registry.mappers:
        if mapper.class_.__name__ == ref:
            return mapper.class_
    raise LookupError(f"未找到模型类: {ref}")


def resolve_relation_keys(owner_model: Type, config: _SortedManyToManyConfig):
    """解析关系的 (成员模型, 中间表模型, from_key, to_key)"""
    target_model = _resolve_model(config.target_model)
    through = _resolve_model(config.through)
    from_key = config.from_key or fk_column_name(owner_model.__tablename__)
    to_key = config.to_key or fk_column_name(target_model.__tablename__)

    for key in (from_key, to_key):
        if not hasattr(through, key):
            raise AttributeError(f"中间表 {through.__name__} 缺少外键属性: {key}")

    return target_model, through, from_key, to_key


def process_sorted_relationship_fields(cls):
    """把类（及其 Mixin）上的 SortedManyToMany 配置替换为关系描述符

    在 CoreModel.__init_subclass__ 中调用。模型引用在首次访问时才解析，
    因此中间表可以定义在拥有者之后。
    """
    from .dragsort.siblings import SiblingsProperty

    processed_names = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        for attr_name, config in list(vars(klass).items()):
            if attr_name in processed_names:
                continue
            if isinstance(config, _SortedManyToManyConfig):
                setattr(cls, attr_name, SiblingsProperty(attr_name, config))
                processed_names.add(attr_name)


__all__ = [
    "SortedManyToMany",
    "process_sorted_relationship_fields",
    "resolve_relation_keys",
    "_SortedManyToManyConfig",
]
