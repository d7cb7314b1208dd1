"""ID模型基类

提供声明基类和整数自增主键。

使用说明：
    IdModel 是 CoreModel 的父类，只负责主键。
    一般情况下应使用 CoreModel；只需要主键、不需要时间戳和 CRUD 的
    中间表也可以直接继承 IdModel。
"""

from __future__ import annotations

from typing import dataclass_transform

from sqlalchemy import Integer
from sqlalchemy.orm import declarative_base, Mapped, mapped_column


# 声明基类
Base = declarative_base()


@dataclass_transform(kw_only_default=True, field_specifiers=(mapped_column,))
class IdModel(Base):
    """ID模型基类

    使用示例:
        class Tag(IdModel):
            __tablename__ = "tags"
            label = mapped_column(String(50))
    """
    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment='主键ID')
