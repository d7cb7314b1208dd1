"""ORM 命名工具

表名、外键列名推导用到的字符串转换。
"""
import re


def to_snake_case(name: str) -> str:
    """驼峰命名转下划线命名（保留 API、E2E 这类连续大写缩写）

    Examples:
        >>> to_snake_case("ArticleTag")
        'article_tag'
        >>> to_snake_case("APIClient")
        'api_client'
    """
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    result = re.sub(r'([a-z])([A-Z])', r'\1_\2', result)
    return result.lower()


def singularize(name: str) -> str:
    """表名去复数化，用于推导外键列名（tags → tag_id）

    Examples:
        >>> singularize("categories")
        'category'
        >>> singularize("address")
        'address'
    """
    if name.endswith('ies'):
        return name[:-3] + 'y'
    if name.endswith('s') and not name.endswith('ss'):
        return name[:-1]
    return name


def fk_column_name(tablename: str) -> str:
    """按表名生成外键列名：playlists → playlist_id"""
    return f"{singularize(tablename)}_id"


__all__ = [
    "to_snake_case",
    "singularize",
    "fk_column_name",
]
