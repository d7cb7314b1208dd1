"""版本信息"""

__version__ = "0.3.0"
__author__ = "yafo-ai"
__description__ = "多对多关系拖拽排序类库（基于 SQLAlchemy）"
