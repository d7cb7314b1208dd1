"""拖拽排序配置测试

测试排序参数的解析优先级：中间表类属性 > DragSortConfig 全局配置 > 内置默认值
"""

import pytest

from ydrag.config import DragSortSettings
from ydrag.orm.dragsort import (
    DEFAULT_INSERT_STEP,
    DEFAULT_MAX_SORT_VALUE,
    Dragable,
    DragSortConfig,
    MemoryPivot,
    SiblingsRelation,
    configure_dragsort,
)


class PlainPivot(MemoryPivot):
    """使用全局配置的中间表"""
    pass


class CustomPivot(MemoryPivot):
    """自带排序参数的中间表"""
    __max_sort_value__ = 10_000
    __insert_step__ = 100


class TestDragSortConfig:
    """DragSortConfig 测试"""

    def test_builtin_defaults(self):
        assert DragSortConfig.get_max_sort_value() == 2 ** 63 - 1
        assert DragSortConfig.get_insert_step() == 2 ** 32
        assert DragSortConfig.get_sort_field() == "sort_value"
        assert DragSortConfig.get_lock_mode() == "none"

    def test_configure_and_reset(self):
        DragSortConfig.configure(max_sort_value=5000, insert_step=10, lock_mode="thread")
        assert DragSortConfig.get_max_sort_value() == 5000
        assert DragSortConfig.get_insert_step() == 10
        assert DragSortConfig.get_lock_mode() == "thread"

        DragSortConfig.reset()
        assert DragSortConfig.get_max_sort_value() == DEFAULT_MAX_SORT_VALUE
        assert DragSortConfig.get_insert_step() == DEFAULT_INSERT_STEP

    @pytest.mark.parametrize("kwargs", [
        {"max_sort_value": 0},
        {"insert_step": -1},
        {"sort_field": ""},
        {"lock_mode": "redis"},
    ])
    def test_configure_rejects_invalid(self, kwargs):
        with pytest.raises(ValueError):
            DragSortConfig.configure(**kwargs)

    def test_configure_dragsort_from_settings(self):
        configure_dragsort(DragSortSettings(max_sort_value=2 ** 31 - 1, insert_step=1024))

        assert DragSortConfig.get_max_sort_value() == 2 ** 31 - 1
        assert DragSortConfig.get_insert_step() == 1024

    def test_configure_dragsort_keeps_unspecified_values(self):
        configure_dragsort(insert_step=64)
        configure_dragsort(lock_mode="thread")

        assert DragSortConfig.get_insert_step() == 64
        assert DragSortConfig.get_lock_mode() == "thread"


class TestPivotConfigPriority:
    """中间表排序参数优先级测试"""

    def test_global_values_apply_to_plain_pivot(self):
        DragSortConfig.configure(max_sort_value=777, insert_step=7)

        assert PlainPivot.get_max_sort_value() == 777
        assert PlainPivot.get_insert_step() == 7

    def test_class_attributes_win(self):
        DragSortConfig.configure(max_sort_value=777, insert_step=7)

        assert CustomPivot.get_max_sort_value() == 10_000
        assert CustomPivot.get_insert_step() == 100

    def test_relation_reads_pivot_config(self):
        relation = SiblingsRelation(CustomPivot, owner_id=1)

        assert relation.max_sort_value == 10_000
        assert relation.insert_step == 100
        assert relation.key == ("CustomPivot", 1)

    def test_sort_value_accessors(self):
        pivot = CustomPivot(owner_id=1, member_id="a", sort_value=3)
        pivot.set_sort_value(9)

        assert pivot.get_sort_value() == 9
        assert pivot.sort_value == 9

    def test_satisfies_dragable_protocol(self):
        assert isinstance(CustomPivot(), Dragable)
