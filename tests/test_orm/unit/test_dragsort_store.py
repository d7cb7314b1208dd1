"""中间表存储测试

MemoryPivotStore:
1. 读取返回副本，写回后才生效
2. 按 (排序值, 主键) 升序返回
3. persist_all 整批校验，失败时不留下部分修改

SQLAlchemyPivotStore:
4. persist_all 在保存点内赋值并 flush，任一行失败整批回滚
"""

import pytest
from sqlalchemy import CheckConstraint, event, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, mapped_column

from ydrag.orm import Base, CoreModel
from ydrag.orm.dragsort import (
    DragableMixin,
    MemoryPivot,
    MemoryPivotStore,
    PivotStore,
    SiblingsRelation,
    SortKeyAllocator,
    SortValueFieldMixin,
    SQLAlchemyPivotStore,
)


class CappedPivot(CoreModel, SortValueFieldMixin, DragableMixin):
    """排序值受 CHECK 约束限制在 500 以内的中间表"""
    __tablename__ = "test_capped_pivots"
    __table_args__ = (
        CheckConstraint("sort_value <= 500", name="ck_capped_sort_value"),
        {'extend_existing': True},
    )
    __max_sort_value__ = 1000

    owner_id: Mapped[int] = mapped_column()
    member_id: Mapped[int] = mapped_column()


@pytest.fixture
def store():
    return MemoryPivotStore()


@pytest.fixture
def relation():
    return SiblingsRelation(MemoryPivot, owner_id=7)


class TestMemoryPivotStore:
    """MemoryPivotStore 测试"""

    def test_is_pivot_store(self, store):
        assert isinstance(store, PivotStore)

    def test_create_assigns_ids(self, store, relation):
        first = store.create_pivot(relation, "a", 10)
        second = store.create_pivot(relation, "b", 20)

        assert (first.id, second.id) == (1, 2)
        assert first.owner_id == 7

    def test_reads_return_copies(self, store, relation):
        store.create_pivot(relation, "a", 10)

        pivot = store.find_pivot_by_member_id("a", relation)
        pivot.sort_value = 99

        assert store.find_pivot_by_member_id("a", relation).sort_value == 10
        store.persist(pivot)
        assert store.find_pivot_by_member_id("a", relation).sort_value == 99

    def test_order_ties_broken_by_id(self, store, relation):
        store.create_pivot(relation, "c", 5)
        store.create_pivot(relation, "a", 5)
        store.create_pivot(relation, "b", 1)

        assert [p.member_id for p in store.all_pivots(relation, force_reload=True)] == ["b", "c", "a"]
        assert store.max_sort_value_pivot(relation).member_id == "a"

    def test_find_by_sort_value(self, store, relation):
        store.create_pivot(relation, "a", 5)

        assert store.find_pivot_by_sort_value(5, relation).member_id == "a"
        assert store.find_pivot_by_sort_value(6, relation) is None

    def test_empty_relation(self, store, relation):
        assert store.all_pivots(relation) == []
        assert store.max_sort_value_pivot(relation) is None
        assert store.query_members_ordered(relation) == []

    def test_persist_all_is_atomic(self, store, relation):
        """一条非法值导致整批都不写入"""
        store.create_pivot(relation, "a", 10)
        store.create_pivot(relation, "b", 20)
        pivots = store.all_pivots(relation)

        with pytest.raises(ValueError):
            store.persist_all([(pivots[0], 0), (pivots[1], -5)])

        assert [p.sort_value for p in store.all_pivots(relation)] == [10, 20]
        assert [p.sort_value for p in pivots] == [10, 20]

    def test_persist_all_assigns_values(self, store, relation):
        store.create_pivot(relation, "a", 10)
        store.create_pivot(relation, "b", 20)
        pivots = store.all_pivots(relation)

        store.persist_all([(pivots[0], 30), (pivots[1], 5)])

        assert [p.sort_value for p in pivots] == [30, 5]
        assert [p.member_id for p in store.all_pivots(relation)] == ["b", "a"]

    def test_persist_unknown_pivot(self, store):
        with pytest.raises(ValueError):
            store.persist(MemoryPivot(owner_id=7, member_id="x", sort_value=1))

    def test_create_rejects_invalid_value(self, store, relation):
        with pytest.raises(ValueError):
            store.create_pivot(relation, "a", -1)
        with pytest.raises(ValueError):
            store.create_pivot(relation, "b", "10")

    def test_delete(self, store, relation):
        pivot = store.create_pivot(relation, "a", 1)
        store.delete_pivot(pivot)

        assert store.find_pivot_by_member_id("a", relation) is None
        with pytest.raises(ValueError):
            store.delete_pivot(pivot)

    def test_members(self, relation):
        store = MemoryPivotStore()
        store.add_member("a", {"title": "Intro"})
        store.create_pivot(relation, "b", 1)
        store.create_pivot(relation, "a", 2)

        assert store.query_members_ordered(relation) == ["b", {"title": "Intro"}]

    def test_custom_keys(self, store):
        """关系的 from_key / to_key 指向记录上的其他属性"""

        class BoardCard(MemoryPivot):
            def __init__(self, board_id=None, card_id=None, sort_value=0):
                super().__init__(sort_value=sort_value, board_id=board_id, card_id=card_id)

        relation = SiblingsRelation(BoardCard, owner_id=3, from_key="board_id", to_key="card_id")
        store.create_pivot(relation, 42, 8)

        pivot = store.find_pivot_by_member_id(42, relation)
        assert (pivot.board_id, pivot.card_id) == (3, 42)
        assert store.query_members_ordered(relation) == [42]


class TestSQLAlchemyPivotStore:
    """SQLAlchemyPivotStore 测试"""

    @pytest.fixture(autouse=True)
    def setup_db(self, memory_engine, db_session):
        Base.metadata.create_all(bind=memory_engine)
        self.engine = memory_engine
        self.session = db_session
        self.store = SQLAlchemyPivotStore(db_session)
        self.relation = SiblingsRelation(CappedPivot, owner_id=1)

    def stored_values(self):
        stmt = (
            select(CappedPivot.member_id, CappedPivot.sort_value)
            .where(CappedPivot.owner_id == 1)
            .order_by(CappedPivot.member_id)
        )
        return dict(self.session.execute(stmt).all())

    def test_is_pivot_store(self):
        assert isinstance(self.store, PivotStore)

    def test_persist_all_writes_values(self):
        self.store.create_pivot(self.relation, 1, 100)
        self.store.create_pivot(self.relation, 2, 200)
        pivots = self.store.all_pivots(self.relation)

        self.store.persist_all([(pivots[0], 300), (pivots[1], 50)])
        self.session.commit()

        assert self.stored_values() == {1: 300, 2: 50}
        assert [p.member_id for p in self.store.all_pivots(self.relation)] == [2, 1]

    def test_persist_all_updates_inside_savepoint(self):
        self.store.create_pivot(self.relation, 1, 100)
        self.store.create_pivot(self.relation, 2, 200)
        pivots = self.store.all_pivots(self.relation)
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement.split()[0].upper())

        event.listen(self.engine, "before_cursor_execute", record)
        try:
            self.store.persist_all([(pivots[0], 300), (pivots[1], 400)])
        finally:
            event.remove(self.engine, "before_cursor_execute", record)

        assert "SAVEPOINT" in statements
        assert statements.index("SAVEPOINT") < statements.index("UPDATE")

    def test_persist_all_is_atomic(self):
        """第二行违反 CHECK 约束，第一行的修改也一并回滚"""
        self.store.create_pivot(self.relation, 1, 100)
        self.store.create_pivot(self.relation, 2, 200)
        pivots = self.store.all_pivots(self.relation)

        with pytest.raises(IntegrityError):
            self.store.persist_all([(pivots[0], 300), (pivots[1], 900)])

        assert self.stored_values() == {1: 100, 2: 200}

    def test_failed_rebalance_leaves_values(self):
        """重平衡写出超出约束的值时不留下部分编号"""
        self.store.create_pivot(self.relation, 1, 400)
        self.store.create_pivot(self.relation, 2, 400)
        self.store.create_pivot(self.relation, 3, 450)

        with pytest.raises(IntegrityError):
            SortKeyAllocator(self.store).resolve_conflict(self.relation)

        assert self.stored_values() == {1: 400, 2: 400, 3: 450}

    def test_queries_use_pivot_sort_column(self):
        assert CappedPivot.get_sort_column() is CappedPivot.sort_value

        self.store.create_pivot(self.relation, 1, 300)
        self.store.create_pivot(self.relation, 2, 100)

        assert self.store.find_pivot_by_sort_value(100, self.relation).member_id == 2
        assert self.store.max_sort_value_pivot(self.relation).member_id == 1
