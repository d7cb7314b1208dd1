"""关系锁

为 move / attach 的“读取-校验-写入”过程提供按关系的互斥范围。

- NullRelationLock: 不加锁（默认）
- ThreadRelationLock: 进程内按关系标识加 threading.RLock
- RowRelationLock: 在当前事务中对拥有者记录 SELECT ... FOR UPDATE
"""

import threading
import weakref
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ydrag.log import get_logger

from .config import DragSortConfig

logger = get_logger("ydrag.orm.dragsort.locks")


class RelationLock(ABC):
    """关系锁基类"""

    @abstractmethod
    def acquire(self, relation) -> None:
        """获取关系锁"""
        pass

    @abstractmethod
    def release(self, relation) -> None:
        """释放关系锁"""
        pass

    @contextmanager
    def hold(self, relation) -> Iterator[None]:
        """在 with 块内持有关系锁

        使用示例:
            with lock.hold(relation):
                value = allocator.next_sort_value(None, None, relation)
        """
        self.acquire(relation)
        try:
            yield
        finally:
            self.release(relation)


class NullRelationLock(RelationLock):
    """不加锁

    并发 move 同一关系时可能短暂产生重复排序值，下次检测到冲突时由重平衡修正。
    """

    def acquire(self, relation) -> None:
        pass

    def release(self, relation) -> None:
        pass


class ThreadRelationLock(RelationLock):
    """进程内关系锁

    按 relation.key（中间表名 + 拥有者ID）分配可重入锁，只对同一进程内的线程有效。
    注册表只弱引用这些锁，没有线程持有或等待的锁会被回收。
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, threading.RLock]" = (
            weakref.WeakValueDictionary()
        )
        # key -> [锁, 重入次数]，持有期间保持强引用
        self._held: Dict[Hashable, list] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, relation) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(relation.key)
            if lock is None:
                lock = threading.RLock()
                self._locks[relation.key] = lock
            return lock

    def acquire(self, relation) -> None:
        lock = self._lock_for(relation)
        lock.acquire()
        with self._registry_lock:
            entry = self._held.setdefault(relation.key, [lock, 0])
            entry[1] += 1

    def release(self, relation) -> None:
        with self._registry_lock:
            entry = self._held.get(relation.key)
            if entry is None:
                raise RuntimeError(f"{relation!r} 的关系锁未被持有")
            # 非持有线程释放时 RLock 抛出 RuntimeError，计数不变
            entry[0].release()
            entry[1] -= 1
            if entry[1] == 0:
                del self._held[relation.key]


class RowRelationLock(RelationLock):
    """行锁

    在当前事务中锁定拥有者记录，锁随事务提交或回滚释放，release 不做任何事。
    SQLite 等不支持行锁的数据库会忽略 FOR UPDATE。

    Args:
        session: 执行锁定语句的 session，需与 PivotStore 使用同一个
    """

    def __init__(self, session: Session):
        self.session = session

    def acquire(self, relation) -> None:
        owner_model = relation.owner_model
        if owner_model is None or relation.owner_id is None:
            logger.debug(f"{relation!r} 没有可锁定的拥有者记录，跳过行锁")
            return
        stmt = (
            select(owner_model.id)
            .where(owner_model.id == relation.owner_id)
            .with_for_update()
        )
        self.session.execute(stmt)

    def release(self, relation) -> None:
        pass


_thread_lock: Optional[ThreadRelationLock] = None
_thread_lock_guard = threading.Lock()


def _shared_thread_lock() -> ThreadRelationLock:
    global _thread_lock
    with _thread_lock_guard:
        if _thread_lock is None:
            _thread_lock = ThreadRelationLock()
        return _thread_lock


def create_relation_lock(mode: str = None, session: Session = None) -> RelationLock:
    """按模式创建关系锁

    Args:
        mode: none / thread / row，None 时取 DragSortConfig.get_lock_mode()
        session: row 模式必需

    thread 模式返回进程内共享的同一个锁对象，
    不同 Siblings 访问同一关系时才能互斥。

    Raises:
        ValueError: 未知模式，或 row 模式缺少 session
    """
    mode = mode or DragSortConfig.get_lock_mode()
    if mode == "none":
        return NullRelationLock()
    if mode == "thread":
        return _shared_thread_lock()
    if mode == "row":
        if session is None:
            raise ValueError("row 锁模式需要提供 session")
        return RowRelationLock(session)
    raise ValueError(f"未知的锁模式: {mode}")


__all__ = [
    "RelationLock",
    "NullRelationLock",
    "ThreadRelationLock",
    "RowRelationLock",
    "create_relation_lock",
]
