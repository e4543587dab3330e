"""
存储层基类

提供 PostgreSQL 存储层的通用功能：
- 连接管理
- 游标上下文管理器
- 单例模式支持
- 主键查询白名单
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set, TypeVar, Generic
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)

T = TypeVar('T')


def get_database_url() -> str:
    """获取数据库连接 URL"""
    from domains.platform_core.settings import get_settings
    return get_settings().database.url


class ThreadSafeConnectionMixin:
    """
    线程安全的数据库连接管理 Mixin

    使用 threading.local() 让每个线程拥有独立的数据库连接，
    避免 asyncio.to_thread() 多线程环境下的连接竞争和死锁。
    """

    def _init_connection(self, database_url: Optional[str] = None):
        """初始化连接管理"""
        self.database_url = database_url or get_database_url()
        self._local = threading.local()

    def _get_connection(self) -> psycopg2.extensions.connection:
        """获取当前线程的数据库连接"""
        if not hasattr(self._local, 'conn') or self._local.conn is None or self._local.conn.closed:
            self._local.conn = psycopg2.connect(self.database_url)
            self._local.conn.autocommit = False
        return self._local.conn

    @contextmanager
    def _cursor(self):
        """获取游标的上下文管理器（退出时提交，异常时回滚）"""
        conn = self._get_connection()
        cursor = conn.cursor(cursor_factory=RealDictCursor)
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def close(self):
        """关闭当前线程的数据库连接"""
        if hasattr(self._local, 'conn') and self._local.conn and not self._local.conn.closed:
            self._local.conn.close()
            self._local.conn = None


class BaseStore(ThreadSafeConnectionMixin, ABC, Generic[T]):
    """
    存储层基类

    提供 PostgreSQL 数据库操作的通用功能，子类需要实现：
    - table_name: 表名
    - allowed_columns: 允许的列名白名单
    - _row_to_entity: 行数据转实体的方法
    """

    table_name: str = ""
    allowed_columns: Set[str] = set()

    def __init__(self, database_url: Optional[str] = None):
        """
        初始化存储层

        Args:
            database_url: PostgreSQL 连接 URL，默认从配置获取
        """
        self._init_connection(database_url)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @abstractmethod
    def _row_to_entity(self, row: Dict[str, Any]) -> T:
        """将数据库行转换为实体对象"""
        pass

    def _table_exists(self, cursor, table: str) -> bool:
        """检查表是否存在，避免 CREATE TABLE IF NOT EXISTS 的并发竞态"""
        cursor.execute("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = %s
            )
        """, (table,))
        return cursor.fetchone()['exists']

    def get_by_id(self, id_field: str, id_value: Any) -> Optional[T]:
        """
        通过 ID 获取单个实体

        Args:
            id_field: ID 字段名
            id_value: ID 值

        Returns:
            实体对象或 None
        """
        if id_field not in self.allowed_columns:
            logger.warning(f"Invalid id field: {id_field}")
            return None

        with self._cursor() as cursor:
            cursor.execute(
                f'SELECT * FROM {self.table_name} WHERE {id_field} = %s',
                (id_value,)
            )
            row = cursor.fetchone()
            if row:
                return self._row_to_entity(dict(row))
        return None


# ==================== 单例工厂 ====================

_store_instances: Dict[str, Any] = {}


def get_store_instance(store_class: type, key: str = None, **kwargs) -> Any:
    """
    获取存储层单例实例

    Args:
        store_class: 存储类
        key: 实例键名，默认使用类名
        **kwargs: 传递给构造函数的参数
    """
    key = key or store_class.__name__
    if key not in _store_instances:
        _store_instances[key] = store_class(**kwargs)
    return _store_instances[key]


def reset_store_instance(key: str) -> None:
    """重置存储层单例（用于测试）"""
    if key in _store_instances:
        instance = _store_instances[key]
        if hasattr(instance, 'close'):
            instance.close()
        del _store_instances[key]
