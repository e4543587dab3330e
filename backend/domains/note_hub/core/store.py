"""
笔记存储层 - PostgreSQL 数据源

提供笔记、版本快照和分组的持久化存储。
继承 platform_core.BaseStore，复用连接管理。

并发安全完全依赖 PostgreSQL 自身的原子操作：
- 创建笔记：INSERT ... ON CONFLICT (id) DO NOTHING
- 保存正文：INSERT ... ON CONFLICT (id) DO UPDATE（后写者胜）
- 版本号：(note_id, version_number) 唯一约束
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

import psycopg2
import psycopg2.errors

from domains.core.exceptions import ConflictError
from domains.platform_core.base.store import (
    BaseStore,
    get_store_instance,
    reset_store_instance,
)

from .models import Collection, Note, NoteVersion

logger = logging.getLogger(__name__)


class NoteStore(BaseStore[Note]):
    """
    笔记存储层 - PostgreSQL 数据源

    同步接口（psycopg2），由 PostgresContentStore 通过 run_sync 包装为异步。
    """

    table_name = "notes"

    allowed_columns = {
        'id', 'content', 'version',
        'password_hash', 'is_protected',
        'collection', 'tags',
        'created_at', 'updated_at'
    }

    def __init__(self, database_url: Optional[str] = None, init_schema: bool = True):
        super().__init__(database_url)
        if init_schema:
            self.init_schema()

    def _row_to_entity(self, row: Dict[str, Any]) -> Note:
        """将数据库行转换为 Note 对象"""
        valid_fields = {k: v for k, v in row.items() if k in Note.__dataclass_fields__}
        if valid_fields.get('tags') is None:
            valid_fields['tags'] = ""
        return Note(**valid_fields)

    @staticmethod
    def _row_to_version(row: Dict[str, Any]) -> NoteVersion:
        return NoteVersion.from_dict(row)

    # ==================== 表结构 ====================

    def init_schema(self) -> None:
        """初始化数据库表"""
        with self._cursor() as cursor:
            if not self._table_exists(cursor, 'notes'):
                cursor.execute("""
                    CREATE TABLE notes (
                        id TEXT PRIMARY KEY,
                        content TEXT NOT NULL DEFAULT '',
                        version INTEGER NOT NULL DEFAULT 1,
                        password_hash TEXT,
                        is_protected BOOLEAN NOT NULL DEFAULT FALSE,
                        collection TEXT,
                        tags TEXT NOT NULL DEFAULT '',
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
                logger.info("created_table: notes")

            if not self._table_exists(cursor, 'note_versions'):
                cursor.execute("""
                    CREATE TABLE note_versions (
                        id SERIAL PRIMARY KEY,
                        note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
                        version_number INTEGER NOT NULL,
                        content TEXT NOT NULL DEFAULT '',
                        content_hash TEXT NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        UNIQUE (note_id, version_number)
                    )
                """)
                logger.info("created_table: note_versions")

            if not self._table_exists(cursor, 'collections'):
                cursor.execute("""
                    CREATE TABLE collections (
                        id SERIAL PRIMARY KEY,
                        name TEXT NOT NULL UNIQUE,
                        description TEXT,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
                logger.info("created_table: collections")

    # ==================== 笔记 ====================

    def get(self, note_id: str) -> Optional[Note]:
        """获取单个笔记"""
        return self.get_by_id('id', note_id)

    def insert_if_absent(self, note: Note) -> bool:
        """
        仅当标识符不存在时插入笔记

        Returns:
            True 表示本次创建成功，False 表示已被其他写入者创建
        """
        now = datetime.now(timezone.utc)
        note.created_at = note.created_at or now
        note.updated_at = note.updated_at or now

        with self._cursor() as cursor:
            cursor.execute('''
                INSERT INTO notes (
                    id, content, version, password_hash, is_protected,
                    collection, tags, created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO NOTHING
                RETURNING id
            ''', (
                note.id, note.content, note.version,
                note.password_hash, note.is_protected,
                note.collection, note.tags,
                note.created_at, note.updated_at
            ))
            return cursor.fetchone() is not None

    def upsert_content(self, note_id: str, content: str) -> datetime:
        """写入正文（不存在则创建），返回提交时间"""
        now = datetime.now(timezone.utc)
        with self._cursor() as cursor:
            cursor.execute('''
                INSERT INTO notes (id, content, created_at, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE
                SET content = EXCLUDED.content, updated_at = EXCLUDED.updated_at
                RETURNING updated_at
            ''', (note_id, content, now, now))
            return cursor.fetchone()['updated_at']

    def update_version_counter(self, note_id: str, version: int) -> bool:
        """推进版本计数器（只增不减）"""
        with self._cursor() as cursor:
            cursor.execute(
                'UPDATE notes SET version = GREATEST(version, %s) WHERE id = %s',
                (version, note_id)
            )
            return cursor.rowcount > 0

    def update_access_credential(
        self,
        note_id: str,
        password_hash: Optional[str],
        is_protected: bool
    ) -> bool:
        """设置或清除密码哈希"""
        with self._cursor() as cursor:
            cursor.execute(
                '''UPDATE notes
                SET password_hash = %s, is_protected = %s, updated_at = %s
                WHERE id = %s''',
                (password_hash, is_protected, datetime.now(timezone.utc), note_id)
            )
            return cursor.rowcount > 0

    def update_metadata(
        self,
        note_id: str,
        collection: Optional[str],
        tags: str
    ) -> bool:
        """更新分组和标签"""
        with self._cursor() as cursor:
            cursor.execute(
                '''UPDATE notes
                SET collection = %s, tags = %s, updated_at = %s
                WHERE id = %s''',
                (collection, tags, datetime.now(timezone.utc), note_id)
            )
            return cursor.rowcount > 0

    # ==================== 版本 ====================

    def insert_version(self, version: NoteVersion) -> NoteVersion:
        """
        写入版本快照

        Raises:
            ConflictError: 版本号已存在
        """
        version.created_at = version.created_at or datetime.now(timezone.utc)
        try:
            with self._cursor() as cursor:
                cursor.execute('''
                    INSERT INTO note_versions (
                        note_id, version_number, content, content_hash, created_at
                    ) VALUES (%s, %s, %s, %s, %s)
                ''', (
                    version.note_id, version.version_number,
                    version.content, version.content_hash, version.created_at
                ))
        except psycopg2.errors.UniqueViolation as e:
            logger.warning(
                f"version_conflict: {version.note_id}@{version.version_number}"
            )
            raise ConflictError(
                "版本", "version_number", version.version_number, cause=e
            ) from e
        return version

    def list_versions(self, note_id: str, limit: int = 50) -> List[NoteVersion]:
        """按版本号降序列出版本"""
        with self._cursor() as cursor:
            cursor.execute(
                '''SELECT note_id, version_number, content, content_hash, created_at
                FROM note_versions
                WHERE note_id = %s
                ORDER BY version_number DESC
                LIMIT %s''',
                (note_id, limit)
            )
            return [self._row_to_version(dict(row)) for row in cursor.fetchall()]

    def get_version(self, note_id: str, version_number: int) -> Optional[NoteVersion]:
        """获取指定版本"""
        with self._cursor() as cursor:
            cursor.execute(
                '''SELECT note_id, version_number, content, content_hash, created_at
                FROM note_versions
                WHERE note_id = %s AND version_number = %s''',
                (note_id, version_number)
            )
            row = cursor.fetchone()
            if row:
                return self._row_to_version(dict(row))
        return None

    # ==================== 分组 ====================

    def list_collections(self) -> List[Collection]:
        """按名称列出所有分组"""
        with self._cursor() as cursor:
            cursor.execute(
                'SELECT id, name, description, created_at FROM collections ORDER BY name'
            )
            return [Collection(**dict(row)) for row in cursor.fetchall()]

    def create_collection(self, collection: Collection) -> Collection:
        """
        创建分组

        Raises:
            ConflictError: 名称已存在
        """
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    '''INSERT INTO collections (name, description, created_at)
                    VALUES (%s, %s, %s)
                    RETURNING id, created_at''',
                    (collection.name, collection.description, datetime.now(timezone.utc))
                )
                row = cursor.fetchone()
        except psycopg2.errors.UniqueViolation as e:
            raise ConflictError("分组", "name", collection.name, cause=e) from e

        collection.id = row['id']
        collection.created_at = row['created_at']
        return collection


# ==================== 单例管理 ====================

def get_note_store(database_url: Optional[str] = None) -> NoteStore:
    """获取笔记存储层单例"""
    return get_store_instance(NoteStore, "NoteStore", database_url=database_url)


def reset_note_store():
    """重置存储层单例（用于测试）"""
    reset_store_instance("NoteStore")
