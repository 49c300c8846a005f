"""
Block database for flomosync.

This module implements the block store client on top of DuckDB. Blocks,
tag instances and their property values live in three tables; children are
ordered by a floating position column.
"""

import duckdb
import hashlib
import json
import logging
import mimetypes
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from ..models import (
    Block,
    BlockProperty,
    PropertyType,
    QueryDescription,
    TagRef,
    TAGS_PROPERTY,
)
from .base import BlockStoreClient, Position
from .html import split_html

T = TypeVar("T")

ASSET_PREFIX = "./assets/"


def _placeholders(values: List) -> str:
    return ", ".join("?" for _ in values)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # DuckDB TIMESTAMP columns hold naive values
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _dump_properties(properties: Iterable[BlockProperty]) -> str:
    return json.dumps([p.model_dump(mode="json") for p in properties])


class BlockDatabase(BlockStoreClient):
    """
    Manages the DuckDB database holding the block tree.
    """

    def __init__(self, db_path: str = "flomosync.db", assets_dir: str = "assets"):
        """
        Initialize the block database.

        Args:
            db_path: Path to the DuckDB database file
            assets_dir: Directory uploaded binaries are written to
        """
        self.db_path = db_path
        self.assets_dir = Path(assets_dir)
        self.connection = None
        self.blocks: Dict[int, Block] = {}
        self._in_group = False

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None
        self.blocks.clear()

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def _conn(self):
        if not self.connection:
            raise RuntimeError("Database connection not established")
        return self.connection

    def initialize_database(self):
        """
        Create all necessary tables if they don't exist.
        """
        conn = self._conn()

        conn.execute("CREATE SEQUENCE IF NOT EXISTS block_id_seq START 1;")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS blocks (
                id BIGINT PRIMARY KEY DEFAULT nextval('block_id_seq'),
                parent_id BIGINT,
                position DOUBLE NOT NULL,
                text VARCHAR,
                kind VARCHAR NOT NULL DEFAULT 'text',
                src VARCHAR,
                alias VARCHAR,
                journal_date DATE,
                properties VARCHAR NOT NULL DEFAULT '[]',
                created TIMESTAMP,
                modified TIMESTAMP
            )
        """)

        # Tag instances attached to blocks
        conn.execute("CREATE SEQUENCE IF NOT EXISTS ref_id_seq START 1;")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tag_refs (
                id BIGINT PRIMARY KEY DEFAULT nextval('ref_id_seq'),
                block_id BIGINT NOT NULL,
                tag_id BIGINT NOT NULL,
                position INTEGER NOT NULL
            )
        """)

        # Property values carried by tag instances, JSON encoded
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ref_data (
                ref_id BIGINT NOT NULL,
                name VARCHAR NOT NULL,
                type INTEGER NOT NULL,
                value VARCHAR
            )
        """)

    # Reads

    def cached(self, block_id: int) -> Optional[Block]:
        return self.blocks.get(block_id)

    def get_block(self, block_id: int) -> Optional[Block]:
        return self._load_blocks([block_id]).get(block_id)

    def get_blocks(self, block_ids: List[int]) -> List[Block]:
        loaded = self._load_blocks(block_ids)
        return [loaded[block_id] for block_id in block_ids if block_id in loaded]

    def _load_blocks(self, block_ids: List[int]) -> Dict[int, Block]:
        """Read blocks with their children and tag instances, refreshing the cache."""
        conn = self._conn()
        block_ids = list(dict.fromkeys(block_ids))
        if not block_ids:
            return {}

        rows = conn.execute(f"""
            SELECT id, parent_id, text, kind, src, alias, journal_date, properties, created, modified
            FROM blocks
            WHERE id IN ({_placeholders(block_ids)})
        """, block_ids).fetchall()
        if not rows:
            return {}

        found = [row[0] for row in rows]

        children: Dict[int, List[int]] = {}
        for parent_id, child_id in conn.execute(f"""
            SELECT parent_id, id FROM blocks
            WHERE parent_id IN ({_placeholders(found)})
            ORDER BY parent_id, position, id
        """, found).fetchall():
            children.setdefault(parent_id, []).append(child_id)

        ref_rows = conn.execute(f"""
            SELECT r.id, r.block_id, r.tag_id, t.alias
            FROM tag_refs r JOIN blocks t ON t.id = r.tag_id
            WHERE r.block_id IN ({_placeholders(found)})
            ORDER BY r.block_id, r.position, r.id
        """, found).fetchall()

        data: Dict[int, List[BlockProperty]] = {}
        ref_ids = [row[0] for row in ref_rows]
        if ref_ids:
            for ref_id, name, type_, value in conn.execute(f"""
                SELECT ref_id, name, type, value FROM ref_data
                WHERE ref_id IN ({_placeholders(ref_ids)})
                ORDER BY ref_id, name
            """, ref_ids).fetchall():
                data.setdefault(ref_id, []).append(BlockProperty(
                    name=name,
                    type=PropertyType(type_),
                    value=json.loads(value) if value is not None else None
                ))

        refs: Dict[int, List[TagRef]] = {}
        for ref_id, block_id, tag_id, alias in ref_rows:
            refs.setdefault(block_id, []).append(TagRef(
                id=ref_id,
                tag_id=tag_id,
                tag_name=alias,
                data=data.get(ref_id, [])
            ))

        result = {}
        for row in rows:
            block = Block(
                id=row[0],
                parent=row[1],
                text=row[2],
                kind=row[3],
                src=row[4],
                alias=row[5],
                journal_date=row[6],
                properties=[BlockProperty(**p) for p in json.loads(row[7])],
                children=children.get(row[0], []),
                refs=refs.get(row[0], []),
                created=row[8],
                modified=row[9]
            )
            result[block.id] = block

        self.blocks.update(result)
        return result

    def _refresh(self, *block_ids: Optional[int]) -> None:
        """Re-read blocks after a mutation so the cache matches the store."""
        ids = [block_id for block_id in block_ids if block_id is not None]
        for block_id in ids:
            self.blocks.pop(block_id, None)
        self._load_blocks(ids)

    def _require_blocks(self, block_ids: List[int]) -> None:
        conn = self._conn()
        ids = list(dict.fromkeys(block_ids))
        if not ids:
            return
        existing = {row[0] for row in conn.execute(
            f"SELECT id FROM blocks WHERE id IN ({_placeholders(ids)})", ids
        ).fetchall()}
        missing = [block_id for block_id in ids if block_id not in existing]
        if missing:
            raise ValueError(f"Blocks not found: {missing}")

    # Inserts

    def _next_positions(self, parent_id: Optional[int], position: Position, count: int) -> List[float]:
        conn = self._conn()
        if parent_id is None:
            low, high = conn.execute(
                "SELECT min(position), max(position) FROM blocks WHERE parent_id IS NULL"
            ).fetchone()
        else:
            low, high = conn.execute(
                "SELECT min(position), max(position) FROM blocks WHERE parent_id = ?", [parent_id]
            ).fetchone()

        if position == "firstChild":
            start = (low if low is not None else 0.0) - count
        elif position == "lastChild":
            start = (high if high is not None else -1.0) + 1
        else:
            raise ValueError(f"Unsupported insert position: {position}")
        return [start + i for i in range(count)]

    def _insert_row(
        self,
        parent_id: Optional[int],
        position: float,
        text: Optional[str],
        kind: str = "text",
        src: Optional[str] = None,
        alias: Optional[str] = None,
        journal_date: Optional[date] = None,
        created: Optional[datetime] = None,
        modified: Optional[datetime] = None,
    ) -> int:
        now = datetime.now()
        row = self._conn().execute("""
            INSERT INTO blocks (parent_id, position, text, kind, src, alias, journal_date, created, modified)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
        """, [
            parent_id,
            position,
            text,
            kind,
            src,
            alias,
            journal_date,
            _naive_utc(created) or now,
            _naive_utc(modified) or now
        ]).fetchone()
        return row[0]

    def insert_block(
        self,
        parent: Optional[Block],
        position: Position,
        content: Optional[str] = None,
        kind: str = "text",
        src: Optional[str] = None,
        created: Optional[datetime] = None,
        modified: Optional[datetime] = None,
    ) -> int:
        parent_id = parent.id if parent is not None else None
        if parent_id is not None:
            self._require_blocks([parent_id])
        [pos] = self._next_positions(parent_id, position, 1)
        block_id = self._insert_row(
            parent_id, pos, content, kind=kind, src=src, created=created, modified=modified
        )
        self._refresh(parent_id, block_id)
        return block_id

    def batch_insert_html(self, parent: Block, position: Position, html: str) -> List[int]:
        self._require_blocks([parent.id])
        texts = split_html(html)
        if not texts:
            return []
        positions = self._next_positions(parent.id, position, len(texts))
        block_ids = [self._insert_row(parent.id, pos, text) for pos, text in zip(positions, texts)]
        self._refresh(parent.id, *block_ids)
        return block_ids

    def create_journal_block(self, day: date) -> Block:
        """
        Find or create the day-root block of a calendar day.

        Args:
            day: The calendar day

        Returns:
            The journal block
        """
        existing = self.get_journal_block(day)
        if existing is not None:
            return existing
        [pos] = self._next_positions(None, "lastChild", 1)
        block_id = self._insert_row(None, pos, day.isoformat(), kind="journal", journal_date=day)
        logging.info(f"Created journal block {block_id} for {day}")
        return self._load_blocks([block_id])[block_id]

    # Mutations

    def delete_blocks(self, block_ids: List[int]) -> None:
        conn = self._conn()

        to_delete: List[int] = []
        pending = list(block_ids)
        while pending:
            current = pending.pop()
            if current in to_delete:
                continue
            to_delete.append(current)
            pending.extend(row[0] for row in conn.execute(
                "SELECT id FROM blocks WHERE parent_id = ?", [current]
            ).fetchall())

        if not to_delete:
            return

        ph = _placeholders(to_delete)
        parents = {row[0] for row in conn.execute(
            f"SELECT DISTINCT parent_id FROM blocks WHERE id IN ({ph}) AND parent_id IS NOT NULL",
            to_delete
        ).fetchall()}

        conn.execute(
            f"DELETE FROM ref_data WHERE ref_id IN (SELECT id FROM tag_refs WHERE block_id IN ({ph}))",
            to_delete
        )
        conn.execute(f"DELETE FROM tag_refs WHERE block_id IN ({ph})", to_delete)
        conn.execute(f"DELETE FROM blocks WHERE id IN ({ph})", to_delete)

        for block_id in to_delete:
            self.blocks.pop(block_id, None)
        self._refresh(*(parents - set(to_delete)))

    def set_properties(self, block_ids: List[int], properties: List[BlockProperty]) -> None:
        conn = self._conn()
        self._require_blocks(block_ids)

        tags = next((p for p in properties if p.name == TAGS_PROPERTY), None)
        others = [p for p in properties if p.name != TAGS_PROPERTY]

        for block_id in block_ids:
            if tags is not None:
                self._keep_tags(block_id, tags.value or [])

            if others:
                row = conn.execute("SELECT properties FROM blocks WHERE id = ?", [block_id]).fetchone()
                by_name = {p["name"]: BlockProperty(**p) for p in json.loads(row[0])}
                for prop in others:
                    by_name[prop.name] = prop
                conn.execute(
                    "UPDATE blocks SET properties = ?, modified = ? WHERE id = ?",
                    [_dump_properties(by_name.values()), datetime.now(), block_id]
                )

        self._refresh(*block_ids)

    def _keep_tags(self, block_id: int, tag_names: List[str]) -> None:
        """Remove the block's tag instances whose tag is not listed."""
        conn = self._conn()
        rows = conn.execute("""
            SELECT r.id, t.alias
            FROM tag_refs r JOIN blocks t ON t.id = r.tag_id
            WHERE r.block_id = ?
        """, [block_id]).fetchall()
        drop = [ref_id for ref_id, alias in rows if alias not in tag_names]
        if drop:
            ph = _placeholders(drop)
            conn.execute(f"DELETE FROM ref_data WHERE ref_id IN ({ph})", drop)
            conn.execute(f"DELETE FROM tag_refs WHERE id IN ({ph})", drop)

    def _ensure_tag_block(self, tag_name: str) -> int:
        row = self._conn().execute(
            "SELECT id FROM blocks WHERE kind = 'tag' AND alias = ? ORDER BY id LIMIT 1",
            [tag_name]
        ).fetchone()
        if row:
            return row[0]
        [pos] = self._next_positions(None, "lastChild", 1)
        tag_id = self._insert_row(None, pos, tag_name, kind="tag", alias=tag_name)
        logging.info(f"Created tag block '{tag_name}' ({tag_id})")
        return tag_id

    def insert_tag(
        self,
        block_id: int,
        tag_name: str,
        properties: Optional[List[BlockProperty]] = None,
    ) -> int:
        conn = self._conn()
        self._require_blocks([block_id])
        tag_id = self._ensure_tag_block(tag_name)

        row = conn.execute(
            "SELECT id FROM tag_refs WHERE block_id = ? AND tag_id = ?", [block_id, tag_id]
        ).fetchone()
        if row:
            ref_id = row[0]
        else:
            count = conn.execute(
                "SELECT count(*) FROM tag_refs WHERE block_id = ?", [block_id]
            ).fetchone()[0]
            ref_id = conn.execute(
                "INSERT INTO tag_refs (block_id, tag_id, position) VALUES (?, ?, ?) RETURNING id",
                [block_id, tag_id, count]
            ).fetchone()[0]

        for prop in properties or []:
            conn.execute("DELETE FROM ref_data WHERE ref_id = ? AND name = ?", [ref_id, prop.name])
            conn.execute(
                "INSERT INTO ref_data (ref_id, name, type, value) VALUES (?, ?, ?, ?)",
                [ref_id, prop.name, int(prop.type), json.dumps(prop.value)]
            )

        self._refresh(block_id, tag_id)
        return tag_id

    # Queries

    def query(self, description: QueryDescription) -> List[int]:
        conn = self._conn()
        matched: Optional[List[int]] = None

        for condition in description.conditions:
            sql = """
                SELECT DISTINCT r.block_id
                FROM tag_refs r
                JOIN blocks t ON t.id = r.tag_id
                JOIN blocks b ON b.id = r.block_id
                WHERE t.kind = 'tag' AND t.alias = ?
            """
            params = [condition.name]
            for match in condition.properties:
                sql += """
                    AND EXISTS (
                        SELECT 1 FROM ref_data d
                        WHERE d.ref_id = r.id AND d.name = ? AND d.value = ?
                    )
                """
                params.extend([match.name, json.dumps(match.value)])

            ids = {row[0] for row in conn.execute(sql, params).fetchall()}
            matched = sorted(ids) if matched is None else [i for i in matched if i in ids]

        result = matched or []
        if description.page_size is not None:
            result = result[:description.page_size]
        return result

    def get_journal_block(self, day: date) -> Optional[Block]:
        row = self._conn().execute(
            "SELECT id FROM blocks WHERE kind = 'journal' AND journal_date = ? ORDER BY id LIMIT 1",
            [day]
        ).fetchone()
        if row is None:
            return None
        return self.get_block(row[0])

    # Grouping and assets

    def run_grouped(self, fn: Callable[[], T]) -> T:
        """
        Run `fn` inside one transaction.

        On failure the transaction is rolled back, the local cache is
        dropped and the exception propagates. Nested calls join the
        enclosing group.
        """
        conn = self._conn()
        if self._in_group:
            return fn()

        conn.execute("BEGIN TRANSACTION")
        self._in_group = True
        try:
            result = fn()
        except Exception:
            conn.execute("ROLLBACK")
            self.blocks.clear()
            raise
        else:
            conn.execute("COMMIT")
            return result
        finally:
            self._in_group = False

    def upload_binary(self, media_type: str, payload: bytes) -> str:
        """
        Store an asset under its SHA-256 name.

        Args:
            media_type: MIME type of the payload
            payload: The binary content

        Returns:
            Store-local reference of the asset
        """
        digest = hashlib.sha256(payload).hexdigest()
        extension = None
        if media_type:
            extension = mimetypes.guess_extension(media_type.split(";")[0].strip())
        name = f"{digest}{extension or ''}"

        self.assets_dir.mkdir(parents=True, exist_ok=True)
        path = self.assets_dir / name
        if not path.exists():
            path.write_bytes(payload)
            logging.info(f"Stored asset {name} ({len(payload)} bytes)")

        return f"{ASSET_PREFIX}{name}"
