import json
import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from assetdock.core.entities import Asset, AssetProperties
from assetdock.core.errors import DatabaseError

logger = logging.getLogger(__name__)

COLUMNS = (
    "entity_type, entity_id, collection, name, file_name, mime_type, size, path, "
    '"order", properties, created_at, updated_at, deleted_at'
)


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def format_dt(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    # Fixed width so text ordering matches time ordering
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    return datetime.fromisoformat(s) if s else None


class SQLiteAssetRepo:
    """AssetRepoPort backed by the assets table."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _decode_properties(self, row: dict[str, Any]) -> AssetProperties:
        return AssetProperties.model_validate(json.loads(row["properties"] or "{}"))

    def _row_to_asset(
        self, row: dict[str, Any], properties: AssetProperties | None = None
    ) -> Asset:
        try:
            if properties is None:
                properties = self._decode_properties(row)
            return Asset(
                id=row["id"],
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                collection=row["collection"],
                name=row["name"],
                file_name=row["file_name"],
                mime_type=row["mime_type"],
                size=row["size"],
                path=row["path"],
                order=row["order"],
                properties=properties,
                created_at=parse_dt(row["created_at"]),
                updated_at=parse_dt(row["updated_at"]),
                deleted_at=parse_dt(row["deleted_at"]),
            )
        except (ValueError, TypeError, ValidationError) as e:
            raise DatabaseError(f"Unreadable asset row {row.get('id')}: {e}") from e

    def _row_to_deleted_asset(self, row: dict[str, Any]) -> Asset | None:
        """Decode a soft-deleted row; broken properties must not block purging it."""
        try:
            properties = self._decode_properties(row)
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(
                "Asset %s has unreadable properties (%s); purging its original only",
                row.get("id"),
                e,
            )
            properties = AssetProperties()
        try:
            return self._row_to_asset(row, properties)
        except DatabaseError:
            logger.exception("Skipping unreadable soft-deleted asset row %s", row.get("id"))
            return None

    def create(self, asset: Asset) -> Asset:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"INSERT INTO assets ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    asset.entity_type,
                    asset.entity_id,
                    asset.collection,
                    asset.name,
                    asset.file_name,
                    asset.mime_type,
                    asset.size,
                    asset.path,
                    asset.order,
                    asset.properties.model_dump_json(),
                    format_dt(asset.created_at),
                    format_dt(asset.updated_at),
                    format_dt(asset.deleted_at),
                ),
            )
            conn.commit()
            return asset.model_copy(update={"id": cursor.lastrowid})
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()

    def get_by_id(self, asset_id: int, *, with_deleted: bool = False) -> Asset | None:
        conn = self._get_conn()
        try:
            sql = "SELECT * FROM assets WHERE id = ?"
            if not with_deleted:
                sql += " AND deleted_at IS NULL"
            row = conn.execute(sql, (asset_id,)).fetchone()
            return self._row_to_asset(row) if row else None
        except sqlite3.Error as e:
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()

    def update_properties(
        self, asset_id: int, properties: AssetProperties, updated_at: datetime
    ) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE assets SET properties = ?, updated_at = ? WHERE id = ?",
                (properties.model_dump_json(), format_dt(updated_at), asset_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()

    def soft_delete(self, asset_ids: list[int], deleted_at: datetime) -> int:
        if not asset_ids:
            return 0
        conn = self._get_conn()
        try:
            placeholders = ", ".join("?" for _ in asset_ids)
            stamp = format_dt(deleted_at)
            cursor = conn.execute(
                f"UPDATE assets SET deleted_at = ?, updated_at = ? "
                f"WHERE id IN ({placeholders}) AND deleted_at IS NULL",
                (stamp, stamp, *asset_ids),
            )
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()

    def list_scope(
        self,
        entity_type: str,
        entity_id: int,
        collection: str,
        *,
        include_deleted: bool = False,
    ) -> list[Asset]:
        conn = self._get_conn()
        try:
            sql = "SELECT * FROM assets WHERE entity_type = ? AND entity_id = ? AND collection = ?"
            if not include_deleted:
                sql += " AND deleted_at IS NULL"
            sql += " ORDER BY created_at ASC, id ASC"
            rows = conn.execute(sql, (entity_type, entity_id, collection)).fetchall()
            return [self._row_to_asset(r) for r in rows]
        except sqlite3.Error as e:
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()

    def list_soft_deleted(self, limit: int) -> list[Asset]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM assets WHERE deleted_at IS NOT NULL "
                "ORDER BY deleted_at ASC, id ASC LIMIT ?",
                (limit,),
            ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()
        assets = (self._row_to_deleted_asset(r) for r in rows)
        return [a for a in assets if a is not None]

    def purge(self, asset_id: int) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM assets WHERE id = ?", (asset_id,))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(str(e)) from e
        finally:
            conn.close()
