"""DowntimeReasonStore SQLite implementation

Cause taxonomy provider. The tracker only reads it to offer choices; recorded
causes are stored as text and not validated against it.
"""

import aiosqlite
import structlog

from ..models.downtime import DowntimeCategory, DowntimeReason

log = structlog.get_logger()

# category -> [(code, name)]
DEFAULT_DOWNTIME_REASONS: dict[str, list[tuple[str, str]]] = {
    "Equipo": [
        ("EQ-01", "Máquina averiada"),
        ("EQ-02", "Mantenimiento preventivo"),
        ("EQ-03", "Cambio de formato"),
    ],
    "Material / Herramental": [
        ("MA-01", "Falta de material"),
        ("MA-02", "Cambio de herramienta"),
        ("MA-03", "Herramental dañado"),
    ],
    "Proceso": [
        ("PR-01", "Ajuste de proceso"),
        ("PR-02", "Espera de liberación de calidad"),
    ],
    "Personal": [
        ("PE-01", "Ausencia de operario"),
        ("PE-02", "Capacitación"),
    ],
}


class SqliteDowntimeStore:
    """Downtime categories and reasons backed by SQLite"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def add_category(self, name: str) -> DowntimeCategory:
        """Insert a category (caller commits)"""
        cursor = await self._conn.execute(
            "INSERT INTO downtime_categories (name) VALUES (?)",
            (name,),
        )
        return DowntimeCategory(id=cursor.lastrowid, name=name)

    async def add_reason(
        self,
        code: str,
        category_id: int,
        name: str,
        description: str = "",
        is_active: bool = True,
    ) -> int:
        """Insert a reason (caller commits), returns its id"""
        cursor = await self._conn.execute(
            """
            INSERT INTO downtime_reasons (code, category_id, name, description, is_active)
            VALUES (?, ?, ?, ?, ?)
            """,
            (code, category_id, name, description, int(is_active)),
        )
        return cursor.lastrowid

    async def list_categories(self) -> list[DowntimeCategory]:
        cursor = await self._conn.execute(
            "SELECT id, name FROM downtime_categories ORDER BY name ASC"
        )
        rows = await cursor.fetchall()
        return [DowntimeCategory(id=row[0], name=row[1]) for row in rows]

    async def list_reasons(self, active_only: bool = True) -> list[DowntimeReason]:
        """Reasons joined with their category, sorted by category then name"""
        query = """
            SELECT dr.id, dr.code, dc.name, dr.name, dr.description, dr.is_active
            FROM downtime_reasons dr
            JOIN downtime_categories dc ON dr.category_id = dc.id
        """
        if active_only:
            query += " WHERE dr.is_active = 1"
        query += " ORDER BY dc.name, dr.name"

        cursor = await self._conn.execute(query)
        rows = await cursor.fetchall()
        return [
            DowntimeReason(
                id=row[0],
                code=row[1],
                category=row[2],
                name=row[3],
                description=row[4],
                is_active=bool(row[5]),
            )
            for row in rows
        ]

    async def seed_defaults(self) -> int:
        """Insert the default taxonomy, skipping entries that already exist

        Returns:
            number of reasons inserted
        """
        inserted = 0
        try:
            for category_name, reasons in DEFAULT_DOWNTIME_REASONS.items():
                await self._conn.execute(
                    "INSERT OR IGNORE INTO downtime_categories (name) VALUES (?)",
                    (category_name,),
                )
                cursor = await self._conn.execute(
                    "SELECT id FROM downtime_categories WHERE name = ?",
                    (category_name,),
                )
                row = await cursor.fetchone()
                category_id = row[0]
                for code, name in reasons:
                    cursor = await self._conn.execute(
                        """
                        INSERT OR IGNORE INTO downtime_reasons (code, category_id, name)
                        VALUES (?, ?, ?)
                        """,
                        (code, category_id, name),
                    )
                    inserted += cursor.rowcount
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

        log.info("downtime_reasons_seeded", inserted=inserted)
        return inserted
