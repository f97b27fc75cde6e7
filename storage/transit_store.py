"""Relational storage for routes and their bound buses."""
import logging
from typing import List, Optional
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine

from configurations.config import Config
from models.transit import Bus, PersistResult, Route

logger = logging.getLogger(__name__)


class TransitStore:
    """Direct SQL access to the ``routes`` and ``buses`` tables.

    Methods raise ``SQLAlchemyError`` on database failures; callers decide
    whether that is fatal. Connections are taken from the engine pool per
    call and released when the ``with`` block exits.
    """

    def __init__(self, database_url: Optional[str] = None, schema: Optional[str] = None,
                 engine: Optional[Engine] = None):
        self.schema = Config.safe_schema(schema)
        if engine is None:
            url = database_url or Config.database_url()
            connect_args = {}
            if url.startswith("postgres"):
                connect_args["connect_timeout"] = Config.DB_CONNECT_TIMEOUT
                if Config.DB_SSL:
                    connect_args["sslmode"] = "require"
            engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
        self.engine = engine

    @property
    def routes_table(self) -> str:
        return f"{self.schema}.routes" if self.schema else "routes"

    @property
    def buses_table(self) -> str:
        return f"{self.schema}.buses" if self.schema else "buses"

    def create_tables(self):
        """Create the routes and buses tables if they don't exist."""
        with self.engine.begin() as conn:
            conn.execute(text(f"""
                CREATE TABLE IF NOT EXISTS {self.routes_table} (
                    id VARCHAR(64) PRIMARY KEY,
                    route_code VARCHAR(64),
                    route_name VARCHAR(255),
                    status VARCHAR(20) DEFAULT 'active',
                    bus_id VARCHAR(64),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text(f"""
                CREATE INDEX IF NOT EXISTS routes_bus_id_idx
                ON {self.routes_table} (bus_id)
            """))
            conn.execute(text(f"""
                CREATE TABLE IF NOT EXISTS {self.buses_table} (
                    id VARCHAR(64) PRIMARY KEY,
                    plate VARCHAR(32),
                    capacity INTEGER,
                    model VARCHAR(100),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
        logger.info("Transit tables created successfully")

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def fetch_routes(self) -> List[Route]:
        """All routes, in creation order."""
        with self.engine.connect() as conn:
            rows = conn.execute(text(f"""
                SELECT id, route_code, route_name, status, bus_id, created_at
                FROM {self.routes_table}
                ORDER BY created_at ASC, route_code ASC
            """)).mappings().all()
        return [r for r in (Route.from_record(dict(row)) for row in rows) if r is not None]

    def fetch_buses(self, limit: Optional[int] = None) -> List[Bus]:
        """Buses from the local replica; empty when the table is absent."""
        if not inspect(self.engine).has_table("buses", schema=self.schema or None):
            logger.warning("Table buses not found in database")
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(text(f"""
                SELECT id, plate, capacity, model
                FROM {self.buses_table}
                ORDER BY created_at ASC, plate ASC
                LIMIT :limit
            """), {"limit": limit or Config.FETCH_LIMIT}).mappings().all()
        return [b for b in (Bus.from_record(dict(row)) for row in rows) if b is not None]

    def find_route_holding_bus(self, bus_id: str, excluding_route_id: str,
                               conn=None) -> Optional[str]:
        """Id of another route currently bound to ``bus_id``, if any."""
        query = text(f"""
            SELECT id
            FROM {self.routes_table}
            WHERE bus_id = :bus_id AND id <> :route_id
            LIMIT 1
        """)
        params = {"bus_id": bus_id, "route_id": excluding_route_id}
        if conn is not None:
            row = conn.execute(query, params).first()
        else:
            with self.engine.connect() as own_conn:
                row = own_conn.execute(query, params).first()
        return str(row[0]) if row else None

    def assign_bus_if_free(self, route_id: str, bus_id: str) -> PersistResult:
        """Bind ``bus_id`` to ``route_id`` unless either side is already taken.

        The conflict check is repeated inside the write transaction and the
        update only touches a route whose bus is still empty. Two concurrent
        writers can still interleave between the check and the update.
        """
        with self.engine.begin() as conn:
            current = conn.execute(
                text(f"SELECT bus_id FROM {self.routes_table} WHERE id = :route_id"),
                {"route_id": route_id},
            ).first()
            if current is None:
                return PersistResult.ROUTE_MISSING
            if current[0]:
                return PersistResult.ROUTE_BOUND

            if self.find_route_holding_bus(bus_id, route_id, conn=conn):
                return PersistResult.CONFLICT

            result = conn.execute(text(f"""
                UPDATE {self.routes_table}
                SET bus_id = :bus_id, updated_at = CURRENT_TIMESTAMP
                WHERE id = :route_id AND bus_id IS NULL
            """), {"bus_id": bus_id, "route_id": route_id})

            if result.rowcount == 0:
                # Bound by someone else between the select and the update
                return PersistResult.ROUTE_BOUND
        return PersistResult.ASSIGNED
