from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Location
from .repository import LocationRepository


class MySQLLocationRepository(LocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_class(self, class_id: int) -> Sequence[Location]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT l.location_id, l.name, l.latitude, l.longitude, l.radius_m, l.is_active
                FROM class_locations cl
                JOIN locations l ON l.location_id = cl.location_id
                WHERE cl.class_id=%s
                ORDER BY l.location_id
                """,
                (int(class_id),),
            )
            return [
                Location(
                    location_id=int(r["location_id"]),
                    name=r["name"],
                    latitude=float(r["latitude"]),
                    longitude=float(r["longitude"]),
                    radius_m=float(r["radius_m"]),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            ]
