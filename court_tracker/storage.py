# storage.py
from typing import Any, Dict, List, Optional

import sqlalchemy
from databases import Database

from court_tracker.data_models import Court, SportType
from court_tracker.database import database
from court_tracker.models import courts, users


class TableStore:
    """Key lookup over one table: get by key, upsert, list all.

    Callers never need to know which database backs it.
    """

    def __init__(self, table: sqlalchemy.Table, key: str, db: Database = database, order_by: Optional[str] = None):
        self.table = table
        self.key_column = table.c[key]
        self.order_column = table.c[order_by] if order_by else self.key_column
        self.db = db

    async def get(self, key: Any) -> Optional[Dict[str, Any]]:
        row = await self.db.fetch_one(self.table.select().where(self.key_column == key))
        return dict(row._mapping) if row else None

    async def upsert(self, key: Any, values: Dict[str, Any]) -> Dict[str, Any]:
        values = {k: v for k, v in values.items() if k != self.key_column.name}
        async with self.db.transaction():
            if await self.get(key) is None:
                await self.db.execute(self.table.insert().values({self.key_column.name: key, **values}))
            elif values:
                await self.db.execute(self.table.update().where(self.key_column == key).values(**values))
        return await self.get(key)

    async def list_all(self) -> List[Dict[str, Any]]:
        rows = await self.db.fetch_all(self.table.select().order_by(self.order_column))
        return [dict(row._mapping) for row in rows]


court_store = TableStore(courts, "id", order_by="position")
user_store = TableStore(users, "id")


async def seed_courts(store: TableStore, catalog: List[dict]) -> None:
    """Make sure every catalog court has a row, without touching extra rows."""
    for position, court in enumerate(catalog):
        await store.upsert(court["id"], {
            "sport": SportType(court["sport"]).value,
            "name": court["name"],
            "court_number": court["court_number"],
            "position": position,
        })


async def load_courts(store: TableStore) -> List[Court]:
    return [
        Court(
            id=row["id"],
            sport=SportType(row["sport"]),
            name=row["name"],
            court_number=row["court_number"],
        )
        for row in await store.list_all()
    ]
