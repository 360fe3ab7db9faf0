"""Build the schema straight from table metadata, bypassing alembic.

For local development only: ``python scripts/init_db.py [--drop]``.
"""

import asyncio
import sys

from app.database import engine
from app.models import metadata


async def init_db(drop: bool = False) -> None:
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)
    await engine.dispose()

    tables = ", ".join(sorted(metadata.tables))
    print(f"{'Recreated' if drop else 'Created'} tables: {tables}")


if __name__ == "__main__":
    asyncio.run(init_db(drop="--drop" in sys.argv[1:]))
