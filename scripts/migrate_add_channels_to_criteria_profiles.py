"""Migration script to add the channels column to criteria_profiles."""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text
from qa_center.core.database import engine
from qa_center.core.config import settings


async def column_exists(conn) -> bool:
    if settings.database_url.startswith("sqlite"):
        result = await conn.execute(text("PRAGMA table_info(criteria_profiles)"))
        return "channels_json" in [row[1] for row in result.fetchall()]

    result = await conn.execute(text("""
        SELECT column_name
        FROM information_schema.columns
        WHERE table_name='criteria_profiles' AND column_name='channels_json'
    """))
    return result.fetchone() is not None


async def migrate():
    """Ensure every criteria profile has a channels list."""
    print(f"Connecting to database: {settings.database_url}")

    async with engine.begin() as conn:
        if await column_exists(conn):
            print("Column 'channels_json' already exists.")
        else:
            print("Adding 'channels_json' column to criteria_profiles table...")
            await conn.execute(text(
                "ALTER TABLE criteria_profiles ADD COLUMN channels_json TEXT NOT NULL DEFAULT '[]'"
            ))

        result = await conn.execute(text(
            "UPDATE criteria_profiles SET channels_json = '[]' "
            "WHERE channels_json IS NULL OR channels_json = ''"
        ))
        print(f"Updated {result.rowcount} criteria profiles with channels field")


async def main():
    """Run migration."""
    try:
        await migrate()
    except Exception as e:
        print(f"Migration failed: {e}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
