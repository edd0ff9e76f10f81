#!/usr/bin/env python3
"""airports テーブルとインデックスを作成"""

import sys
from pathlib import Path

# プロジェクトルートをパスに追加
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import inspect, func, text

from api.config import DATABASE_URL
from api.database import Base, create_db_engine, make_session_factory
from api.models import AirportRow


def migrate(url: str = DATABASE_URL):
    if url.startswith("sqlite:///"):
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    engine = create_db_engine(url)
    try:
        print("1️⃣  Testing database connection...")
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("   ✓ Connected")

        print("\n2️⃣  Creating airports table and indexes...")
        Base.metadata.create_all(engine)
        print("   ✓ Table airports ready")

        print("\n3️⃣  Columns:")
        for col in inspect(engine).get_columns(AirportRow.__tablename__):
            print(f"   - {col['name']}: {col['type']}")

        session = make_session_factory(engine)()
        try:
            count = session.query(func.count(AirportRow.icao)).scalar()
        finally:
            session.close()
        print(f"\n📊 Airports in database: {count:,}")
        print("\n✅ Migration complete")
        print("💡 Next step: python scripts/import_airports.py")
    finally:
        engine.dispose()


if __name__ == "__main__":
    migrate()
