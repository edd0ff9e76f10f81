#!/usr/bin/env python3
"""OurAirports CSV をDBにインポート（ICAOコードでupsert）"""

import csv
import math
import sys
from pathlib import Path
from typing import Optional

# プロジェクトルートをパスに追加
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func

from api.config import AIRPORTS_CSV_PATH, DATABASE_URL
from api.database import Base, create_db_engine, make_session_factory
from api.domain import AirportType
from api.models import AirportRow

FEET_TO_METERS = 0.3048
BATCH_SIZE = 1000
MAX_REPORTED_ERRORS = 5


def first_of(row: dict, *keys) -> str:
    """最初に値が入っている列を返す（列名の揺れ対策）"""
    for key in keys:
        v = row.get(key)
        if v and v.strip():
            return v.strip()
    return ""


def safe_float(v) -> Optional[float]:
    if not v or v.strip() == "":
        return None
    try:
        f = float(v)
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def feet_to_meters(v) -> Optional[int]:
    """elevation_ft → メートル（整数に丸め）"""
    ft = safe_float(v)
    return round(ft * FEET_TO_METERS) if ft is not None else None


def parse_row(row: dict) -> Optional[dict]:
    """CSV 1行を airports 行に変換。識別子・座標が無ければ None"""
    icao = first_of(row, "icao_code", "ident", "gps_code", "icao", "ICAO").upper()
    lat = safe_float(first_of(row, "latitude_deg", "latitude", "lat", "LAT"))
    lon = safe_float(first_of(row, "longitude_deg", "longitude", "lon", "LON"))

    if not icao or len(icao) > 10 or lat is None or lon is None:
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None

    raw_type = first_of(row, "type", "TYPE")
    return {
        "icao": icao,
        "name": first_of(row, "name", "NAME"),
        "latitude": lat,
        "longitude": lon,
        "city": first_of(row, "municipality", "city", "CITY") or None,
        "country": first_of(row, "iso_country", "country", "COUNTRY") or None,
        "elevation": feet_to_meters(row.get("elevation_ft")),
        "type": AirportType(raw_type.lower()).value if raw_type else AirportType.UNKNOWN.value,
    }


def read_csv(path: Path):
    """(有効行リスト, スキップ件数) を返す"""
    airports = {}
    skipped = 0
    with open(path, encoding="utf-8-sig", newline="") as f:
        for line_number, row in enumerate(csv.DictReader(f), start=2):
            airport = parse_row(row)
            if airport is None:
                skipped += 1
                if skipped <= MAX_REPORTED_ERRORS:
                    print(f"⚠️  Line {line_number} skipped (invalid data): {row.get('ident') or row}")
                continue
            # 同じICAOが複数行ある場合は後勝ち
            airports[airport["icao"]] = airport
    return list(airports.values()), skipped


def import_airports(path: Path = AIRPORTS_CSV_PATH, url: str = DATABASE_URL):
    if not path.exists():
        print(f"❌ CSV not found: {path}")
        print("💡 Run: python scripts/fetch_airports.py")
        sys.exit(1)

    print(f"📄 Reading {path}...")
    airports, skipped = read_csv(path)
    print(f"   {len(airports):,} airports read")
    if skipped:
        print(f"   ⚠️  {skipped:,} lines skipped (invalid data)")

    engine = create_db_engine(url)
    Base.metadata.create_all(engine)
    session = make_session_factory(engine)()
    try:
        print("\n✈️  Upserting into airports...")
        for i in range(0, len(airports), BATCH_SIZE):
            for airport in airports[i:i + BATCH_SIZE]:
                session.merge(AirportRow(**airport))
            session.commit()
            done = min(i + BATCH_SIZE, len(airports))
            print(f"\r   Progress: {done:,}/{len(airports):,} ({done * 100 // len(airports)}%)", end="")
        print()

        total = session.query(func.count(AirportRow.icao)).scalar()
        print(f"\n📊 Total in database: {total:,}")

        print("\nSamples:")
        for row in session.query(AirportRow).limit(5):
            print(f"   - {row.icao}: {row.name} ({row.city or 'N/A'}, {row.country or 'N/A'})")
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        engine.dispose()

    print("\n✅ Import complete")
    print("💡 Start the API with: python -m api.main")


if __name__ == "__main__":
    csv_path = Path(sys.argv[1]) if len(sys.argv) > 1 else AIRPORTS_CSV_PATH
    import_airports(csv_path)
