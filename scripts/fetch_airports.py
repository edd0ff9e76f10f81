#!/usr/bin/env python3
"""OurAirports の airports.csv をダウンロード"""

import sys
import requests
from pathlib import Path

# プロジェクトルートをパスに追加
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import AIRPORTS_CSV_URL, AIRPORTS_CSV_PATH


def fetch_airports(url: str = AIRPORTS_CSV_URL, dest: Path = AIRPORTS_CSV_PATH, force: bool = False) -> Path:
    dest.parent.mkdir(parents=True, exist_ok=True)

    if dest.exists() and not force:
        print(f"⏭️  {dest.name} already exists, skipping (use --force to refresh)")
        return dest

    print(f"⬇️  Downloading {url}...")
    r = requests.get(url, stream=True, timeout=60)
    r.raise_for_status()

    tmp = dest.with_suffix(".part")
    with open(tmp, "wb") as f:
        for chunk in r.iter_content(chunk_size=8192):
            f.write(chunk)
    tmp.replace(dest)

    print(f"   {dest.stat().st_size:,} bytes -> {dest}")
    return dest


if __name__ == "__main__":
    fetch_airports(force="--force" in sys.argv[1:])
    print("\n✅ Download complete")
