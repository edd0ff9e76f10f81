"""検索エンジンのドメイン型（DB・HTTP非依存）"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, FrozenSet


class AirportType(str, Enum):
    """OurAirports の type 列"""
    LARGE_AIRPORT = "large_airport"
    MEDIUM_AIRPORT = "medium_airport"
    SMALL_AIRPORT = "small_airport"
    HELIPORT = "heliport"
    SEAPLANE_BASE = "seaplane_base"
    BALLOONPORT = "balloonport"
    CLOSED = "closed"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        # 未知の値は unknown 扱い
        return cls.UNKNOWN


# HTTP層で type 未指定のときに使う既定値
DEFAULT_AIRPORT_TYPES = frozenset({
    AirportType.LARGE_AIRPORT,
    AirportType.MEDIUM_AIRPORT,
    AirportType.SMALL_AIRPORT,
})


@dataclass(frozen=True)
class Airport:
    """空港レコード（読み取り専用）"""
    icao: str
    name: str
    latitude: float
    longitude: float
    city: Optional[str] = None
    country: Optional[str] = None
    elevation: Optional[int] = None
    type: AirportType = AirportType.UNKNOWN


@dataclass(frozen=True)
class NearbyAirport:
    """位置検索の結果。distance_km は丸めない"""
    airport: Airport
    distance_km: float


@dataclass(frozen=True)
class BoundingBox:
    """緯度経度の矩形。±90/±180 を超えてもよい（粗いフィルタ用）"""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon


@dataclass(frozen=True)
class SearchBox:
    """ストアへ渡す検索条件: 矩形 + 種別集合（空 = 全種別）"""
    bbox: BoundingBox
    types: FrozenSet[AirportType] = frozenset()
