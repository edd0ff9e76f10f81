"""空港検索エンジン

位置検索: バウンディングボックス → 大円距離で精密計算 → 半径で再フィルタ
→ 距離順（同距離はICAO順）→ 件数で切り詰め。
文字列検索: 名称・都市名の部分一致を前方一致優先で並べる。

状態を持たないので、同一インスタンスを複数スレッドから呼んでよい。
"""
import logging
import math
from typing import FrozenSet, Iterable, List, Optional

from ..domain import Airport, AirportType, NearbyAirport, SearchBox
from ..errors import InvalidInput
from .geo import bounding_box, great_circle_distance
from .store import CatalogStore

logger = logging.getLogger(__name__)

DEFAULT_NEAREST_LIMIT = 5
DEFAULT_SEARCH_LIMIT = 10

# 文字列検索の順位
RANK_NAME_PREFIX = 1
RANK_CITY_PREFIX = 2
RANK_SUBSTRING = 3


def _check_point(lat: float, lon: float) -> None:
    if not (isinstance(lat, (int, float)) and isinstance(lon, (int, float))):
        raise InvalidInput("lat and lon must be numbers")
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidInput("lat and lon must be finite numbers")


def _check_radius(max_distance: Optional[float]) -> Optional[float]:
    """None / inf は無制限（None）に正規化"""
    if max_distance is None or max_distance == math.inf:
        return None
    if math.isnan(max_distance) or max_distance < 0:
        raise InvalidInput("maxDistance must be a non-negative number")
    return float(max_distance)


_TYPE_VALUES = {t.value for t in AirportType}


def _check_types(types: Optional[Iterable]) -> FrozenSet[AirportType]:
    """種別集合に変換。未知の値は unknown に丸めず InvalidInput"""
    if not types:
        return frozenset()
    checked = set()
    for t in types:
        value = t.value if isinstance(t, AirportType) else t
        if value not in _TYPE_VALUES:
            raise InvalidInput(f"unknown airport type: {t!r}")
        checked.add(AirportType(value))
    return frozenset(checked)


def _check_limit(limit: int) -> int:
    if limit is None or limit < 0:
        raise InvalidInput("limit must be a non-negative integer")
    return int(limit)


def text_rank(airport: Airport, needle: str) -> Optional[int]:
    """needle（小文字）に対する順位。一致しなければ None"""
    name = (airport.name or "").lower()
    city = (airport.city or "").lower()
    if name.startswith(needle):
        return RANK_NAME_PREFIX
    if city.startswith(needle):
        return RANK_CITY_PREFIX
    if needle in name or needle in city:
        return RANK_SUBSTRING
    return None


class AirportLocator:
    """カタログストアを注入して使う検索サービス"""

    def __init__(self, store: CatalogStore):
        self._store = store

    # ------------------------------------------------------------------
    # 位置検索
    # ------------------------------------------------------------------

    def find_nearest(
        self,
        lat: float,
        lon: float,
        max_distance: Optional[float] = None,
        types: Optional[Iterable[AirportType]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[NearbyAirport]:
        """最寄りの1件。半径内に無ければ None"""
        results = self.find_nearest_k(lat, lon, 1, max_distance, types, timeout=timeout)
        if not results:
            return None
        best = results[0]
        radius = _check_radius(max_distance)
        if radius is not None and best.distance_km > radius:
            return None
        return best

    def find_nearest_k(
        self,
        lat: float,
        lon: float,
        limit: int = DEFAULT_NEAREST_LIMIT,
        max_distance: Optional[float] = None,
        types: Optional[Iterable[AirportType]] = None,
        timeout: Optional[float] = None,
    ) -> List[NearbyAirport]:
        """近い順に最大limit件"""
        _check_point(lat, lon)
        radius = _check_radius(max_distance)
        limit = _check_limit(limit)
        type_set = _check_types(types)
        if limit == 0:
            return []

        box = SearchBox(
            bbox=bounding_box(lat, lon, radius),
            types=type_set,
        )
        candidates = self._store.retrieve_in_box(box, timeout=timeout)

        results = []
        for airport in candidates:
            dist = great_circle_distance(lat, lon, airport.latitude, airport.longitude)
            if radius is not None and dist > radius:
                continue
            results.append(NearbyAirport(airport=airport, distance_km=dist))

        # 距離順ソート（同距離はICAOで決定的に）
        results.sort(key=lambda r: (r.distance_km, r.airport.icao))
        logger.debug(
            f"nearest lat={lat} lon={lon} radius={radius}: "
            f"{len(candidates)} candidates, {len(results)} within radius"
        )
        return results[:limit]

    # ------------------------------------------------------------------
    # コード・文字列検索
    # ------------------------------------------------------------------

    def find_by_icao(self, code: str, timeout: Optional[float] = None) -> Optional[Airport]:
        """ICAOコード完全一致（大文字小文字を区別しない）"""
        if not code or not code.strip():
            raise InvalidInput("code must not be empty")
        return self._store.retrieve_by_icao(code.strip(), timeout=timeout)

    def search_by_name(
        self,
        q: str,
        limit: int = DEFAULT_SEARCH_LIMIT,
        timeout: Optional[float] = None,
    ) -> List[Airport]:
        """名称・都市名の部分一致。名称前方一致 > 都市名前方一致 > その他、同順位は名称順"""
        if not q or not q.strip():
            raise InvalidInput("search text must not be empty")
        limit = _check_limit(limit)
        if limit == 0:
            return []

        needle = q.strip().lower()
        ranked = []
        for airport in self._store.retrieve_by_text(needle, timeout=timeout):
            rank = text_rank(airport, needle)
            if rank is not None:
                ranked.append((rank, (airport.name or "").lower(), airport.icao, airport))

        ranked.sort(key=lambda r: r[:3])
        return [r[3] for r in ranked[:limit]]

    def count(self, timeout: Optional[float] = None) -> int:
        return self._store.count(timeout=timeout)
