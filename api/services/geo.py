"""位置計算ユーティリティ — DB非依存の大円距離・バウンディングボックス"""
import math
from typing import Optional

from ..domain import BoundingBox

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0  # 1度≈111km

# 半径無制限のときの半幅。lat0 がどこでも [-90, 90] 全体を覆う
UNBOUNDED_LAT_DELTA = 180.0
UNBOUNDED_LON_DELTA = 180.0

# cos(lat) がこれ以下なら極点とみなし経度幅を全域にする
_POLE_EPSILON = 1e-9


def great_circle_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """2点間の距離をkmで返す（球面余弦定理）

    範囲外の座標でも例外にしない。丸め誤差で acos の引数が [-1, 1] を
    はみ出すことがあるのでクランプする。
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    cos_angle = (
        math.cos(lat1) * math.cos(lat2) * math.cos(lon2 - lon1)
        + math.sin(lat1) * math.sin(lat2)
    )
    return EARTH_RADIUS_KM * math.acos(max(-1.0, min(1.0, cos_angle)))


def latitude_delta(radius_km: Optional[float]) -> float:
    if radius_km is None or math.isinf(radius_km):
        return UNBOUNDED_LAT_DELTA
    return radius_km / KM_PER_DEGREE


def longitude_delta(lat: float, radius_km: Optional[float]) -> float:
    """経度方向の半幅（度）。極付近・極をまたぐ円では180に固定"""
    if radius_km is None or math.isinf(radius_km):
        return UNBOUNDED_LON_DELTA

    cos_lat = math.cos(math.radians(lat))
    if cos_lat <= _POLE_EPSILON:
        return UNBOUNDED_LON_DELTA

    # 円が極を含む場合は全経度が候補
    dlat = latitude_delta(radius_km)
    if abs(lat) + dlat >= 90.0:
        return UNBOUNDED_LON_DELTA

    delta = radius_km / (KM_PER_DEGREE * cos_lat)

    # 高緯度では円の最大経度幅が lat0 より極側で生じるため、
    # 球面上の厳密な半幅と比べて大きい方を採る
    ratio = math.sin(radius_km / EARTH_RADIUS_KM) / cos_lat
    if ratio >= 1.0:
        return UNBOUNDED_LON_DELTA
    delta = max(delta, math.degrees(math.asin(ratio)))

    return min(delta, 180.0)


def bounding_box(lat: float, lon: float, radius_km: Optional[float] = None) -> BoundingBox:
    """半径radius_kmの円を必ず含む矩形を返す（None = 無制限）"""
    dlat = latitude_delta(radius_km)
    dlon = longitude_delta(lat, radius_km)
    return BoundingBox(
        min_lat=lat - dlat,
        max_lat=lat + dlat,
        min_lon=lon - dlon,
        max_lon=lon + dlon,
    )
