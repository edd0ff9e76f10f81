"""空港エンドポイント"""
from typing import Optional, List, FrozenSet, Union
from fastapi import APIRouter, Depends, Query, HTTPException

from ..deps import get_locator, require_catalog_loaded
from ..domain import AirportType, DEFAULT_AIRPORT_TYPES
from ..errors import InvalidInput
from ..schemas import (
    IcaoOut, IcaoResponse, AirportOut, AirportResponse, AirportListResponse,
    NearbyAirportOut, NearbyListResponse, ErrorOut,
)
from ..services.locator import AirportLocator, DEFAULT_NEAREST_LIMIT, DEFAULT_SEARCH_LIMIT

router = APIRouter(tags=["icao"], dependencies=[Depends(require_catalog_loaded)])

# エラー時の共通レスポンス（main の例外ハンドラが返す形）
ERROR_RESPONSES = {
    400: {"model": ErrorOut, "description": "パラメータ不正"},
    404: {"model": ErrorOut, "description": "該当なし"},
    503: {"model": ErrorOut, "description": "カタログ未ロード・DB接続不可"},
}

TYPE_ALL = "all"
TYPE_VALUES = {t.value for t in AirportType}
TYPE_HELP = (
    "空港種別（複数可・カンマ区切り可）: "
    + ", ".join(sorted(TYPE_VALUES)) + ", all。未指定なら large/medium/small airport"
)


def parse_types(values: Optional[List[str]]) -> FrozenSet[AirportType]:
    """type パラメータを種別集合に変換。空集合は種別制限なし"""
    if not values:
        return DEFAULT_AIRPORT_TYPES

    names = [v.strip().lower() for raw in values for v in raw.split(",") if v.strip()]
    if TYPE_ALL in names:
        return frozenset()

    unknown = [n for n in names if n not in TYPE_VALUES]
    if unknown:
        raise InvalidInput(f"Unknown airport type: {', '.join(unknown)}")
    return frozenset(AirportType(n) for n in names) or DEFAULT_AIRPORT_TYPES


@router.get("/icao", response_model=IcaoResponse, responses=ERROR_RESPONSES)
def nearest_icao(
    lat: float = Query(..., ge=-90, le=90, description="緯度", examples=[48.8566]),
    lon: float = Query(..., ge=-180, le=180, description="経度", examples=[2.3522]),
    max_distance: Optional[float] = Query(None, alias="maxDistance", ge=0, description="最大距離 (km)"),
    type: Optional[List[str]] = Query(None, description=TYPE_HELP),
    locator: AirportLocator = Depends(get_locator),
):
    """最寄り空港のICAOコード"""
    result = locator.find_nearest(lat, lon, max_distance, parse_types(type))
    if result is None:
        if max_distance is not None:
            detail = f"No airport found within {max_distance:g} km"
        else:
            detail = "No airport found nearby"
        raise HTTPException(status_code=404, detail=detail)

    return IcaoResponse(data=IcaoOut(icao=result.airport.icao, name=result.airport.name))


@router.get("/icao/nearest", response_model=NearbyListResponse, responses=ERROR_RESPONSES)
def nearest_airports(
    lat: float = Query(..., ge=-90, le=90, description="緯度"),
    lon: float = Query(..., ge=-180, le=180, description="経度"),
    limit: int = Query(DEFAULT_NEAREST_LIMIT, ge=0, le=1000, description="件数"),
    max_distance: Optional[float] = Query(None, alias="maxDistance", ge=0, description="最大距離 (km)"),
    type: Optional[List[str]] = Query(None, description=TYPE_HELP),
    locator: AirportLocator = Depends(get_locator),
):
    """近い順にN件"""
    results = locator.find_nearest_k(lat, lon, limit, max_distance, parse_types(type))
    return NearbyListResponse(
        count=len(results),
        data=[NearbyAirportOut.from_result(r) for r in results],
    )


@router.get(
    "/icao/search",
    response_model=Union[AirportResponse, AirportListResponse],
    responses=ERROR_RESPONSES,
)
def search_airports(
    code: Optional[str] = Query(None, description="ICAOコード（例: LFPG）"),
    name: Optional[str] = Query(None, description="名称または都市名（部分一致）"),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, le=100, description="最大件数（名称検索）"),
    locator: AirportLocator = Depends(get_locator),
):
    """ICAOコード完全一致、または名称・都市名検索"""
    if not code and not name:
        raise InvalidInput("Either code or name parameter is required")

    if code:
        airport = locator.find_by_icao(code)
        if airport is None:
            raise HTTPException(status_code=404, detail=f"No airport found with ICAO code: {code}")
        return AirportResponse(data=AirportOut.from_airport(airport))

    airports = locator.search_by_name(name, limit)
    if not airports:
        raise HTTPException(status_code=404, detail=f"No airport found for: {name}")
    return AirportListResponse(
        count=len(airports),
        data=[AirportOut.from_airport(a) for a in airports],
    )
