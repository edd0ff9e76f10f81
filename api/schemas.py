"""Pydantic スキーマ定義"""
from typing import Optional, List
from pydantic import BaseModel

from .domain import Airport, NearbyAirport


# === レスポンス ===

class LocationOut(BaseModel):
    lat: float
    lon: float


class IcaoOut(BaseModel):
    """/icao 用（最小限）"""
    icao: str
    name: str


class AirportOut(BaseModel):
    """コード・名称検索用"""
    icao: str
    name: str
    lat: float
    lon: float
    city: Optional[str] = None
    country: Optional[str] = None
    elevation: Optional[int] = None
    type: str
    location: LocationOut

    @classmethod
    def from_airport(cls, airport: Airport) -> "AirportOut":
        return cls(
            icao=airport.icao,
            name=airport.name,
            lat=airport.latitude,
            lon=airport.longitude,
            city=airport.city,
            country=airport.country,
            elevation=airport.elevation,
            type=airport.type.value,
            location=LocationOut(lat=airport.latitude, lon=airport.longitude),
        )


class NearbyAirportOut(BaseModel):
    """近隣検索用。distance は km、小数1桁に丸める"""
    icao: str
    name: str
    city: Optional[str] = None
    country: Optional[str] = None
    type: str
    distance: float
    location: LocationOut

    @classmethod
    def from_result(cls, result: NearbyAirport) -> "NearbyAirportOut":
        a = result.airport
        return cls(
            icao=a.icao,
            name=a.name,
            city=a.city,
            country=a.country,
            type=a.type.value,
            distance=round(result.distance_km, 1),
            location=LocationOut(lat=a.latitude, lon=a.longitude),
        )


class IcaoResponse(BaseModel):
    success: bool = True
    data: IcaoOut


class AirportResponse(BaseModel):
    success: bool = True
    data: AirportOut


class AirportListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[AirportOut]


class NearbyListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[NearbyAirportOut]


class ErrorOut(BaseModel):
    success: bool = False
    message: str
    error: Optional[str] = None  # development のみ
