"""SQLAlchemy モデル定義"""
from sqlalchemy import Column, String, Text, Integer, Float, DateTime, Index, func

from .database import Base


class AirportRow(Base):
    """空港カタログ（OurAirports由来）"""
    __tablename__ = "airports"

    icao = Column(String(10), primary_key=True)  # 取り込み時に大文字化
    name = Column(Text, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    city = Column(Text)
    country = Column(String(100))
    elevation = Column(Integer)  # メートル（elevation_ft から換算）
    type = Column(String(50), index=True)
    # large_airport / medium_airport / small_airport / heliport /
    # seaplane_base / balloonport / closed / unknown
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_airports_latitude", "latitude"),
        Index("idx_airports_longitude", "longitude"),
        Index("idx_airports_lat_lon", "latitude", "longitude"),
        Index("idx_airports_icao_lower", func.lower(icao)),
        Index("idx_airports_name_lower", func.lower(name)),
        Index("idx_airports_city_lower", func.lower(city)),
        Index("idx_airports_country", "country"),
    )
