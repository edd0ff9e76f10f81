"""共通フィクスチャ — メモリ上のフェイクストアとSQLite"""
import pytest
from sqlalchemy.pool import StaticPool

from api.database import Base, create_db_engine, make_session_factory
from api.domain import Airport, AirportType
from api.models import AirportRow
from api.services.geo import great_circle_distance


class FakeCatalogStore:
    """CatalogStore のメモリ実装。呼び出しを記録する"""

    def __init__(self, airports=(), error=None):
        self.airports = list(airports)
        self.error = error
        self.boxes = []

    def _maybe_fail(self):
        if self.error is not None:
            raise self.error

    def retrieve_in_box(self, box, timeout=None):
        self._maybe_fail()
        self.boxes.append(box)
        return [
            a for a in self.airports
            if box.bbox.contains(a.latitude, a.longitude)
            and (not box.types or a.type in box.types)
        ]

    def retrieve_by_icao(self, code, timeout=None):
        self._maybe_fail()
        for a in self.airports:
            if a.icao.lower() == code.lower():
                return a
        return None

    def retrieve_by_text(self, fragment, timeout=None):
        self._maybe_fail()
        # 絞り込みはしない（順位付け側で判定されることを確認するため）
        return list(self.airports)

    def count(self, timeout=None):
        self._maybe_fail()
        return len(self.airports)


LFPG = Airport(
    icao="LFPG", name="Charles de Gaulle International Airport",
    latitude=49.0097, longitude=2.5479, city="Paris", country="FR",
    elevation=119, type=AirportType.LARGE_AIRPORT,
)
LFPO = Airport(
    icao="LFPO", name="Paris-Orly Airport",
    latitude=48.7233, longitude=2.3794, city="Paris", country="FR",
    elevation=89, type=AirportType.LARGE_AIRPORT,
)
LFPB = Airport(
    icao="LFPB", name="Paris-Le Bourget Airport",
    latitude=48.9694, longitude=2.4414, city="Paris", country="FR",
    elevation=66, type=AirportType.MEDIUM_AIRPORT,
)
EGLL = Airport(
    icao="EGLL", name="London Heathrow Airport",
    latitude=51.4706, longitude=-0.4619, city="London", country="GB",
    elevation=25, type=AirportType.LARGE_AIRPORT,
)
LFPI = Airport(
    icao="LFPI", name="Paris Issy-les-Moulineaux Heliport",
    latitude=48.8333, longitude=2.2728, city="Paris", country="FR",
    elevation=35, type=AirportType.HELIPORT,
)
NZSP = Airport(
    icao="NZSP", name="Amundsen-Scott South Pole Station",
    latitude=-90.0, longitude=0.0, city=None, country="AQ",
    elevation=2835, type=AirportType.MEDIUM_AIRPORT,
)
# 北極点付近の架空の滑走路
ENNP = Airport(
    icao="ENNP", name="North Pole Ice Camp",
    latitude=89.95, longitude=120.0, city=None, country="NO",
    type=AirportType.SMALL_AIRPORT,
)
# 日付変更線の両側
NFFN = Airport(
    icao="NFFN", name="Nadi International Airport",
    latitude=-17.7554, longitude=177.4434, city="Nadi", country="FJ",
    type=AirportType.LARGE_AIRPORT,
)
NFTF = Airport(
    icao="NFTF", name="Fua'amotu International Airport",
    latitude=-21.2412, longitude=-175.1496, city="Nuku'alofa", country="TO",
    type=AirportType.MEDIUM_AIRPORT,
)

PARIS = (48.8566, 2.3522)

ALL_AIRPORTS = [LFPG, LFPO, LFPB, EGLL, LFPI, NZSP, ENNP, NFFN, NFTF]


def distance_from(point, airport):
    return great_circle_distance(point[0], point[1], airport.latitude, airport.longitude)


@pytest.fixture
def fake_store():
    return FakeCatalogStore(ALL_AIRPORTS)


@pytest.fixture
def engine():
    """テストごとに独立したメモリSQLite"""
    eng = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def seeded_session_factory(session_factory):
    session = session_factory()
    for a in ALL_AIRPORTS:
        session.add(AirportRow(
            icao=a.icao, name=a.name, latitude=a.latitude, longitude=a.longitude,
            city=a.city, country=a.country, elevation=a.elevation, type=a.type.value,
        ))
    session.commit()
    session.close()
    return session_factory
