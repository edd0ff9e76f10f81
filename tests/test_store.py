"""SqlCatalogStore のテスト（メモリSQLite）"""
import pytest
from sqlalchemy import text
from sqlalchemy.pool import QueuePool

from api.database import Base, create_db_engine, make_session_factory
from api.domain import AirportType, SearchBox
from api.errors import StoreUnavailable
from api.models import AirportRow
from api.services.geo import bounding_box
from api.services.locator import AirportLocator
from api.services.store import SqlCatalogStore, _longitude_ranges

from conftest import ALL_AIRPORTS, PARIS


@pytest.fixture
def store(seeded_session_factory):
    return SqlCatalogStore(seeded_session_factory)


def icaos(airports):
    return sorted(a.icao for a in airports)


class TestRetrieveInBox:
    def test_rectangle(self, store):
        box = SearchBox(bbox=bounding_box(*PARIS, 100))
        assert icaos(store.retrieve_in_box(box)) == ["LFPB", "LFPG", "LFPI", "LFPO"]

    def test_type_filter(self, store):
        box = SearchBox(
            bbox=bounding_box(*PARIS, 100),
            types=frozenset({AirportType.LARGE_AIRPORT, AirportType.HELIPORT}),
        )
        assert icaos(store.retrieve_in_box(box)) == ["LFPG", "LFPI", "LFPO"]

    def test_unbounded_returns_whole_catalog(self, store):
        box = SearchBox(bbox=bounding_box(*PARIS, None))
        assert len(store.retrieve_in_box(box)) == len(ALL_AIRPORTS)

    def test_bounds_past_pole(self, store):
        box = SearchBox(bbox=bounding_box(89.9, 0.0, 50))
        assert icaos(store.retrieve_in_box(box)) == ["ENNP"]

    def test_crosses_antimeridian(self, store):
        box = SearchBox(bbox=bounding_box(-19.5, 179.9, 700))
        assert icaos(store.retrieve_in_box(box)) == ["NFFN", "NFTF"]

    def test_returns_domain_records(self, store):
        box = SearchBox(bbox=bounding_box(49.0097, 2.5479, 1))
        [lfpg] = store.retrieve_in_box(box)
        assert lfpg.icao == "LFPG"
        assert lfpg.city == "Paris"
        assert lfpg.elevation == 119
        assert lfpg.type is AirportType.LARGE_AIRPORT


class TestLongitudeRanges:
    def test_inside(self):
        assert _longitude_ranges(-10.0, 10.0) == [(-10.0, 10.0)]

    def test_wraps_east(self):
        assert _longitude_ranges(170.0, 190.0) == [(170.0, 190.0), (-180.0, -170.0)]

    def test_wraps_west(self):
        assert _longitude_ranges(-185.0, -175.0) == [(-185.0, -175.0), (175.0, 180.0)]

    def test_full_circle(self):
        assert _longitude_ranges(-177.0, 183.0) == [(-180.0, 180.0)]


class TestLookups:
    def test_icao_case_insensitive(self, store):
        assert store.retrieve_by_icao("lfpg") == store.retrieve_by_icao("LFPG")
        assert store.retrieve_by_icao("LfPg").icao == "LFPG"

    def test_icao_not_found(self, store):
        assert store.retrieve_by_icao("ZZZZ") is None

    def test_text_matches_name_or_city(self, store):
        assert icaos(store.retrieve_by_text("paris")) == ["LFPB", "LFPG", "LFPI", "LFPO"]
        assert icaos(store.retrieve_by_text("LONDON")) == ["EGLL"]

    def test_text_wildcards_are_literal(self, store):
        assert store.retrieve_by_text("%") == []
        assert store.retrieve_by_text("_") == []

    def test_count(self, store):
        assert store.count() == len(ALL_AIRPORTS)

    def test_unknown_type_maps_to_unknown(self, seeded_session_factory, store):
        session = seeded_session_factory()
        session.add(AirportRow(icao="XXXX", name="Odd Strip", latitude=1.0, longitude=1.0, type="glider_site"))
        session.commit()
        session.close()
        assert store.retrieve_by_icao("XXXX").type is AirportType.UNKNOWN

    def test_text_match_folds_non_ascii_case(self, seeded_session_factory, store):
        session = seeded_session_factory()
        session.add(AirportRow(
            icao="ESNZ", name="Östersund Åre Airport", city="Östersund",
            latitude=63.194, longitude=14.500, type="medium_airport",
        ))
        session.commit()
        session.close()
        assert icaos(store.retrieve_by_text("östersund")) == ["ESNZ"]
        assert icaos(store.retrieve_by_text("ÅRE")) == ["ESNZ"]
        locator = AirportLocator(store)
        assert icaos(locator.search_by_name("Östersund")) == ["ESNZ"]
        assert icaos(locator.search_by_name("östersund")) == ["ESNZ"]

    def test_timestamps_filled_by_database(self, seeded_session_factory):
        session = seeded_session_factory()
        try:
            row = session.get(AirportRow, "LFPG")
            assert row.created_at is not None
            assert row.updated_at is not None
        finally:
            session.close()


class TestLocatorOverSql:
    def test_nearest_over_antimeridian(self, store):
        results = AirportLocator(store).find_nearest_k(-19.5, 179.9, limit=5, max_distance=700)
        assert [r.airport.icao for r in results] == ["NFFN", "NFTF"]

    def test_nearest_unbounded_reaches_other_hemisphere(self, store):
        locator = AirportLocator(store)
        result = locator.find_nearest(-85.0, -60.0)
        assert result.airport.icao == "NZSP"


class TestFailures:
    def test_missing_table_is_store_unavailable(self, session_factory, engine):
        Base.metadata.drop_all(engine)
        store = SqlCatalogStore(session_factory)
        with pytest.raises(StoreUnavailable):
            store.count()

    def test_pool_exhaustion_is_store_unavailable(self, tmp_path):
        eng = create_db_engine(
            f"sqlite:///{tmp_path / 'airports.db'}",
            poolclass=QueuePool, pool_size=1, max_overflow=0, pool_timeout=0.1,
        )
        Base.metadata.create_all(eng)
        store = SqlCatalogStore(make_session_factory(eng))

        held = eng.connect()
        try:
            with pytest.raises(StoreUnavailable):
                store.count()
        finally:
            held.close()

        # 失敗後もコネクションは返却されている
        assert store.count() == 0
        assert eng.pool.checkedout() == 0
        eng.dispose()

    def test_statement_deadline_interrupts_query(self, store):
        slow = text(
            "WITH RECURSIVE c(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM c WHERE x < 50000000) "
            "SELECT count(*) FROM c"
        )
        with pytest.raises(StoreUnavailable):
            with store._session(timeout=1e-6) as db:
                db.execute(slow).scalar()

        # 次の呼び出しには影響しない
        assert store.count() == len(ALL_AIRPORTS)
