"""空港カタログストア

検索エンジン（services/locator.py）はこのプロトコル越しにだけカタログを読む。
SqlCatalogStore は SQLAlchemy 実装で、呼び出しごとにセッションを取得し、
どの経路で抜けても必ず返却する。
"""
import logging
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol

from sqlalchemy import and_, func, or_
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, sessionmaker

from ..config import QUERY_TIMEOUT
from ..domain import Airport, AirportType, SearchBox
from ..errors import StoreUnavailable
from ..models import AirportRow

logger = logging.getLogger(__name__)

# SQLite の progress handler を呼ぶ間隔（VM命令数）
_PROGRESS_STEPS = 1000


class CatalogStore(Protocol):
    def retrieve_in_box(self, box: SearchBox, timeout: Optional[float] = None) -> List[Airport]:
        ...

    def retrieve_by_icao(self, code: str, timeout: Optional[float] = None) -> Optional[Airport]:
        ...

    def retrieve_by_text(self, fragment: str, timeout: Optional[float] = None) -> List[Airport]:
        ...

    def count(self, timeout: Optional[float] = None) -> int:
        ...


def row_to_airport(row: AirportRow) -> Airport:
    return Airport(
        icao=row.icao,
        name=row.name,
        latitude=row.latitude,
        longitude=row.longitude,
        city=row.city,
        country=row.country,
        elevation=row.elevation,
        type=AirportType(row.type),
    )


def _longitude_ranges(min_lon: float, max_lon: float) -> List[tuple]:
    """±180をまたぐ経度範囲を、反対側に折り返した範囲も含めて返す"""
    if max_lon - min_lon >= 360.0:
        return [(-180.0, 180.0)]
    ranges = [(min_lon, max_lon)]
    if min_lon < -180.0:
        ranges.append((min_lon + 360.0, 180.0))
    if max_lon > 180.0:
        ranges.append((-180.0, max_lon - 360.0))
    return ranges


class SqlCatalogStore:
    """SQLAlchemy セッション経由の読み取り専用カタログ"""

    def __init__(self, session_factory: sessionmaker, timeout: Optional[float] = QUERY_TIMEOUT):
        self._session_factory = session_factory
        self._timeout = timeout

    # ------------------------------------------------------------------
    # Session scope
    # ------------------------------------------------------------------

    @contextmanager
    def _session(self, timeout: Optional[float]) -> Iterator[Session]:
        if timeout is None:
            timeout = self._timeout
        session = self._session_factory()
        try:
            with _statement_deadline(session, timeout):
                yield session
        except (sa_exc.OperationalError, sa_exc.InterfaceError) as e:
            logger.error(f"Catalog store error: {e}")
            raise StoreUnavailable(f"catalog store unavailable: {e.orig}") from e
        except sa_exc.TimeoutError as e:
            logger.error(f"Catalog store pool exhausted: {e}")
            raise StoreUnavailable("catalog store busy: connection pool exhausted") from e
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def retrieve_in_box(self, box: SearchBox, timeout: Optional[float] = None) -> List[Airport]:
        """矩形 + 種別で候補を取得（距離計算は呼び出し側）"""
        bbox = box.bbox
        lon_filters = [
            AirportRow.longitude.between(lo, hi)
            for lo, hi in _longitude_ranges(bbox.min_lon, bbox.max_lon)
        ]
        with self._session(timeout) as db:
            query = db.query(AirportRow).filter(
                and_(
                    AirportRow.latitude >= bbox.min_lat,
                    AirportRow.latitude <= bbox.max_lat,
                ),
                or_(*lon_filters),
            )
            if box.types:
                query = query.filter(AirportRow.type.in_(sorted(t.value for t in box.types)))
            return [row_to_airport(r) for r in query.all()]

    def retrieve_by_icao(self, code: str, timeout: Optional[float] = None) -> Optional[Airport]:
        with self._session(timeout) as db:
            row = (
                db.query(AirportRow)
                .filter(func.lower(AirportRow.icao) == code.lower())
                .first()
            )
            return row_to_airport(row) if row else None

    def retrieve_by_text(self, fragment: str, timeout: Optional[float] = None) -> List[Airport]:
        """名称・都市名の部分一致候補（並び順は呼び出し側で決める）"""
        needle = fragment.lower()
        with self._session(timeout) as db:
            rows = db.query(AirportRow).filter(
                or_(
                    func.lower(AirportRow.name).contains(needle, autoescape=True),
                    func.lower(AirportRow.city).contains(needle, autoescape=True),
                )
            ).all()
            return [row_to_airport(r) for r in rows]

    def count(self, timeout: Optional[float] = None) -> int:
        with self._session(timeout) as db:
            return db.query(func.count(AirportRow.icao)).scalar() or 0


@contextmanager
def _statement_deadline(session: Session, timeout: Optional[float]) -> Iterator[None]:
    """1回のストア呼び出しに実行期限を設ける

    SQLite: progress handler で期限超過したクエリを中断（OperationalError）
    PostgreSQL: トランザクション内の statement_timeout
    """
    if not timeout:
        yield
        return

    conn = session.connection()
    dialect = conn.dialect.name

    if dialect == "sqlite":
        raw = conn.connection.dbapi_connection
        deadline = time.monotonic() + timeout
        raw.set_progress_handler(lambda: 1 if time.monotonic() > deadline else 0, _PROGRESS_STEPS)
        try:
            yield
        finally:
            raw.set_progress_handler(None, _PROGRESS_STEPS)
        return

    if dialect == "postgresql":
        conn.exec_driver_sql(f"SET LOCAL statement_timeout = {int(timeout * 1000)}")

    yield
