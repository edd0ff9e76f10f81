"""FastAPI 依存関係 — app.state に載せたストア・検索サービスを返す"""
from fastapi import Depends, HTTPException, Request

from .services.locator import AirportLocator
from .services.store import CatalogStore


def get_store(request: Request) -> CatalogStore:
    return request.app.state.store


def get_locator(store: CatalogStore = Depends(get_store)) -> AirportLocator:
    # 状態を持たないのでリクエストごとに作ってよい
    return AirportLocator(store)


def require_catalog_loaded(locator: AirportLocator = Depends(get_locator)) -> None:
    """カタログが空なら503"""
    if locator.count() == 0:
        raise HTTPException(
            status_code=503,
            detail="No airport data in the catalog. Run: python scripts/migrate.py && python scripts/import_airports.py",
        )
