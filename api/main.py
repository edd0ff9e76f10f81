"""FastAPI アプリケーション"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import API_HOST, API_PORT, IS_DEVELOPMENT, LOG_LEVEL
from .database import create_db_engine, make_session_factory
from .errors import InvalidInput, StoreUnavailable
from .routes.airports import router as airports_router
from .services.store import SqlCatalogStore

logging.getLogger("api").setLevel(LOG_LEVEL)
logger = logging.getLogger(__name__)


def check_catalog(store) -> bool:
    """起動時にカタログへの接続と件数を確認（失敗しても起動は続ける）"""
    try:
        count = store.count()
    except StoreUnavailable as e:
        logger.error(f"Catalog store unreachable at startup: {e}")
        return False
    if count == 0:
        logger.warning("No airports in the catalog. Run: python scripts/migrate.py && python scripts/import_airports.py")
        return False
    logger.info(f"Catalog connected: {count:,} airports available")
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """起動時にエンジンを作成し、終了時に接続プールを閉じる"""
    # テストなどで事前に store が差し込まれていればそれを使う
    if getattr(app.state, "store", None) is not None:
        yield
        return

    engine = create_db_engine()
    app.state.store = SqlCatalogStore(make_session_factory(engine))
    check_catalog(app.state.store)
    try:
        yield
    finally:
        app.state.store = None
        engine.dispose()
        logger.info("Connection pool closed")


app = FastAPI(
    title="ICAO Locator API",
    description="緯度経度から最寄り空港のICAOコードを返すAPI",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api-docs",
    redoc_url="/redoc",
)

# CORS（開発用に全許可、本番では制限する）
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(airports_router)


# === エラーハンドラ ===

def _error(status_code: int, message: str, exc: Exception = None) -> JSONResponse:
    body = {"success": False, "message": message}
    if IS_DEVELOPMENT and exc is not None:
        body["error"] = repr(exc)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return _error(400, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(str(err["loc"][-1]) for err in exc.errors())
    return _error(400, f"Invalid or missing parameters: {fields}", exc)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    return _error(503, "Airport catalog temporarily unavailable", exc)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        # ルーティング不一致（HTTPException(404) の明示 detail はそのまま返す）
        message = "Route not found"
    return _error(exc.status_code, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return _error(500, "Internal error during search", exc)


@app.get("/health")
def health():
    return {"status": "ok"}


def run():
    import uvicorn
    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    run()
