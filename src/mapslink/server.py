"""Cloud Run用HTTPサーバー（FastAPI）"""
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .features.navigation.waze import build_waze_app_uri, build_waze_web_uri
from .features.resolution.domain.models import Found, ResolutionRequest
from .features.resolution.services.factory import create_orchestrator
from .features.resolution.services.resolution_orchestrator import ResolutionOrchestrator
from .infrastructure.config.settings import Settings
from .shared.logging.config import get_logger, setup_logging

# 設定を読み込み
settings = Settings()

# ロギングを設定
setup_logging(
    level=settings.log_level,
    enable_cloud_logging=settings.gcp_logging_enabled,
    project_id=settings.gcp_project_id,
)
logger = get_logger(__name__)

app = FastAPI(
    title="MapsLink",
    description="Google MapsのURLから座標を解決し、ナビアプリ用のURIを返すサービス",
    version="1.0.0",
)


class ResolveRequestBody(BaseModel):
    """座標解決リクエスト"""

    url: str = Field(..., description="Google MapsのURL、または共有テキスト")


class ResolveResponseBody(BaseModel):
    """座標解決レスポンス"""

    url: str
    found: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    stage: Optional[str] = None
    reason: Optional[str] = None
    waze_uri: Optional[str] = None
    waze_web_uri: Optional[str] = None


@lru_cache(maxsize=1)
def get_orchestrator() -> ResolutionOrchestrator:
    """オーケストレーターを取得（プロセス内で1つを共有、状態は持たない）"""
    return create_orchestrator(settings)


@app.get("/")
async def root() -> dict[str, Any]:
    """ルートエンドポイント"""
    return {
        "service": "MapsLink",
        "version": "1.0.0",
        "status": "running",
        "environment": settings.environment,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """ヘルスチェックエンドポイント"""
    return {"status": "healthy"}


@app.post("/resolve", response_model=ResolveResponseBody)
def resolve(
    body: ResolveRequestBody,
    orchestrator: ResolutionOrchestrator = Depends(get_orchestrator),
) -> ResolveResponseBody:
    """
    URLから座標を解決

    座標が見つからない場合も200で found=false を返す
    """
    request = ResolutionRequest.from_shared_text(body.url)
    logger.info(f"Received resolve request: {request.raw_url}")

    result = orchestrator.resolve_request(request)

    if isinstance(result, Found):
        coordinate = result.coordinate
        return ResolveResponseBody(
            url=request.raw_url,
            found=True,
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            stage=result.stage.value,
            waze_uri=build_waze_app_uri(coordinate),
            waze_web_uri=build_waze_web_uri(coordinate),
        )

    return ResolveResponseBody(url=request.raw_url, found=False, reason=result.reason)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """グローバル例外ハンドラー"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal server error", "detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
