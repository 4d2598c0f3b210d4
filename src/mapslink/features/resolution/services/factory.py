"""設定からオーケストレーターを組み立てる（依存性注入）"""

from typing import Optional

from ....infrastructure.config.settings import Settings
from ....infrastructure.gcp.secret_manager import SecretManagerClient
from ....shared.exceptions.errors import ConfigurationError
from ....shared.http.client import HTTPClient
from ....shared.logging.config import get_logger
from ..extractors.direct_extractor import DirectExtractor
from ..extractors.place_identifier_extractor import PlaceIdentifierExtractor
from ..providers.google_places_geocoder import GooglePlacesGeocoder
from ..providers.redirect_resolver import RedirectResolver
from .resolution_orchestrator import ResolutionOrchestrator

logger = get_logger(__name__)


def create_http_client(settings: Settings) -> HTTPClient:
    """設定からHTTPクライアントを作成"""
    return HTTPClient(
        connect_timeout=settings.http_connect_timeout,
        read_timeout=settings.http_read_timeout,
        max_retries=settings.http_max_retries,
        user_agent=settings.http_user_agent,
    )


def resolve_places_api_key(
    settings: Settings,
    secret_manager: Optional[SecretManagerClient] = None,
) -> Optional[str]:
    """
    Places APIキーを取得

    設定値を優先し、なければSecret Managerから取得する（開発環境以外）。
    取得できない場合はNone（識別子フォールバックは無効になる）

    Args:
        settings: アプリケーション設定
        secret_manager: Secret Managerクライアント（Noneの場合は必要に応じて作成）

    Returns:
        Optional[str]: APIキー
    """
    if not settings.geocoding_enabled:
        logger.info("Place lookup is disabled via settings")
        return None

    api_key = (settings.google_places_api_key or "").strip()
    if api_key:
        return api_key

    if secret_manager is None and not settings.is_development and settings.gcp_project_id:
        try:
            secret_manager = SecretManagerClient(settings.gcp_project_id)
        except Exception as e:
            logger.warning(f"Failed to initialize Secret Manager client: {e}")
            return None

    if secret_manager is None:
        logger.info("Google Places API key is not configured; place lookup disabled")
        return None

    return secret_manager.get_secret_or_none(settings.google_places_api_key_secret_name)


def create_orchestrator(
    settings: Settings,
    http_client: Optional[HTTPClient] = None,
    secret_manager: Optional[SecretManagerClient] = None,
    geocoder: Optional[GooglePlacesGeocoder] = None,
) -> ResolutionOrchestrator:
    """
    オーケストレーターを作成

    Args:
        settings: アプリケーション設定
        http_client: HTTPクライアント（Noneの場合は設定から作成）
        secret_manager: Secret Managerクライアント
        geocoder: Places APIクライアント（Noneの場合はAPIキーがあれば作成）

    Returns:
        ResolutionOrchestrator: オーケストレーター

    Raises:
        ConfigurationError: APIキーはあるがクライアントを初期化できない場合
    """
    http_client = http_client or create_http_client(settings)

    if geocoder is None:
        api_key = resolve_places_api_key(settings, secret_manager)
        if api_key:
            try:
                geocoder = GooglePlacesGeocoder(
                    api_key=api_key,
                    http_client=http_client,
                    connect_timeout=settings.http_connect_timeout,
                    read_timeout=settings.http_read_timeout,
                )
            except ConfigurationError:
                logger.error("Google Places API key is configured but invalid")
                raise

    return ResolutionOrchestrator(
        redirect_resolver=RedirectResolver(http_client),
        direct_extractor=DirectExtractor(),
        identifier_extractor=PlaceIdentifierExtractor(),
        geocoder=geocoder,
        supported_hosts=settings.get_supported_hosts(),
        short_link_hosts=settings.get_short_link_hosts(),
        max_url_length=settings.max_url_length,
        body_fetch_enabled=settings.body_fetch_enabled,
    )
