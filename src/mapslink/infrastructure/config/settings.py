"""アプリケーション設定（Pydantic Settings）"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """アプリケーション設定"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Project
    project_name: str = Field(
        default="mapslink",
        description="プロジェクト名",
    )
    environment: str = Field(
        default="development",
        description="環境 (development, staging, production)",
    )

    # GCP
    gcp_project_id: Optional[str] = Field(
        default=None,
        description="GCPプロジェクトID（Secret Manager / Cloud Logging用）",
    )

    # Places API（場所識別子のフォールバック）
    google_places_api_key: Optional[str] = Field(
        default=None,
        description="Google Places API Key（ローカル開発用）。未設定なら識別子フォールバックは無効",
    )
    google_places_api_key_secret_name: str = Field(
        default="google-places-api-key",
        description="Google Places API KeyのSecret Manager名",
    )
    geocoding_enabled: bool = Field(
        default=True,
        description="Places APIによるフォールバックを有効にするか",
    )

    # HTTP
    http_connect_timeout: float = Field(
        default=10.0,
        description="接続タイムアウト（秒）",
    )
    http_read_timeout: float = Field(
        default=10.0,
        description="読み込みタイムアウト（秒）",
    )
    http_max_retries: int = Field(
        default=2,
        description="5xx時のリトライ回数",
    )
    http_user_agent: str = Field(
        default="Mozilla/5.0 (Android 11; Mobile; rv:98.0) Gecko/98.0 Firefox/98.0",
        description="リダイレクト解決時のUser-Agent",
    )

    # Resolution
    max_url_length: int = Field(
        default=2048,
        description="受け付けるURLの最大長",
    )
    supported_hosts: str = Field(
        default="google.,goo.gl,g.page,g.co",
        description="受け付けるホスト（カンマ区切り、末尾'.'はラベル前方一致）",
    )
    short_link_hosts: str = Field(
        default="goo.gl,g.page,g.co",
        description="短縮URLのホスト（カンマ区切り）",
    )
    body_fetch_enabled: bool = Field(
        default=True,
        description="短縮URLの本文を取得して座標を探すか",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="ログレベル (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    gcp_logging_enabled: bool = Field(
        default=False,
        description="Cloud Loggingを有効にするか",
    )

    # Cloud Run
    port: int = Field(
        default=8080,
        description="HTTPサーバーのポート番号",
    )

    def get_supported_hosts(self) -> list[str]:
        """受け付けるホストのリストを取得"""
        return _split_csv(self.supported_hosts)

    def get_short_link_hosts(self) -> list[str]:
        """短縮URLのホストのリストを取得"""
        return _split_csv(self.short_link_hosts)

    @property
    def is_development(self) -> bool:
        """開発環境かどうか"""
        return self.environment.lower() == "development"


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]
