"""Waze起動用URIの生成"""
from ..resolution.domain.models import Coordinate

WAZE_APP_SCHEME = "waze://"
WAZE_WEB_BASE = "https://ul.waze.com/ul"


def build_waze_app_uri(coordinate: Coordinate) -> str:
    """アプリ直接起動用のURI（waze://?ll=LAT,LNG&navigate=yes）"""
    return f"{WAZE_APP_SCHEME}?ll={coordinate.latitude},{coordinate.longitude}&navigate=yes"


def build_waze_web_uri(coordinate: Coordinate) -> str:
    """ユニバーサルリンク（未インストール時はブラウザで開く）"""
    return f"{WAZE_WEB_BASE}?ll={coordinate.latitude},{coordinate.longitude}&navigate=yes"
