"""Google Places APIによる場所識別子のジオコーディング"""
import threading
from typing import Any, Optional

import googlemaps

from ..domain.models import Cid, Coordinate, PlaceId, PlaceIdentifier
from ....shared.exceptions.errors import (
    ConfigurationError,
    InvalidCandidate,
    MalformedResponse,
    NetworkFailure,
)
from ....shared.http.client import HTTPClient, run_cancellable
from ....shared.logging.config import get_logger
from ....shared.utils.url import redact_credentials

logger = get_logger(__name__)

PLACE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"


def parse_place_details(payload: Any) -> Optional[Coordinate]:
    """
    Place Detailsのレスポンスから座標を取得

    Args:
        payload: JSONをデコードした値

    Returns:
        Optional[Coordinate]: 座標（status != OK、位置なし、範囲外の場合はNone）

    Raises:
        MalformedResponse: 想定外の構造の場合
    """
    if not isinstance(payload, dict):
        raise MalformedResponse(f"Unexpected response type: {type(payload).__name__}")

    status = payload.get("status")
    if status != "OK":
        logger.warning(f"Place details returned status: {status}")
        return None

    result = payload.get("result")
    if not isinstance(result, dict):
        raise MalformedResponse("Missing 'result' in place details response")

    location = (result.get("geometry") or {}).get("location") or {}
    latitude = location.get("lat")
    longitude = location.get("lng")

    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        logger.warning("Invalid place details result (missing lat/lng)")
        return None

    try:
        return Coordinate(latitude=float(latitude), longitude=float(longitude))
    except InvalidCandidate as e:
        logger.warning(f"Place details returned invalid coordinates: {e}")
        return None


class GooglePlacesGeocoder:
    """
    Google Places API実装

    Place IDは googlemaps クライアント経由、CIDはクライアントが対応して
    いないため Place Details エンドポイントを直接呼び出す
    """

    def __init__(
        self,
        api_key: str,
        http_client: Optional[HTTPClient] = None,
        client: Optional[googlemaps.Client] = None,
        connect_timeout: float = 10.0,
        read_timeout: float = 10.0,
    ) -> None:
        """
        Args:
            api_key: Google Places API キー
            http_client: CID検索用のHTTPクライアント
            client: googlemapsクライアント（テスト用に差し替え可能）
            connect_timeout: 接続タイムアウト（秒）
            read_timeout: 読み込みタイムアウト（秒）

        Raises:
            ConfigurationError: APIキーが空、またはクライアントの初期化に失敗した場合
        """
        if not api_key:
            raise ConfigurationError("Google Places API key is required for place lookup")

        self.api_key = api_key
        self.http_client = http_client or HTTPClient(
            connect_timeout=connect_timeout, read_timeout=read_timeout
        )

        if client is not None:
            self.client = client
        else:
            try:
                self.client = googlemaps.Client(
                    key=api_key,
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                    retry_timeout=int(connect_timeout + read_timeout),
                )
            except Exception as e:
                raise ConfigurationError(f"Failed to initialize Google Maps client: {e}") from e

        logger.info("GooglePlacesGeocoder initialized")

    def lookup(
        self,
        identifier: PlaceIdentifier,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[Coordinate]:
        """
        場所識別子から座標を取得

        通信失敗・不正なレスポンス・OK以外のステータスはすべてNoneになる

        Args:
            identifier: CID または Place ID
            cancel_event: キャンセル通知

        Returns:
            Optional[Coordinate]: 座標（見つからない場合はNone）

        Raises:
            ResolutionCancelled: キャンセルされた場合
        """
        try:
            if isinstance(identifier, PlaceId):
                return self._lookup_place_id(identifier.token, cancel_event)
            if isinstance(identifier, Cid):
                return self._lookup_cid(identifier.value, cancel_event)
        except (NetworkFailure, MalformedResponse) as e:
            logger.warning(f"Place lookup failed for {identifier}: {e}")
            return None

        logger.warning(f"Unsupported place identifier: {identifier!r}")
        return None

    def _lookup_place_id(
        self,
        place_id: str,
        cancel_event: Optional[threading.Event],
    ) -> Optional[Coordinate]:
        logger.debug(f"Looking up place ID: {place_id}")
        try:
            if cancel_event is None:
                payload = self.client.place(place_id, fields=["geometry"])
            else:
                payload = run_cancellable(
                    lambda: self.client.place(place_id, fields=["geometry"]),
                    cancel_event,
                    f"place lookup {place_id}",
                )
        except googlemaps.exceptions.ApiError as e:
            logger.warning(f"Google Places API error: {redact_credentials(str(e))}")
            return None
        except (googlemaps.exceptions.TransportError, googlemaps.exceptions.Timeout) as e:
            raise NetworkFailure(
                f"Google Places transport error: {redact_credentials(str(e))}"
            ) from e

        return parse_place_details(payload)

    def _lookup_cid(
        self,
        cid: str,
        cancel_event: Optional[threading.Event],
    ) -> Optional[Coordinate]:
        logger.debug(f"Looking up CID: {cid}")
        response = self.http_client.get(
            PLACE_DETAILS_URL,
            params={"cid": cid, "fields": "geometry", "key": self.api_key},
            cancel_event=cancel_event,
        )

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponse(f"Place details response is not JSON: {e}") from e

        return parse_place_details(payload)
