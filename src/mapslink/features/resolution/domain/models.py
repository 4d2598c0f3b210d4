"""座標解決機能のドメインモデル"""
import math
import threading
from dataclasses import dataclass
from typing import Optional, Union

from ....shared.exceptions.errors import InvalidCandidate, NoMatch
from ....shared.utils.url import extract_first_url
from .enums import PlaceIdentifierKind, ResolutionStage

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """緯度・経度が有効範囲内か"""
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return (
        LATITUDE_RANGE[0] <= latitude <= LATITUDE_RANGE[1]
        and LONGITUDE_RANGE[0] <= longitude <= LONGITUDE_RANGE[1]
    )


@dataclass(frozen=True)
class Coordinate:
    """
    座標（緯度・経度）

    生成時に範囲チェックを行うため、存在するCoordinateは常に有効な値を持つ
    """

    latitude: float  # 緯度 [-90, 90]
    longitude: float  # 経度 [-180, 180]

    def __post_init__(self) -> None:
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise InvalidCandidate(
                f"Coordinate out of range: ({self.latitude}, {self.longitude})"
            )

    @classmethod
    def parse(cls, latitude: str, longitude: str) -> "Coordinate":
        """
        文字列の組から座標を生成

        Raises:
            InvalidCandidate: 数値でない、または範囲外の場合
        """
        try:
            lat = float(latitude)
            lng = float(longitude)
        except (TypeError, ValueError) as e:
            raise InvalidCandidate(f"Not a number pair: {latitude!r}, {longitude!r}") from e
        return cls(latitude=lat, longitude=lng)

    def __repr__(self) -> str:
        return f"Coordinate(lat={self.latitude}, lng={self.longitude})"


@dataclass(frozen=True)
class Cid:
    """CID（10進数の数字列）"""

    value: str

    kind = PlaceIdentifierKind.CID


@dataclass(frozen=True)
class PlaceId:
    """Place ID（ChIJ... 等の不透明なトークン）"""

    token: str

    kind = PlaceIdentifierKind.PLACE_ID


PlaceIdentifier = Union[Cid, PlaceId]


@dataclass(frozen=True)
class ResolutionRequest:
    """座標解決リクエスト"""

    raw_url: str

    @classmethod
    def from_shared_text(cls, text: str) -> "ResolutionRequest":
        """
        共有テキストからリクエストを生成

        URLが含まれていなければテキスト全体をそのまま使う
        """
        url = extract_first_url(text)
        return cls(raw_url=url or (text or "").strip())


@dataclass
class ResolutionContext:
    """
    1回の解決処理の作業状態

    オーケストレーターが解決処理ごとに生成し、処理終了とともに破棄する
    """

    raw_url: str
    canonical_url: Optional[str] = None
    fetched_body: Optional[str] = None
    last_resort_enabled: bool = False
    ambiguous: bool = False
    cancel_event: Optional[threading.Event] = None

    @property
    def target_url(self) -> str:
        """抽出対象のURL（正規URLが未確定なら入力URL）"""
        return self.canonical_url or self.raw_url

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass(frozen=True)
class Found:
    """座標が見つかった結果"""

    coordinate: Coordinate
    stage: ResolutionStage

    found = True

    def unwrap(self) -> Coordinate:
        return self.coordinate


@dataclass(frozen=True)
class NotFound:
    """座標が見つからなかった結果"""

    reason: str = "no_match"

    found = False

    def unwrap(self) -> Coordinate:
        """
        Raises:
            NoMatch: 常に送出
        """
        raise NoMatch(f"Coordinates not found ({self.reason})")


ResolutionResult = Union[Found, NotFound]
