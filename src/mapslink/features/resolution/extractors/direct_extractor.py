"""直接抽出（URL・HTML本文から座標パターンを探す）"""

import re
from typing import Optional

from bs4 import BeautifulSoup

from ....shared.exceptions.errors import InvalidCandidate
from ....shared.logging.config import get_logger
from ..domain.models import Coordinate
from ..patterns.library import PatternLibrary, is_ambiguous_url
from ..patterns.rules import NUMBER

logger = get_logger(__name__)

# メタタグ（Open Graph / Facebook place）の属性名
META_COORDINATE_PROPERTIES: tuple[tuple[str, str], ...] = (
    ("og:latitude", "og:longitude"),
    ("place:location:latitude", "place:location:longitude"),
)

# JSON埋め込みのキー（緯度・経度の両方が必要）
JSON_KEY_PAIRS: tuple[tuple[re.Pattern, re.Pattern], ...] = (
    (
        re.compile(rf"\"lat\"\s*:\s*({NUMBER})"),
        re.compile(rf"\"lng\"\s*:\s*({NUMBER})"),
    ),
    (
        re.compile(rf"[\"']?latitude[\"']?\s*:\s*[\"']?({NUMBER})", re.IGNORECASE),
        re.compile(rf"[\"']?longitude[\"']?\s*:\s*[\"']?({NUMBER})", re.IGNORECASE),
    ),
)


class DirectExtractor:
    """パターンライブラリを1つの文字列に適用する抽出器（I/Oなし）"""

    def __init__(self, library: Optional[PatternLibrary] = None) -> None:
        """
        Args:
            library: パターンライブラリ（Noneの場合は既定のルール）
        """
        self.library = library or PatternLibrary()

    def extract(self, text: str, last_resort: bool = False) -> Optional[Coordinate]:
        """
        URL等のテキストから座標を抽出

        Args:
            text: 対象テキスト
            last_resort: 最終手段モードか

        Returns:
            Optional[Coordinate]: 座標（見つからない場合はNone）
        """
        if not text:
            return None
        return self.library.match(text, last_resort=last_resort)

    def extract_from_body(
        self,
        body: str,
        source_url: Optional[str] = None,
        last_resort: bool = False,
    ) -> Optional[Coordinate]:
        """
        HTML本文から座標を抽出

        URL向けのパターンに加え、メタタグ・マイクロデータ・JSONキーを調べる。
        本文中には "/place/" が多数含まれるため、曖昧さの判定は本文ではなく
        取得元URLで行う。

        Args:
            body: HTML本文
            source_url: 本文の取得元URL
            last_resort: 最終手段モードか

        Returns:
            Optional[Coordinate]: 座標（見つからない場合はNone）
        """
        if not body:
            return None

        ambiguous = is_ambiguous_url(source_url) if source_url else False

        coordinate = self.library.match(body, last_resort=False, ambiguous=ambiguous)
        if coordinate:
            return coordinate

        coordinate = self._extract_markup(body)
        if coordinate:
            return coordinate

        if last_resort:
            return self.library.match(body, last_resort=True, ambiguous=ambiguous)

        return None

    def _extract_markup(self, body: str) -> Optional[Coordinate]:
        """マークアップ固有のパターンから座標を抽出"""
        soup = BeautifulSoup(body, "html.parser")

        for lat_property, lng_property in META_COORDINATE_PROPERTIES:
            coordinate = _pair_or_none(
                _meta_content(soup, "property", lat_property),
                _meta_content(soup, "property", lng_property),
            )
            if coordinate:
                logger.debug(f"Found coordinates in meta tags: {coordinate}")
                return coordinate

        coordinate = _pair_or_none(
            _itemprop_value(soup, "latitude"),
            _itemprop_value(soup, "longitude"),
        )
        if coordinate:
            logger.debug(f"Found coordinates in microdata: {coordinate}")
            return coordinate

        for lat_pattern, lng_pattern in JSON_KEY_PAIRS:
            lat_match = lat_pattern.search(body)
            lng_match = lng_pattern.search(body)
            if not (lat_match and lng_match):
                continue
            coordinate = _pair_or_none(lat_match.group(1), lng_match.group(1))
            if coordinate:
                logger.debug(f"Found coordinates in embedded JSON: {coordinate}")
                return coordinate

        return None


def _meta_content(soup: BeautifulSoup, attribute: str, value: str) -> Optional[str]:
    tag = soup.find("meta", attrs={attribute: value})
    if tag is None:
        return None
    content = tag.get("content")
    return content.strip() if isinstance(content, str) else None


def _itemprop_value(soup: BeautifulSoup, name: str) -> Optional[str]:
    tag = soup.find(attrs={"itemprop": name})
    if tag is None:
        return None
    content = tag.get("content")
    if isinstance(content, str):
        return content.strip()
    text = tag.get_text(strip=True)
    return text or None


def _pair_or_none(latitude: Optional[str], longitude: Optional[str]) -> Optional[Coordinate]:
    """緯度・経度の両方が揃い、範囲内の場合のみ座標を返す"""
    if latitude is None or longitude is None:
        return None
    try:
        return Coordinate.parse(latitude, longitude)
    except InvalidCandidate:
        return None
