"""場所識別子（CID / Place ID）の抽出"""

import re
from typing import Optional

from ....shared.logging.config import get_logger
from ..domain.models import Cid, PlaceId, PlaceIdentifier

logger = get_logger(__name__)

# 16進CID: ftid=0x...:0x<cid> / data=...!1s0x...:0x<cid>
HEX_CID_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"ftid.*:(?:0x)?(\w+)"),
    re.compile(r"/data=.*0x(\w+)"),
)

HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

PLACE_ID_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"place_id:([A-Za-z0-9_-]+)"),
    re.compile(r"[?&](?:query_)?place_id=([A-Za-z0-9_-]+)"),
    # place/<名前>/data=...!1s<token>（0x...:0x... 形式はCID側で扱う）
    re.compile(r"place/[^/]+/data=[^?#]*?!1s([A-Za-z0-9_-]+)(?![:A-Za-z0-9_-])"),
)

CID_PARAM_PATTERN = re.compile(r"[?&]cid=(\d+)")


class PlaceIdentifierExtractor:
    """URLから場所識別子を抽出"""

    def extract(self, url: str) -> Optional[PlaceIdentifier]:
        """
        識別子を優先順に探す

        1. cid= クエリパラメータ
        2. 16進CID（ftid / data=...0x）
        3. Place ID

        Args:
            url: 対象URL

        Returns:
            Optional[PlaceIdentifier]: 識別子（見つからない場合はNone）
        """
        if not url:
            return None

        cid = self.extract_cid_param(url) or self.extract_cid(url)
        if cid:
            logger.debug(f"Found CID: {cid}")
            return Cid(cid)

        place_id = self.extract_place_id(url)
        if place_id:
            logger.debug(f"Found place ID: {place_id}")
            return PlaceId(place_id)

        return None

    def extract_cid(self, url: str) -> Optional[str]:
        """
        16進表記のCIDを10進数の文字列に変換して取得

        不正な16進数の場合はNone（例外にしない）
        """
        for pattern in HEX_CID_PATTERNS:
            match = pattern.search(url)
            if not match:
                continue

            cid_hex = match.group(1)
            # int(x, 16) は "_" を許す
            if not HEX_DIGITS.fullmatch(cid_hex):
                logger.debug(f"Malformed hex CID: {cid_hex}")
                return None
            return str(int(cid_hex, 16))

        return None

    def extract_place_id(self, url: str) -> Optional[str]:
        """Place IDを取得"""
        for pattern in PLACE_ID_PATTERNS:
            match = pattern.search(url)
            if match and match.group(1):
                return match.group(1)
        return None

    def extract_cid_param(self, url: str) -> Optional[str]:
        """cid= クエリパラメータを取得"""
        match = CID_PARAM_PATTERN.search(url)
        return match.group(1) if match else None
