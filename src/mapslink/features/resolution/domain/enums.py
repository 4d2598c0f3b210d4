"""座標解決機能のEnum定義"""
from enum import Enum


class PatternCategory(str, Enum):
    """座標パターンのカテゴリ"""

    DEGREE_MINUTE_SECOND = "degree_minute_second"  # 24°38'55.8"N 形式
    PROTOCOL_BUFFER = "protocol_buffer"  # !3d<lat>!4d<lng> 形式
    AT_SEGMENT = "at_segment"  # /@lat,lng 形式
    QUERY_PARAMETER = "query_parameter"  # ?q=lat,lng 等
    GENERIC_PAIR = "generic_pair"  # 任意の lat,lng
    LAST_RESORT = "last_resort"  # 誤検出が多いため最終手段のみ


class ResolutionStage(str, Enum):
    """座標解決パイプラインのステージ（実行順）"""

    RESOLVE = "resolve"  # リダイレクト解決
    FAST_DIRECT = "fast_direct"  # 正規URLへの直接抽出
    AMBIGUOUS_GUARD = "ambiguous_guard"  # /place/ /dir/ の判定
    SHORT_LINK_PROBE = "short_link_probe"  # 短縮URLのヘッダー・本文調査
    IDENTIFIER_FALLBACK = "identifier_fallback"  # CID / place_id からPlaces API
    EXHAUSTIVE = "exhaustive"  # 最終手段パターンを含む全探索


class PlaceIdentifierKind(str, Enum):
    """場所識別子の種類"""

    CID = "cid"
    PLACE_ID = "place_id"
