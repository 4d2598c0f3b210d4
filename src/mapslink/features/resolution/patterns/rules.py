"""
座標パターンのルール定義

優先度（priorityが小さいほど先に試す）とカテゴリごとの適用条件を
データとして宣言する。マッチング処理は library.PatternLibrary が行う。
"""

import re
from dataclasses import dataclass
from typing import Optional, Pattern

from ..domain.enums import PatternCategory

# 数値表現
# 構造的に特徴のある位置（!3d, @, ll= 等）では整数・指数表記も許容する
NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"
# 汎用ペアでは小数点を必須にして誤検出を抑える
DECIMAL = r"[-+]?\d{1,3}\.\d+"
# カンマ区切り（URLエンコード・空白付きも許容）
SEPARATOR = r"\s*(?:,|%2C)(?:\s|\+|%20)*"

_DEGREE = r"(?:%C2%B0|°)"
_MINUTE = r"(?:'|%27|′)"
_SECOND = r"(?:%22|\"|″)"
_DMS_GAP = r"(?:\+|%20|\s|,|%2C)*"

# 度分秒の記号が含まれるURLでは秒の小数が汎用ペアに誤マッチしやすい
DEGREE_MARKER = re.compile(r"%C2%B0|°", re.IGNORECASE)


@dataclass(frozen=True)
class DegreeGroupMapping:
    """度分秒パターンのグループ番号（度, 分, 秒, 方角）"""

    latitude: tuple[int, int, int, int] = (1, 2, 3, 4)
    longitude: tuple[int, int, int, int] = (5, 6, 7, 8)


@dataclass(frozen=True)
class PatternRule:
    """
    座標パターンのルール

    Attributes:
        name: ルール名（ログ・テスト用）
        category: パターンカテゴリ
        regex: コンパイル済み正規表現
        priority: 優先度（小さいほど先に試す）
        group_mapping: 10進ペアの (緯度グループ, 経度グループ)
        degree_mapping: 度分秒ペアのグループ対応（10進ペアの場合はNone）
        last_resort_only: 最終手段モードでのみ使うか
        suppressed_on_ambiguous: /place/ /dir/ のURLで通常時に抑止するか
        suppressed_by_degree_marker: 度分秒記号を含むテキストで通常時に抑止するか
    """

    name: str
    category: PatternCategory
    regex: Pattern[str]
    priority: int
    group_mapping: tuple[int, int] = (1, 2)
    degree_mapping: Optional[DegreeGroupMapping] = None
    last_resort_only: bool = False
    suppressed_on_ambiguous: bool = False
    suppressed_by_degree_marker: bool = False

    def applies(self, last_resort: bool, ambiguous: bool, has_degree_marker: bool) -> bool:
        """
        このルールを試すべきか

        Args:
            last_resort: 最終手段モードか
            ambiguous: /place/ /dir/ を含むURLか
            has_degree_marker: 度分秒記号を含むか

        Returns:
            bool: 試すべき場合True
        """
        if last_resort:
            return True
        if self.last_resort_only:
            return False
        if ambiguous and self.suppressed_on_ambiguous:
            return False
        if has_degree_marker and self.suppressed_by_degree_marker:
            return False
        return True


def _rule(
    name: str,
    category: PatternCategory,
    pattern: str,
    priority: int,
    flags: int = re.IGNORECASE,
    **kwargs: object,
) -> PatternRule:
    return PatternRule(
        name=name,
        category=category,
        regex=re.compile(pattern, flags),
        priority=priority,
        **kwargs,  # type: ignore[arg-type]
    )


def _query_rule(parameter: str, priority: int) -> PatternRule:
    return _rule(
        f"query_{parameter}",
        PatternCategory.QUERY_PARAMETER,
        rf"[?&]{parameter}=({NUMBER}){SEPARATOR}({NUMBER})",
        priority,
        suppressed_on_ambiguous=True,
    )


DEFAULT_RULES: tuple[PatternRule, ...] = (
    # (d) 度分秒: 構造的に特徴があるため最優先、/place/ でも抑止しない
    _rule(
        "degree_minute_second",
        PatternCategory.DEGREE_MINUTE_SECOND,
        rf"(\d{{1,3}}){_DEGREE}(\d{{1,2}}){_MINUTE}(\d{{1,2}}(?:\.\d+)?){_SECOND}([NS])"
        rf"{_DMS_GAP}"
        rf"(\d{{1,3}}){_DEGREE}(\d{{1,2}}){_MINUTE}(\d{{1,2}}(?:\.\d+)?){_SECOND}([EW])",
        10,
        degree_mapping=DegreeGroupMapping(),
    ),
    # (a) Protocol Buffer形式: ピンの実座標
    _rule("pb_8m2", PatternCategory.PROTOCOL_BUFFER, rf"8m2!3d({NUMBER})!4d({NUMBER})", 20),
    _rule("pb_3d4d", PatternCategory.PROTOCOL_BUFFER, rf"!3d({NUMBER})!4d({NUMBER})", 21),
    _rule(
        "pb_data_3d4d",
        PatternCategory.PROTOCOL_BUFFER,
        rf"data=[^\s?#]*?!3d({NUMBER})[^\s?#]*?!4d({NUMBER})",
        22,
    ),
    # 埋め込みURL（pb=...!2d<lng>!3d<lat>）は経度が先
    _rule(
        "pb_embed_2d3d",
        PatternCategory.PROTOCOL_BUFFER,
        rf"!2d({NUMBER})!3d({NUMBER})",
        23,
        group_mapping=(2, 1),
    ),
    # (b) @lat,lng: 表示中心だが /place/ URLでも信頼できる
    _rule("at_segment", PatternCategory.AT_SEGMENT, rf"@({NUMBER}),({NUMBER})", 30),
    _rule("at_segment_encoded", PatternCategory.AT_SEGMENT, rf"%40({NUMBER})%2C({NUMBER})", 31),
    # (c) クエリパラメータ
    _query_rule("ll", 40),
    _query_rule("q", 41),
    _query_rule("center", 42),
    _query_rule("sll", 43),
    _query_rule("destination", 44),
    _query_rule("query", 45),
    # (e) 汎用ペア: 上位カテゴリがすべて不一致の場合のみ
    _rule(
        "generic_pair",
        PatternCategory.GENERIC_PAIR,
        rf"(?<![\d.])({DECIMAL}){SEPARATOR}({DECIMAL})(?![\d.])",
        50,
        suppressed_on_ambiguous=True,
        suppressed_by_degree_marker=True,
    ),
    # (f) 最終手段: 数値の並びに誤マッチしやすいため通常は使わない
    _rule(
        "json_string_array",
        PatternCategory.LAST_RESORT,
        rf"\[\s*\"({DECIMAL})\"\s*,\s*\"({DECIMAL})\"\s*\]",
        90,
        last_resort_only=True,
    ),
    _rule(
        "bracket_pair",
        PatternCategory.LAST_RESORT,
        rf"[\[(]\s*({DECIMAL})[,\s]+({DECIMAL})\s*[\])]",
        91,
        last_resort_only=True,
    ),
    _rule(
        "quoted_pair",
        PatternCategory.LAST_RESORT,
        rf"\"({DECIMAL}),\s*({DECIMAL})\"",
        92,
        last_resort_only=True,
    ),
    _rule(
        "high_precision_pair",
        PatternCategory.LAST_RESORT,
        r"(?<![\d.])([-+]?\d{1,3}\.\d{6,8})[,\s]+([-+]?\d{1,3}\.\d{6,8})(?![\d])",
        93,
        last_resort_only=True,
    ),
    _rule(
        "medium_precision_pair",
        PatternCategory.LAST_RESORT,
        r"(?<![\d.])([-+]?\d{1,3}\.\d{4,7})[,\s]+([-+]?\d{1,3}\.\d{4,7})(?![\d])",
        94,
        last_resort_only=True,
    ),
)
