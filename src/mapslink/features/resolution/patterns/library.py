"""座標パターンライブラリ"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import urlsplit

from ....shared.exceptions.errors import InvalidCandidate
from ....shared.logging.config import get_logger
from ..domain.models import Coordinate
from .rules import DEFAULT_RULES, DEGREE_MARKER, PatternRule

logger = get_logger(__name__)

AMBIGUOUS_PATH_MARKERS: tuple[str, ...] = ("/place/", "/dir/")


def is_ambiguous_url(url: str) -> bool:
    """
    場所ページ・経路ページのURLか

    /place/ や /dir/ のパスには目的地と無関係な数値（電話番号、ズーム値、
    出発地の座標など）が含まれるため、汎用ペアは信頼できない
    """
    if not url:
        return False

    try:
        path = urlsplit(url).path
    except ValueError:
        path = url

    return any(marker in path for marker in AMBIGUOUS_PATH_MARKERS)


@dataclass(frozen=True)
class PatternMatch:
    """パターンの一致結果"""

    rule: PatternRule
    coordinate: Coordinate


class PatternLibrary:
    """
    優先度順の座標パターン集

    各ルールは1回だけ検索する（最初の一致のみ）。値が範囲外の場合は
    同じルールの次の出現ではなく、次のルールへ進む。
    """

    def __init__(self, rules: Optional[Iterable[PatternRule]] = None) -> None:
        """
        Args:
            rules: ルール一覧（Noneの場合は DEFAULT_RULES）
        """
        self.rules: tuple[PatternRule, ...] = tuple(
            sorted(rules if rules is not None else DEFAULT_RULES, key=lambda r: r.priority)
        )

    def applicable_rules(
        self,
        text: str,
        last_resort: bool = False,
        ambiguous: Optional[bool] = None,
    ) -> list[PatternRule]:
        """
        テキストに対して試すルールを優先度順に取得

        Args:
            text: 対象テキスト
            last_resort: 最終手段モードか
            ambiguous: 曖昧なURLか（Noneの場合はtextから判定）

        Returns:
            list[PatternRule]: 試すルールのリスト
        """
        if ambiguous is None:
            ambiguous = is_ambiguous_url(text)
        has_degree_marker = bool(DEGREE_MARKER.search(text))

        return [
            rule
            for rule in self.rules
            if rule.applies(last_resort, ambiguous, has_degree_marker)
        ]

    def match_rule(
        self,
        text: str,
        last_resort: bool = False,
        ambiguous: Optional[bool] = None,
    ) -> Optional[PatternMatch]:
        """
        最初に有効な座標を返したルールとその座標を取得

        Args:
            text: 対象テキスト（URLまたはHTML本文）
            last_resort: 最終手段モードか
            ambiguous: 曖昧なURLか（Noneの場合はtextから判定）

        Returns:
            Optional[PatternMatch]: 一致結果（見つからない場合はNone）
        """
        if not text:
            return None

        for rule in self.applicable_rules(text, last_resort, ambiguous):
            match = rule.regex.search(text)
            if not match:
                continue

            try:
                coordinate = self._to_coordinate(rule, match)
            except InvalidCandidate as e:
                logger.debug(f"Rejected candidate from {rule.name}: {e}")
                continue

            logger.debug(f"Matched {rule.name}: {coordinate}")
            return PatternMatch(rule=rule, coordinate=coordinate)

        return None

    def match(
        self,
        text: str,
        last_resort: bool = False,
        ambiguous: Optional[bool] = None,
    ) -> Optional[Coordinate]:
        """最初に有効な座標を取得（見つからない場合はNone）"""
        result = self.match_rule(text, last_resort=last_resort, ambiguous=ambiguous)
        return result.coordinate if result else None

    @staticmethod
    def _to_coordinate(rule: PatternRule, match: re.Match) -> Coordinate:
        """
        一致結果を座標に変換

        Raises:
            InvalidCandidate: 数値変換できない、または範囲外の場合
        """
        if rule.degree_mapping is not None:
            latitude = _degrees_to_decimal(match, rule.degree_mapping.latitude)
            longitude = _degrees_to_decimal(match, rule.degree_mapping.longitude)
            return Coordinate(latitude=latitude, longitude=longitude)

        lat_group, lng_group = rule.group_mapping
        return Coordinate.parse(match.group(lat_group), match.group(lng_group))


def _degrees_to_decimal(match: re.Match, groups: tuple[int, int, int, int]) -> float:
    """度分秒を10進度に変換（南緯・西経は負）"""
    degree_group, minute_group, second_group, direction_group = groups
    try:
        value = (
            float(match.group(degree_group))
            + float(match.group(minute_group)) / 60
            + float(match.group(second_group)) / 3600
        )
    except ValueError as e:
        raise InvalidCandidate(f"Invalid degree value: {match.group()}") from e

    if match.group(direction_group).upper() in ("S", "W"):
        value = -value
    return value
