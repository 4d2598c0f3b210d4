"""パターンライブラリのテスト"""

import pytest

from mapslink.features.resolution.domain.enums import PatternCategory
from mapslink.features.resolution.domain.models import Coordinate
from mapslink.features.resolution.patterns.library import PatternLibrary, is_ambiguous_url
from mapslink.features.resolution.patterns.rules import DEFAULT_RULES

library = PatternLibrary()


def test_rules_are_sorted_by_priority() -> None:
    """ルールは優先度順に並ぶ"""
    priorities = [rule.priority for rule in library.rules]
    assert priorities == sorted(priorities)
    assert library.rules[0].category == PatternCategory.DEGREE_MINUTE_SECOND


def test_last_resort_rules_come_last() -> None:
    """最終手段ルールは通常ルールより後"""
    categories = [rule.category for rule in library.rules]
    first_last_resort = categories.index(PatternCategory.LAST_RESORT)
    assert all(c == PatternCategory.LAST_RESORT for c in categories[first_last_resort:])
    assert all(rule.last_resort_only for rule in library.rules[first_last_resort:])


@pytest.mark.parametrize(
    "latitude,longitude",
    [
        (40.7128, -74.006),
        (-33.8688, 151.2093),
        (0.0, 0.0),
        (90.0, 180.0),
        (-90.0, -180.0),
        (35.681236, 139.767125),
        (1e-05, -2.5e-07),
    ],
)
def test_at_segment_round_trip(latitude: float, longitude: float) -> None:
    """@lat,lng は書式化した値をそのまま読み戻せる"""
    url = f"https://www.google.com/maps/@{latitude},{longitude},15z"
    assert library.match(url) == Coordinate(latitude, longitude)


def test_query_parameter() -> None:
    """q= パラメータ"""
    url = "https://maps.google.com/maps?q=40.7128,-74.0060"
    result = library.match_rule(url)
    assert result is not None
    assert result.rule.name == "query_q"
    assert result.coordinate == Coordinate(40.7128, -74.0060)


@pytest.mark.parametrize("parameter", ["ll", "center", "sll", "destination", "query"])
def test_named_query_parameters(parameter: str) -> None:
    """その他の名前付きパラメータ"""
    url = f"https://www.google.com/maps?foo=1&{parameter}=48.1,11.5"
    assert library.match(url) == Coordinate(48.1, 11.5)


def test_protocol_buffer_beats_at_segment() -> None:
    """!3d!4d（ピン）は @（表示中心）より優先"""
    url = (
        "https://www.google.com/maps/place/London/@51.5,-0.12,15z/"
        "data=!4m5!3m4!1s0x0:0x0!8m2!3d51.5074!4d-0.1278"
    )
    result = library.match_rule(url)
    assert result is not None
    assert result.rule.category == PatternCategory.PROTOCOL_BUFFER
    assert result.coordinate == Coordinate(51.5074, -0.1278)


def test_embed_pattern_swaps_longitude_and_latitude() -> None:
    """埋め込みURLの !2d<lng>!3d<lat>"""
    url = "https://www.google.com/maps/embed?pb=!1m18!1m12!1m3!1d3240.8!2d139.7671!3d35.6812!2m3"
    assert library.match(url) == Coordinate(35.6812, 139.7671)


@pytest.mark.parametrize(
    "text,expected",
    [
        (
            "https://www.google.com/maps/place/24%C2%B038'55.8%22N+46%C2%B039'31.6%22E/",
            (24 + 38 / 60 + 55.8 / 3600, 46 + 39 / 60 + 31.6 / 3600),
        ),
        (
            "https://www.google.com/maps/place/33%C2%B051'54.5%22S+151%C2%B012'34.2%22W/",
            (-(33 + 51 / 60 + 54.5 / 3600), -(151 + 12 / 60 + 34.2 / 3600)),
        ),
        (
            "https://www.google.com/maps/place/40°26'46.0\"N 79°58'56.0\"W",
            (40 + 26 / 60 + 46 / 3600, -(79 + 58 / 60 + 56 / 3600)),
        ),
    ],
)
def test_degree_minute_second(text: str, expected: tuple[float, float]) -> None:
    """度分秒の変換と方角による符号"""
    coordinate = library.match(text)
    assert coordinate is not None
    assert coordinate.latitude == pytest.approx(expected[0])
    assert coordinate.longitude == pytest.approx(expected[1])


def test_degree_minute_second_signs() -> None:
    """S/W は負、N/E は非負"""
    north_east = library.match("24%C2%B038'55.8%22N+46%C2%B039'31.6%22E")
    south_west = library.match("24%C2%B038'55.8%22S+46%C2%B039'31.6%22W")
    assert north_east is not None and south_west is not None
    assert north_east.latitude >= 0 and north_east.longitude >= 0
    assert south_west.latitude < 0 and south_west.longitude < 0


def test_degree_minute_second_has_top_priority_on_place_url() -> None:
    """度分秒は /place/ でも抑止されず、@ より先に試される"""
    url = (
        "https://www.google.com/maps/place/24%C2%B038'55.8%22N+46%C2%B039'31.6%22E/"
        "@24.6504059,46.6590325,15.5z"
    )
    result = library.match_rule(url)
    assert result is not None
    assert result.rule.category == PatternCategory.DEGREE_MINUTE_SECOND


def test_place_url_keeps_at_segment() -> None:
    """/place/ でも @ カテゴリは有効"""
    url = "https://www.google.com/maps/place/Eiffel+Tower/@48.8584,2.2945,17z"
    assert library.match(url) == Coordinate(48.8584, 2.2945)


def test_place_url_suppresses_generic_pair_until_last_resort() -> None:
    """/place/ の無関係な数値ペアは通常モードでは使わない"""
    url = "https://www.google.com/maps/place/Cafe+Roma/tel=12.5,3.25"
    assert library.match(url) is None
    assert library.match(url, last_resort=True) == Coordinate(12.5, 3.25)


def test_dir_url_suppresses_query_parameter_until_last_resort() -> None:
    """/dir/ ではクエリパラメータも保留"""
    url = "https://www.google.com/maps/dir/Home/Work?sll=35.1,139.2"
    assert library.match(url) is None
    assert library.match(url, last_resort=True) == Coordinate(35.1, 139.2)


def test_generic_pair_when_nothing_else_matches() -> None:
    """上位カテゴリがなければ汎用ペア"""
    url = "https://www.google.com/maps/search/35.6812,+139.7671"
    result = library.match_rule(url)
    assert result is not None
    assert result.rule.category == PatternCategory.GENERIC_PAIR
    assert result.coordinate == Coordinate(35.6812, 139.7671)


def test_degree_marker_suppresses_generic_pair() -> None:
    """度分秒の記号があり度分秒として解釈できない場合、汎用ペアは使わない"""
    text = "https://www.google.com/maps/search/12%C2%B0 note 55.8,31.6"
    assert library.match(text) is None
    assert library.match(text, last_resort=True) == Coordinate(55.8, 31.6)


def test_out_of_range_candidate_moves_to_next_rule() -> None:
    """範囲外の候補は捨てて次のルールへ"""
    url = "https://www.google.com/maps/@95.0,10.0,15z?ll=45.0,10.0"
    result = library.match_rule(url)
    assert result is not None
    assert result.rule.name == "query_ll"
    assert result.coordinate == Coordinate(45.0, 10.0)


def test_out_of_range_does_not_retry_same_rule() -> None:
    """同じルールの2番目の出現は試さない"""
    url = "https://www.google.com/maps/@95.0,10.0/@45.0,10.0"
    assert library.match(url) is None


def test_last_resort_patterns_disabled_by_default() -> None:
    """最終手段パターンは通常モードでは使わない"""
    text = 'window.state=["35.658581","139.745433"]'
    assert library.match(text) is None
    assert library.match(text, last_resort=True) == Coordinate(35.658581, 139.745433)


def test_applicable_rules_policy() -> None:
    """曖昧なURLでは (c)(e) と最終手段ルールが除外される"""
    ambiguous = "https://www.google.com/maps/place/Foo"
    names = {rule.name for rule in library.applicable_rules(ambiguous)}
    assert "at_segment" in names
    assert "pb_3d4d" in names
    assert "degree_minute_second" in names
    assert "generic_pair" not in names
    assert "query_q" not in names
    assert "bracket_pair" not in names

    all_names = {rule.name for rule in library.applicable_rules(ambiguous, last_resort=True)}
    assert all_names == {rule.name for rule in DEFAULT_RULES}


def test_explicit_ambiguity_overrides_detection() -> None:
    """ambiguous を明示した場合はテキストから判定しない"""
    text = "<div>35.6812,139.7671</div>"
    assert library.match(text, ambiguous=True) is None
    assert library.match(text, ambiguous=False) == Coordinate(35.6812, 139.7671)


def test_empty_text() -> None:
    assert library.match("") is None


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.google.com/maps/place/Eiffel+Tower/@48.8584,2.2945,17z", True),
        ("https://www.google.com/maps/dir/Home/Work", True),
        ("https://maps.google.com/maps?q=40.7128,-74.0060", False),
        ("https://www.google.com/maps/search/?api=1&query=/place/", False),
    ],
)
def test_is_ambiguous_url(url: str, expected: bool) -> None:
    """曖昧さの判定はパスのみを見る"""
    assert is_ambiguous_url(url) is expected
