"""URL処理ユーティリティのテスト"""

import pytest

from mapslink.shared.utils.url import (
    DEFAULT_SHORT_LINK_HOSTS,
    extract_first_url,
    get_hostname,
    host_matches,
    is_supported_maps_url,
    redact_credentials,
)


def test_get_hostname() -> None:
    assert get_hostname("https://Maps.Google.COM/maps?q=1,2") == "maps.google.com"
    assert get_hostname("maps.google.com/maps") == "maps.google.com"
    assert get_hostname("") == ""


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://www.google.com/maps/@35.0,139.0,15z", True),
        ("https://maps.google.co.jp/maps?q=35.0,139.0", True),
        ("https://google.de/maps", True),
        ("https://maps.app.goo.gl/abc123", True),
        ("https://goo.gl/maps/abc", True),
        ("https://g.page/some-shop", True),
        ("https://g.co/kgs/abc", True),
        ("https://example.com/maps?q=35.0,139.0", False),
        ("https://notgoogle.com/maps", False),
        ("https://goo.gl.example.com/", False),
        ("", False),
        ("   ", False),
        (None, False),
    ],
)
def test_is_supported_maps_url(url, expected: bool) -> None:
    """地図サービスのホストのみ受け付ける"""
    assert is_supported_maps_url(url) is expected


def test_is_supported_maps_url_length_limit() -> None:
    """長すぎるURLは対象外"""
    url = "https://www.google.com/maps/search/" + "a" * 100
    assert is_supported_maps_url(url, max_length=200)
    assert not is_supported_maps_url(url, max_length=50)


def test_host_matches_short_links() -> None:
    """短縮URLのホスト判定（サブドメインを含む）"""
    assert host_matches("https://maps.app.goo.gl/abc", DEFAULT_SHORT_LINK_HOSTS)
    assert not host_matches("https://www.google.com/maps", DEFAULT_SHORT_LINK_HOSTS)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Tokyo Tower\nhttps://maps.app.goo.gl/abc123", "https://maps.app.goo.gl/abc123"),
        ("見てね: https://goo.gl/maps/xyz.", "https://goo.gl/maps/xyz"),
        ("(https://www.google.com/maps/@35.0,139.0,15z)", "https://www.google.com/maps/@35.0,139.0,15z"),
        ("no link here", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_first_url(text, expected) -> None:
    """共有テキストからURLを取り出す"""
    assert extract_first_url(text) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        (
            "https://maps.googleapis.com/maps/api/place/details/json?cid=42&key=AIzaSecret",
            "https://maps.googleapis.com/maps/api/place/details/json?cid=42&key=REDACTED",
        ),
        (
            "403 Client Error: None for url: https://example.com/x?KEY=abc&signature=xyz#top",
            "403 Client Error: None for url: https://example.com/x?KEY=REDACTED&signature=REDACTED#top",
        ),
        ("https://maps.google.com/?cid=42&monkey=1", "https://maps.google.com/?cid=42&monkey=1"),
        (None, ""),
    ],
)
def test_redact_credentials(text, expected) -> None:
    """認証情報の値だけを伏せる"""
    assert redact_credentials(text) == expected
