"""リダイレクト解決のテスト"""

import threading

import pytest
import requests

from mapslink.features.resolution.providers.redirect_resolver import (
    ClientProfile,
    RedirectResolver,
    looks_like_markup,
)
from mapslink.shared.exceptions.errors import ResolutionCancelled

SHORT_URL = "https://maps.app.goo.gl/abc123"
FINAL_URL = "https://www.google.com/maps/place/Big+Ben/data=!3d51.5007!4d-0.1246"


def test_resolve_follows_redirects_with_head(routes, adapter, http_client) -> None:
    """HEADでリダイレクトを追従"""
    routes[SHORT_URL] = (302, {"Location": FINAL_URL}, "")
    routes[FINAL_URL] = (200, {}, "")

    resolver = RedirectResolver(http_client)

    assert resolver.resolve(SHORT_URL) == FINAL_URL
    assert [r.method for r in adapter.requests] == ["HEAD", "HEAD"]


def test_resolve_falls_back_to_get_when_head_rejected(routes, adapter, http_client) -> None:
    """HEADが405ならGETで再試行"""
    routes[("HEAD", SHORT_URL)] = (405, {}, "")
    routes[("GET", SHORT_URL)] = (301, {"Location": FINAL_URL}, "")
    routes[FINAL_URL] = (200, {}, "<html></html>")

    resolver = RedirectResolver(http_client)

    assert resolver.resolve(SHORT_URL) == FINAL_URL
    assert [r.method for r in adapter.requests] == ["HEAD", "GET", "GET"]


def test_resolve_returns_original_on_network_failure(routes, http_client) -> None:
    """通信失敗時は入力URLのまま"""
    routes[SHORT_URL] = requests.ConnectTimeout("timed out")

    resolver = RedirectResolver(http_client)

    assert resolver.resolve(SHORT_URL) == SHORT_URL


def test_resolve_keeps_url_of_error_page(routes, http_client) -> None:
    """GETで最終ページがエラーでも、追従したURLは返す"""
    routes[("HEAD", SHORT_URL)] = requests.ConnectionError("reset")
    routes[("GET", SHORT_URL)] = (302, {"Location": FINAL_URL}, "")
    routes[FINAL_URL] = (404, {}, "not found")

    resolver = RedirectResolver(http_client)

    assert resolver.resolve(SHORT_URL) == FINAL_URL


def test_resolve_without_following(routes, adapter, http_client) -> None:
    """最初のLocationヘッダーだけを取得"""
    first_hop = "https://maps.google.com/maps?q=51.5007,-0.1246&ftid=0x0:0x1"
    routes[SHORT_URL] = (302, {"Location": first_hop}, "")

    resolver = RedirectResolver(http_client)

    assert resolver.resolve_without_following(SHORT_URL) == first_hop
    assert len(adapter.requests) == 1


def test_resolve_without_following_no_redirect(routes, http_client) -> None:
    """リダイレクトしない場合はNone"""
    routes[SHORT_URL] = (200, {}, "<html></html>")
    assert RedirectResolver(http_client).resolve_without_following(SHORT_URL) is None


def test_resolve_without_following_network_failure(routes, http_client) -> None:
    """通信失敗時はNone"""
    routes[SHORT_URL] = requests.ConnectionError("refused")
    assert RedirectResolver(http_client).resolve_without_following(SHORT_URL) is None


def test_fetch_readable_body_tries_profiles_in_order(routes, adapter, http_client) -> None:
    """読めない本文なら次のクライアントを試す"""
    responses = iter(
        [
            (200, {}, "\x1f\x8b\x08\x00binary"),
            (200, {}, "<!DOCTYPE html><html><title>Google Maps</title></html>"),
        ]
    )

    class SequenceRoutes(dict):
        def get(self, key, default=None):
            if key == SHORT_URL:
                return next(responses)
            return default

    adapter.routes = SequenceRoutes()
    profiles = (
        ClientProfile(name="desktop", user_agent="desktop-agent"),
        ClientProfile(name="cli", user_agent="curl/7.68.0"),
        ClientProfile(name="mobile", user_agent="mobile-agent"),
    )

    page = RedirectResolver(http_client, profiles=profiles).fetch_readable_body(SHORT_URL)

    assert page is not None
    assert page.profile.name == "cli"
    assert "Google Maps" in page.body
    user_agents = [r.headers["User-Agent"] for r in adapter.requests]
    assert user_agents == ["desktop-agent", "curl/7.68.0"]
    assert adapter.requests[0].headers["Accept-Encoding"] == "identity"


def test_fetch_readable_body_skips_errors(routes, http_client) -> None:
    """エラーステータス・通信失敗はすべて失敗ならNone"""
    routes[SHORT_URL] = (403, {}, "<html>blocked</html>")
    assert RedirectResolver(http_client).fetch_readable_body(SHORT_URL) is None


def test_fetch_readable_body_custom_predicate(routes, http_client) -> None:
    """判定関数を差し替えられる"""
    routes[SHORT_URL] = (200, {}, "<html>maps</html>")
    resolver = RedirectResolver(http_client, readable=lambda body: "coordinates" in body)
    assert resolver.fetch_readable_body(SHORT_URL) is None


def test_fetch_readable_body_cancelled(routes, http_client) -> None:
    """キャンセル済みなら送信せずに中断"""
    routes[SHORT_URL] = (200, {}, "<html></html>")
    cancel_event = threading.Event()
    cancel_event.set()

    with pytest.raises(ResolutionCancelled):
        RedirectResolver(http_client).fetch_readable_body(SHORT_URL, cancel_event=cancel_event)


@pytest.mark.parametrize(
    "body,expected",
    [
        ("<HTML><body></body></HTML>", True),
        ("window.GOOGLE_STATE = {}", True),
        ("redirecting to maps", True),
        ("\x1f\x8b\x08\x00\x00", False),
        ("", False),
    ],
)
def test_looks_like_markup(body: str, expected: bool) -> None:
    """本文が読めるかの簡易判定"""
    assert looks_like_markup(body) is expected
