"""リダイレクト解決（短縮URL・トラッキングURLから最終URLを得る）"""

import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ....shared.exceptions.errors import NetworkFailure, ResolutionCancelled
from ....shared.http.client import HTTPClient
from ....shared.logging.config import get_logger

logger = get_logger(__name__)

# HEADを拒否されたとみなすステータス（これ以上はGETで再試行）
HEAD_REJECTED_STATUS = 400

READABLE_KEYWORDS: tuple[str, ...] = ("html", "google", "maps")


@dataclass(frozen=True)
class ClientProfile:
    """疑似クライアント（User-Agent）の定義"""

    name: str
    user_agent: str


DEFAULT_CLIENT_PROFILES: tuple[ClientProfile, ...] = (
    ClientProfile(
        name="desktop",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
        ),
    ),
    ClientProfile(name="cli", user_agent="curl/7.68.0"),
    ClientProfile(
        name="mobile",
        user_agent=(
            "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
        ),
    ),
)

# 圧縮・バイナリを避けるため identity を要求する
BODY_REQUEST_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "identity",
    "Cache-Control": "no-cache",
}


def looks_like_markup(body: str) -> bool:
    """
    本文が読めるテキスト（HTML等）らしいか

    圧縮されたバイナリやボット判定ページを除外するための簡易判定
    """
    if not body:
        return False
    lowered = body.lower()
    return any(keyword in lowered for keyword in READABLE_KEYWORDS)


@dataclass(frozen=True)
class FetchedPage:
    """本文取得の結果"""

    final_url: str
    body: str
    status_code: int
    profile: ClientProfile


class RedirectResolver:
    """リダイレクト解決"""

    def __init__(
        self,
        http_client: HTTPClient,
        profiles: Sequence[ClientProfile] = DEFAULT_CLIENT_PROFILES,
        readable: Callable[[str], bool] = looks_like_markup,
    ) -> None:
        """
        Args:
            http_client: HTTPクライアント
            profiles: 本文取得で順に試す疑似クライアント
            readable: 本文が読めるかを判定する関数
        """
        self.http_client = http_client
        self.profiles = tuple(profiles)
        self.readable = readable

    def resolve(self, url: str, cancel_event: Optional[threading.Event] = None) -> str:
        """
        リダイレクトを追従して最終URLを取得

        HEADを優先し、拒否された場合はGET（本文は読まない）で再試行する。
        通信に失敗した場合は入力URLをそのまま返す（例外にしない）。

        Args:
            url: 入力URL
            cancel_event: キャンセル通知

        Returns:
            str: 最終URL

        Raises:
            ResolutionCancelled: キャンセルされた場合
        """
        try:
            response = self.http_client.head(
                url, allow_redirects=True, raise_for_status=False, cancel_event=cancel_event
            )
            if response.status_code < HEAD_REJECTED_STATUS:
                logger.debug(f"Resolved by HEAD: {url} -> {response.url}")
                return response.url
            logger.debug(f"HEAD rejected with status {response.status_code}, retrying GET: {url}")
        except NetworkFailure as e:
            logger.debug(f"HEAD failed, retrying GET: {url} - {e}")

        try:
            response = self.http_client.get(
                url,
                allow_redirects=True,
                stream=True,
                raise_for_status=False,
                cancel_event=cancel_event,
            )
            try:
                logger.debug(f"Resolved by GET: {url} -> {response.url}")
                return response.url
            finally:
                response.close()
        except NetworkFailure as e:
            logger.warning(f"Failed to resolve redirects, using original URL: {url} - {e}")
            return url

    def resolve_without_following(
        self,
        url: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[str]:
        """
        リダイレクトを追従せずに最初のLocationヘッダーを取得

        最終ページの本文が読めない場合でも、最初のリダイレクト先のURLに
        座標が含まれていることがある

        Args:
            url: 入力URL
            cancel_event: キャンセル通知

        Returns:
            Optional[str]: Locationヘッダーの値（なければNone）
        """
        headers = {"User-Agent": self.profiles[0].user_agent} if self.profiles else None
        try:
            response = self.http_client.get(
                url,
                headers=headers,
                allow_redirects=False,
                stream=True,
                raise_for_status=False,
                cancel_event=cancel_event,
            )
        except NetworkFailure as e:
            logger.warning(f"Failed to read redirect header: {url} - {e}")
            return None

        try:
            location = response.headers.get("Location")
            logger.debug(f"First hop: {url} (status={response.status_code}) -> {location}")
            return location
        finally:
            response.close()

    def fetch_readable_body(
        self,
        url: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[FetchedPage]:
        """
        疑似クライアントを順に試し、読める本文を返した最初の結果を取得

        Args:
            url: 入力URL
            cancel_event: キャンセル通知

        Returns:
            Optional[FetchedPage]: 取得結果（すべて失敗した場合はNone）

        Raises:
            ResolutionCancelled: キャンセルされた場合
        """
        for profile in self.profiles:
            if cancel_event is not None and cancel_event.is_set():
                raise ResolutionCancelled(f"Cancelled while fetching {url}")

            headers = {"User-Agent": profile.user_agent, **BODY_REQUEST_HEADERS}
            try:
                response = self.http_client.get(
                    url,
                    headers=headers,
                    allow_redirects=True,
                    raise_for_status=False,
                    cancel_event=cancel_event,
                )
            except NetworkFailure as e:
                logger.warning(f"Failed with client profile {profile.name}: {e}")
                continue

            if not response.ok:
                logger.debug(
                    f"Client profile {profile.name} got status {response.status_code}"
                )
                continue

            body = response.text or ""
            if not self.readable(body):
                logger.warning(
                    f"Response body appears to be binary or unreadable with {profile.name}"
                )
                continue

            logger.debug(
                f"Readable body with {profile.name}: {response.url} ({len(body)} chars)"
            )
            return FetchedPage(
                final_url=response.url,
                body=body,
                status_code=response.status_code,
                profile=profile,
            )

        return None
