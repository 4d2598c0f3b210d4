"""HTTPクライアント（リトライ機能付き）"""

import threading
from typing import Any, Callable, Optional, TypeVar

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions.errors import NetworkFailure, ResolutionCancelled
from ..logging.config import get_logger
from ..utils.url import redact_credentials

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; MapsLink/1.0)"

# 送信中のキャンセル確認間隔（秒）
CANCEL_POLL_INTERVAL = 0.05

T = TypeVar("T")


class HTTPClient:
    """
    リトライ機能付きHTTPクライアント

    Features:
    - 自動リトライ（5xx、指数バックオフ）
    - 接続・読み込みタイムアウトの個別設定
    - リダイレクト追従の有無をリクエスト毎に指定
    - セッション管理（close()で進行中の接続も破棄）
    - キャンセル通知による送信中の中断
    """

    def __init__(
        self,
        connect_timeout: float = 10.0,
        read_timeout: float = 10.0,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
        status_forcelist: tuple[int, ...] = (500, 502, 503, 504),
        user_agent: Optional[str] = None,
    ):
        """
        Args:
            connect_timeout: 接続タイムアウト（秒）
            read_timeout: 読み込みタイムアウト（秒）
            max_retries: 最大リトライ回数
            backoff_factor: バックオフ係数
            status_forcelist: リトライ対象のステータスコード
            user_agent: デフォルトのUser-Agentヘッダー
        """
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.status_forcelist = status_forcelist
        self.user_agent = user_agent or DEFAULT_USER_AGENT

        self.session = self._create_session()

    @property
    def timeout(self) -> tuple[float, float]:
        """requestsに渡す(接続, 読み込み)タイムアウト"""
        return (self.connect_timeout, self.read_timeout)

    def _create_session(self) -> requests.Session:
        """セッションを作成"""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=self.status_forcelist,
            allowed_methods=["HEAD", "GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({"User-Agent": self.user_agent})

        return session

    def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        allow_redirects: bool = True,
        stream: bool = False,
        raise_for_status: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> requests.Response:
        """
        HTTPリクエストを送信

        ログと例外メッセージのURLはAPIキー等の値を伏せて出力する

        Args:
            method: HTTPメソッド（HEAD, GET）
            url: リクエストURL
            params: クエリパラメータ
            headers: 追加ヘッダー（User-Agentの上書きも可）
            allow_redirects: リダイレクトを追従するか
            stream: レスポンスボディを遅延読み込みするか
            raise_for_status: 4xx/5xxを例外にするか
            cancel_event: キャンセル通知（setされると応答を待たずに中断）

        Returns:
            レスポンスオブジェクト

        Raises:
            NetworkFailure: 通信失敗時、またはraise_for_status指定時のエラーステータス
            ResolutionCancelled: 送信前または送信中にキャンセルされた場合
        """
        safe_url = redact_credentials(url)

        def send() -> requests.Response:
            return self.session.request(
                method,
                url,
                params=params,
                headers=headers,
                timeout=self.timeout,
                allow_redirects=allow_redirects,
                stream=stream,
            )

        try:
            logger.debug(f"{method} request to {safe_url} (allow_redirects={allow_redirects})")
            if cancel_event is None:
                response = send()
            else:
                response = run_cancellable(
                    send, cancel_event, f"{method} {safe_url}", discard=lambda r: r.close()
                )

            if raise_for_status:
                response.raise_for_status()

            logger.debug(
                f"{method} request finished: {safe_url} -> {redact_credentials(response.url)} "
                f"(status={response.status_code})"
            )
            return response

        except requests.RequestException as e:
            reason = redact_credentials(str(e))
            logger.warning(f"{method} request failed: {safe_url} - {reason}")
            raise NetworkFailure(f"Failed to {method} {safe_url}: {reason}") from e

    def get(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        allow_redirects: bool = True,
        stream: bool = False,
        raise_for_status: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> requests.Response:
        """GETリクエスト"""
        return self.request(
            "GET",
            url,
            params=params,
            headers=headers,
            allow_redirects=allow_redirects,
            stream=stream,
            raise_for_status=raise_for_status,
            cancel_event=cancel_event,
        )

    def head(
        self,
        url: str,
        headers: Optional[dict[str, str]] = None,
        allow_redirects: bool = True,
        raise_for_status: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> requests.Response:
        """HEADリクエスト"""
        return self.request(
            "HEAD",
            url,
            headers=headers,
            allow_redirects=allow_redirects,
            raise_for_status=raise_for_status,
            cancel_event=cancel_event,
        )

    def close(self) -> None:
        """セッションをクローズ"""
        if self.session:
            self.session.close()
            logger.debug("HTTP session closed")

    def __enter__(self) -> "HTTPClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def run_cancellable(
    call: Callable[[], T],
    cancel_event: threading.Event,
    description: str,
    discard: Optional[Callable[[T], None]] = None,
) -> T:
    """
    別スレッドで呼び出し、完了とキャンセルのどちらか早い方を待つ

    キャンセル時は結果を待たずに ResolutionCancelled を送出する。
    遅れて届いた結果は discard に渡して破棄する（応答なら接続ごとクローズ）

    Args:
        call: 通信を伴う呼び出し
        cancel_event: キャンセル通知
        description: ログ用の説明
        discard: キャンセル後に届いた結果の後始末

    Returns:
        call の戻り値

    Raises:
        ResolutionCancelled: 完了前にキャンセルされた場合
    """
    if cancel_event.is_set():
        raise ResolutionCancelled(f"Cancelled before {description}")

    done = threading.Event()
    lock = threading.Lock()
    outcome: dict[str, Any] = {}

    def worker() -> None:
        try:
            result = call()
        except Exception as e:
            outcome["error"] = e
        else:
            with lock:
                if outcome.get("abandoned"):
                    if discard is not None:
                        discard(result)
                else:
                    outcome["result"] = result
        finally:
            done.set()

    threading.Thread(target=worker, name="mapslink-cancellable", daemon=True).start()

    while not done.wait(CANCEL_POLL_INTERVAL):
        if cancel_event.is_set():
            with lock:
                outcome["abandoned"] = True
                late = outcome.pop("result", None)
            if late is not None and discard is not None:
                discard(late)
            logger.info(f"Cancelled in flight: {description}")
            raise ResolutionCancelled(f"Cancelled during {description}")

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]
