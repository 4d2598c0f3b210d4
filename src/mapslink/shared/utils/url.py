"""URL処理ユーティリティ"""

import re
from typing import Iterable, Optional
from urllib.parse import urlsplit

# 末尾が"."のエントリはラベル前方一致（"google." は google.com / google.co.jp 等）
DEFAULT_SUPPORTED_HOSTS: tuple[str, ...] = ("google.", "goo.gl", "g.page", "g.co")
DEFAULT_SHORT_LINK_HOSTS: tuple[str, ...] = ("goo.gl", "g.page", "g.co")

DEFAULT_MAX_URL_LENGTH = 2048

_URL_IN_TEXT = re.compile(r"https?://[^\s<>\"']+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?)]}"


def get_hostname(url: str) -> str:
    """
    URLからホスト名を小文字で取得

    スキームがない場合（maps.google.com/... 等）は https:// を補って解釈する
    """
    if not url:
        return ""

    target = url.strip()
    if "://" not in target:
        target = f"https://{target}"

    try:
        return (urlsplit(target).hostname or "").lower()
    except ValueError:
        return ""


def host_matches(url: str, hosts: Iterable[str]) -> bool:
    """
    URLのホストが指定ホストのいずれかに該当するか

    Args:
        url: 判定対象のURL
        hosts: ドメインのリスト（サブドメインも一致とみなす）

    Returns:
        bool: 該当する場合True
    """
    hostname = get_hostname(url)
    if not hostname:
        return False

    for host in hosts:
        host = host.strip().lower()
        if not host:
            continue
        if host.endswith("."):
            if f".{host}" in f".{hostname}":
                return True
        elif hostname == host or hostname.endswith(f".{host}"):
            return True

    return False


def is_supported_maps_url(
    url: Optional[str],
    max_length: int = DEFAULT_MAX_URL_LENGTH,
    hosts: Iterable[str] = DEFAULT_SUPPORTED_HOSTS,
) -> bool:
    """
    座標解決の対象になり得るURLかを簡易チェック

    - 空でない
    - 長さが上限以下
    - 地図サービスのホストを含む
    """
    if not url or not url.strip():
        return False

    if len(url) > max_length:
        return False

    return host_matches(url, hosts)


def extract_first_url(text: Optional[str]) -> Optional[str]:
    """
    共有テキストから最初のURLを抽出

    地図アプリの共有機能は「店名\\nhttps://maps.app.goo.gl/xxx」のような
    テキストを渡してくるため、その中からURL部分だけを取り出す

    Args:
        text: 共有されたテキスト

    Returns:
        Optional[str]: URL（見つからない場合はNone）
    """
    if not text:
        return None

    match = _URL_IN_TEXT.search(text)
    if not match:
        return None

    return match.group().rstrip(_TRAILING_PUNCTUATION)


# 認証情報を含むクエリパラメータ（ログ・例外メッセージでは値を伏せる）
SENSITIVE_QUERY_PARAMETERS: tuple[str, ...] = ("key", "signature", "client_secret", "token")

_SENSITIVE_QUERY_VALUE = re.compile(
    r"([?&](?:%s)=)[^&#\s'\"]*" % "|".join(SENSITIVE_QUERY_PARAMETERS),
    re.IGNORECASE,
)


def redact_credentials(text: Optional[str]) -> str:
    """
    URL（またはURLを含むメッセージ）からAPIキー等の値を伏せる

    例: ...details/json?cid=42&key=AIza... -> ...details/json?cid=42&key=REDACTED
    """
    if not text:
        return ""
    return _SENSITIVE_QUERY_VALUE.sub(r"\1REDACTED", text)
