"""カスタム例外定義"""


class MapsLinkError(Exception):
    """座標解決の基底例外"""

    pass


class NetworkFailure(MapsLinkError):
    """通信エラー（タイムアウト、DNS、TLS、接続拒否）"""

    pass


class MalformedResponse(MapsLinkError):
    """レスポンス形式エラー（JSONでない、想定外の構造）"""

    pass


class NoMatch(MapsLinkError):
    """全ステージを試しても座標が見つからない"""

    pass


class InvalidCandidate(MapsLinkError):
    """パターンは一致したが緯度・経度が範囲外"""

    pass


class ConfigurationError(MapsLinkError):
    """設定エラー"""

    pass


class ResolutionCancelled(MapsLinkError):
    """呼び出し側による解決処理のキャンセル"""

    pass
