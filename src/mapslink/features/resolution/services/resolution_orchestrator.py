"""座標解決オーケストレーター"""

import threading
from typing import Callable, Iterable, Optional

from ....shared.exceptions.errors import ResolutionCancelled
from ....shared.logging.config import get_logger
from ....shared.utils.url import (
    DEFAULT_MAX_URL_LENGTH,
    DEFAULT_SHORT_LINK_HOSTS,
    DEFAULT_SUPPORTED_HOSTS,
    host_matches,
    is_supported_maps_url,
)
from ..domain.enums import ResolutionStage
from ..domain.models import (
    Coordinate,
    Found,
    NotFound,
    ResolutionContext,
    ResolutionRequest,
    ResolutionResult,
)
from ..extractors.direct_extractor import DirectExtractor
from ..extractors.place_identifier_extractor import PlaceIdentifierExtractor
from ..patterns.library import is_ambiguous_url
from ..providers.google_places_geocoder import GooglePlacesGeocoder
from ..providers.redirect_resolver import RedirectResolver

logger = get_logger(__name__)

StageHandler = Callable[[ResolutionContext], Optional[Coordinate]]


class ResolutionOrchestrator:
    """
    座標解決オーケストレーター

    各ステージを固定順に実行し、最初に座標を返したステージで終了する。
    ステージ内の想定外の例外は「座標なし」として扱い、次のステージへ進む。
    キャンセルだけは呼び出し側へ送出する（ステージの区切りに加え、
    送信中の通信も応答を待たずに打ち切る）。

    インスタンスはリクエスト間で状態を持たないため、複数スレッドから
    同時に resolve() を呼んでよい
    """

    def __init__(
        self,
        redirect_resolver: RedirectResolver,
        direct_extractor: Optional[DirectExtractor] = None,
        identifier_extractor: Optional[PlaceIdentifierExtractor] = None,
        geocoder: Optional[GooglePlacesGeocoder] = None,
        supported_hosts: Iterable[str] = DEFAULT_SUPPORTED_HOSTS,
        short_link_hosts: Iterable[str] = DEFAULT_SHORT_LINK_HOSTS,
        max_url_length: int = DEFAULT_MAX_URL_LENGTH,
        body_fetch_enabled: bool = True,
    ) -> None:
        """
        Args:
            redirect_resolver: リダイレクト解決
            direct_extractor: 直接抽出（Noneの場合は既定）
            identifier_extractor: 場所識別子の抽出（Noneの場合は既定）
            geocoder: Places APIクライアント（APIキー未設定ならNone）
            supported_hosts: 受け付けるホスト
            short_link_hosts: 短縮URLのホスト
            max_url_length: 受け付けるURLの最大長
            body_fetch_enabled: 短縮URLの本文取得を行うか
        """
        self.redirect_resolver = redirect_resolver
        self.direct_extractor = direct_extractor or DirectExtractor()
        self.identifier_extractor = identifier_extractor or PlaceIdentifierExtractor()
        self.geocoder = geocoder
        self.supported_hosts = tuple(supported_hosts)
        self.short_link_hosts = tuple(short_link_hosts)
        self.max_url_length = max_url_length
        self.body_fetch_enabled = body_fetch_enabled

        self.stages: tuple[tuple[ResolutionStage, StageHandler], ...] = (
            (ResolutionStage.RESOLVE, self._resolve),
            (ResolutionStage.FAST_DIRECT, self._fast_direct),
            (ResolutionStage.AMBIGUOUS_GUARD, self._guard_ambiguous_path),
            (ResolutionStage.SHORT_LINK_PROBE, self._probe_short_link),
            (ResolutionStage.IDENTIFIER_FALLBACK, self._identifier_fallback),
            (ResolutionStage.EXHAUSTIVE, self._exhaustive),
        )

        logger.info(
            f"ResolutionOrchestrator initialized: geocoder={'enabled' if geocoder else 'disabled'}, "
            f"body_fetch={body_fetch_enabled}"
        )

    def resolve(
        self,
        raw_url: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> ResolutionResult:
        """
        URLから座標を解決

        Args:
            raw_url: 入力URL
            cancel_event: キャンセル通知（setされると送信中の通信も含めて中断）

        Returns:
            ResolutionResult: Found または NotFound

        Raises:
            ResolutionCancelled: キャンセルされた場合
        """
        return self.resolve_request(ResolutionRequest(raw_url=(raw_url or "").strip()), cancel_event)

    def resolve_request(
        self,
        request: ResolutionRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> ResolutionResult:
        """リクエストオブジェクトから座標を解決"""
        raw_url = request.raw_url

        if not is_supported_maps_url(raw_url, self.max_url_length, self.supported_hosts):
            logger.warning(f"Unsupported URL: {raw_url[:200]!r}")
            return NotFound(reason="unsupported_url")

        context = ResolutionContext(raw_url=raw_url, cancel_event=cancel_event)
        logger.info(f"Resolving coordinates for URL: {raw_url}")

        for stage, handler in self.stages:
            self._raise_if_cancelled(context, stage)

            coordinate = self._run_stage(stage, handler, context)
            if coordinate is not None:
                logger.info(f"Resolved at stage {stage.value}: {coordinate}")
                return Found(coordinate=coordinate, stage=stage)

        logger.warning(f"No coordinates found for URL: {raw_url}")
        return NotFound(reason="no_match")

    def _run_stage(
        self,
        stage: ResolutionStage,
        handler: StageHandler,
        context: ResolutionContext,
    ) -> Optional[Coordinate]:
        """ステージを実行（想定外の例外は座標なしとして扱う）"""
        logger.debug(f"Running stage: {stage.value}")
        try:
            return handler(context)
        except ResolutionCancelled:
            raise
        except Exception as e:
            logger.error(f"Stage {stage.value} failed: {e}", exc_info=True)
            return None

    @staticmethod
    def _raise_if_cancelled(context: ResolutionContext, stage: ResolutionStage) -> None:
        if context.cancelled:
            logger.info(f"Resolution cancelled before stage {stage.value}: {context.raw_url}")
            raise ResolutionCancelled(f"Resolution cancelled: {context.raw_url}")

    def _resolve(self, context: ResolutionContext) -> Optional[Coordinate]:
        """1. リダイレクト解決（失敗時は入力URLのまま）"""
        canonical_url = self.redirect_resolver.resolve(
            context.raw_url, cancel_event=context.cancel_event
        )
        context.canonical_url = canonical_url or context.raw_url
        if context.canonical_url != context.raw_url:
            logger.debug(f"Canonical URL: {context.canonical_url}")
        return None

    def _fast_direct(self, context: ResolutionContext) -> Optional[Coordinate]:
        """2. 正規URLへの直接抽出"""
        return self.direct_extractor.extract(context.target_url, last_resort=False)

    def _guard_ambiguous_path(self, context: ResolutionContext) -> Optional[Coordinate]:
        """3. /place/ /dir/ の汎用ペアは最終手段まで保留"""
        context.ambiguous = is_ambiguous_url(context.target_url)
        if context.ambiguous:
            logger.debug(
                "Ambiguous place/directions URL; generic pairs deferred to exhaustive pass"
            )
        return None

    def _probe_short_link(self, context: ResolutionContext) -> Optional[Coordinate]:
        """4. 短縮URLの最初のリダイレクト先と本文を調べる"""
        if not self.body_fetch_enabled:
            return None

        if not (
            host_matches(context.raw_url, self.short_link_hosts)
            or host_matches(context.target_url, self.short_link_hosts)
        ):
            return None

        location = self.redirect_resolver.resolve_without_following(
            context.raw_url, cancel_event=context.cancel_event
        )
        if location:
            coordinate = self.direct_extractor.extract(location)
            if coordinate:
                logger.debug(f"Found coordinates in Location header: {coordinate}")
                return coordinate

        page = self.redirect_resolver.fetch_readable_body(
            context.raw_url, cancel_event=context.cancel_event
        )
        if page is None:
            return None

        if page.final_url and page.final_url != context.target_url:
            coordinate = self.direct_extractor.extract(page.final_url)
            if coordinate:
                logger.debug(f"Found coordinates in redirected URL: {coordinate}")
                return coordinate
            if context.target_url == context.raw_url:
                context.canonical_url = page.final_url

        context.fetched_body = page.body
        return self.direct_extractor.extract_from_body(page.body, source_url=page.final_url)

    def _identifier_fallback(self, context: ResolutionContext) -> Optional[Coordinate]:
        """5. CID / Place ID から Places API で座標を取得"""
        identifier = self.identifier_extractor.extract(context.target_url)
        if identifier is None:
            return None

        if self.geocoder is None:
            logger.info(f"Found {identifier.kind.value} but place lookup is not configured")
            return None

        return self.geocoder.lookup(identifier, cancel_event=context.cancel_event)

    def _exhaustive(self, context: ResolutionContext) -> Optional[Coordinate]:
        """6. 最終手段パターンを含めて再探索"""
        context.last_resort_enabled = True

        coordinate = self.direct_extractor.extract(context.target_url, last_resort=True)
        if coordinate:
            return coordinate

        if context.fetched_body:
            return self.direct_extractor.extract_from_body(
                context.fetched_body, source_url=context.target_url, last_resort=True
            )

        return None
