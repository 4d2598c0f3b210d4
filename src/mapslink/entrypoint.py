"""CLIエントリーポイント"""
import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .features.navigation.waze import build_waze_app_uri, build_waze_web_uri
from .features.resolution.domain.models import Found, ResolutionRequest, ResolutionResult
from .features.resolution.services.factory import create_orchestrator
from .infrastructure.config.settings import Settings
from .shared.logging.config import get_logger, setup_logging

logger = get_logger(__name__)

OUTPUT_FORMATS = ("waze", "waze-web", "json", "plain")


def format_result(url: str, result: ResolutionResult, output_format: str) -> str:
    """
    解決結果を1行の文字列に整形

    Args:
        url: 入力URL
        result: 解決結果
        output_format: 出力形式

    Returns:
        str: 出力行
    """
    if output_format == "json":
        payload: dict[str, object] = {"url": url, "found": result.found}
        if isinstance(result, Found):
            payload.update(
                {
                    "latitude": result.coordinate.latitude,
                    "longitude": result.coordinate.longitude,
                    "stage": result.stage.value,
                    "waze_uri": build_waze_app_uri(result.coordinate),
                }
            )
        else:
            payload["reason"] = result.reason
        return json.dumps(payload, ensure_ascii=False)

    if not isinstance(result, Found):
        return f"NOT FOUND\t{url}"

    if output_format == "waze":
        return build_waze_app_uri(result.coordinate)
    if output_format == "waze-web":
        return build_waze_web_uri(result.coordinate)
    return f"{result.coordinate.latitude},{result.coordinate.longitude}"


def read_url_file(path: Path) -> list[str]:
    """URLファイルを読み込み（空行と#コメントは無視）"""
    lines = path.read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


def main(argv: Optional[list[str]] = None) -> int:
    """
    メインエントリーポイント

    Returns:
        int: 終了コード（0: 全URL解決, 1: 未解決あり・失敗, 2: 入力なし）
    """
    parser = argparse.ArgumentParser(
        description="Google MapsのURLから座標を取得し、ナビアプリ用のURIを出力するツール"
    )

    parser.add_argument(
        "urls",
        nargs="*",
        help="Google MapsのURL（共有テキストをそのまま渡してもよい）",
    )

    parser.add_argument(
        "--file",
        "-f",
        type=Path,
        help="URLを1行ずつ記載したファイル",
    )

    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="waze",
        help="出力形式（デフォルト: waze）",
    )

    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="環境変数ファイルのパス（デフォルト: .env）",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="ログレベル",
    )

    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="複数URL処理時のプログレスバーを表示しない",
    )

    args = parser.parse_args(argv)

    try:
        settings = Settings(_env_file=args.env_file)

        if args.log_level:
            settings.log_level = args.log_level

        setup_logging(level=settings.log_level)

        inputs = list(args.urls)
        if args.file:
            inputs.extend(read_url_file(args.file))

        if not inputs:
            parser.print_usage(sys.stderr)
            logger.error("No URL given")
            return 2

        orchestrator = create_orchestrator(settings)

        show_progress = len(inputs) > 1 and not args.no_progress
        iterator = tqdm(inputs, desc="座標解決", file=sys.stderr) if show_progress else inputs

        unresolved = 0
        for text in iterator:
            request = ResolutionRequest.from_shared_text(text)
            result = orchestrator.resolve_request(request)
            if not result.found:
                unresolved += 1

            line = format_result(request.raw_url, result, args.format)
            if show_progress:
                tqdm.write(line)
            else:
                print(line)

        if unresolved:
            logger.warning(f"{unresolved} of {len(inputs)} URL(s) could not be resolved")
            return 1
        return 0

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130  # SIGINT
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
