"""テスト共通のフィクスチャ"""

import time
from typing import Optional, Union

import pytest
import requests
from requests.adapters import BaseAdapter

from mapslink.shared.http.client import HTTPClient

Route = Union[tuple[int, dict[str, str], str], Exception]


class RoutingAdapter(BaseAdapter):
    """
    URLごとに固定のレスポンスを返すrequestsアダプター

    routes のキーは URL または (メソッド, URL)。値は
    (ステータス, ヘッダー, 本文) のタプル、または送出する例外。
    """

    def __init__(self, routes: dict) -> None:
        super().__init__()
        self.routes = routes
        self.requests: list[requests.PreparedRequest] = []
        self.delay = 0.0

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        if self.delay:
            time.sleep(self.delay)

        route: Optional[Route] = self.routes.get((request.method, request.url))
        if route is None:
            route = self.routes.get(request.url)
        if route is None:
            raise requests.ConnectionError(f"No route for {request.method} {request.url}")
        if isinstance(route, Exception):
            raise route

        status_code, headers, body = route
        response = requests.Response()
        response.status_code = status_code
        response.headers.update(headers)
        response._content = body.encode("utf-8")
        response._content_consumed = True
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def routes() -> dict:
    return {}


@pytest.fixture
def adapter(routes: dict) -> RoutingAdapter:
    return RoutingAdapter(routes)


@pytest.fixture
def http_client(adapter: RoutingAdapter):
    client = HTTPClient(connect_timeout=1.0, read_timeout=1.0, max_retries=0)
    client.session.mount("https://", adapter)
    client.session.mount("http://", adapter)
    yield client
    client.close()
