from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import httpx
import pytest

from fanout.adapters.registry import HttpDefinitionRegistry
from fanout.config.registry import HttpRegistryConfig
from fanout.domain.context import ReconcileContext, background
from fanout.domain.errors import (
    CancelledError,
    DeadlineExceededError,
    DefinitionNotFoundError,
    RegistryError,
)
from fanout.domain.model import DataDefinition
from tests.helpers.resources import FIXED_NOW, mapping

if TYPE_CHECKING:
    from collections.abc import Callable

DOCUMENT = {
    "name": "def",
    "version": "v1",
    "imports": [{"key": "a", "type": "string"}],
    "children": [
        {
            "name": "x",
            "definitionRef": "leaf/v1",
            "imports": [{"from": "a", "to": "b"}],
        }
    ],
}

CONFIG = HttpRegistryConfig(
    base_url="https://registry.example",
    default_headers={"Accept": "application/json"},
)


def _registry(
    handler: Callable[[httpx.Request], httpx.Response],
) -> HttpDefinitionRegistry:
    def factory(config: HttpRegistryConfig) -> httpx.Client:
        return httpx.Client(
            base_url=config.base_url,
            headers=dict(config.default_headers),
            transport=httpx.MockTransport(handler),
        )

    return HttpDefinitionRegistry(config=CONFIG, client_factory=factory)


def test_http_registry_fetches_and_translates_definitions() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=DOCUMENT)

    definition = _registry(handler).get_definition("def/v1", ctx=background())

    assert seen[0].url.raw_path == b"/definitions/def%2Fv1"
    assert seen[0].headers["Accept"] == "application/json"
    assert definition.ref == "def/v1"
    assert definition.imports == (DataDefinition(key="a", type="string"),)
    child = definition.children[0]
    assert child.name == "x"
    assert child.definition_ref == "leaf/v1"
    assert child.imports == (mapping("a", "b"),)


def test_http_registry_maps_404_to_not_found() -> None:
    registry = _registry(lambda _request: httpx.Response(404))

    with pytest.raises(DefinitionNotFoundError) as excinfo:
        registry.get_definition("def/v9", ctx=background())

    assert excinfo.value.ref == "def/v9"


def test_http_registry_does_not_retry_server_errors() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    with pytest.raises(RegistryError, match="503"):
        _registry(handler).get_definition("def/v1", ctx=background())

    assert len(calls) == 1


def test_http_registry_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RegistryError, match="failed"):
        _registry(handler).get_definition("def/v1", ctx=background())


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=["def"]),
        httpx.Response(200, json={"version": "v1"}),
    ],
)
def test_http_registry_rejects_invalid_payloads(response: httpx.Response) -> None:
    with pytest.raises(RegistryError):
        _registry(lambda _request: response).get_definition("def/v1", ctx=background())


def test_http_registry_checks_context_before_requesting() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=DOCUMENT)

    ctx = background()
    ctx.cancel()

    with pytest.raises(CancelledError):
        _registry(handler).get_definition("def/v1", ctx=ctx)

    assert calls == []


class _ManualClock:
    def __init__(self) -> None:
        self.now = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now


def test_http_registry_caps_request_timeout_at_the_deadline() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=DOCUMENT)

    ctx = ReconcileContext.with_timeout(1.5, clock=_ManualClock())

    _registry(handler).get_definition("def/v1", ctx=ctx)

    assert seen[0].extensions["timeout"]["read"] == 1.5
    assert seen[0].extensions["timeout"]["connect"] == 1.5


def test_http_registry_keeps_configured_timeout_without_deadline() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=DOCUMENT)

    _registry(handler).get_definition("def/v1", ctx=background())

    assert seen[0].extensions["timeout"]["read"] == CONFIG.timeout_seconds


def test_http_registry_reports_deadline_when_request_outlives_it() -> None:
    clock = _ManualClock()
    ctx = ReconcileContext.with_timeout(1, clock=clock)

    def handler(request: httpx.Request) -> httpx.Response:
        clock.now += timedelta(seconds=2)
        raise httpx.ReadTimeout("slow registry", request=request)

    with pytest.raises(DeadlineExceededError):
        _registry(handler).get_definition("def/v1", ctx=ctx)


def test_http_registry_reports_timeout_within_deadline_as_registry_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow registry", request=request)

    with pytest.raises(RegistryError, match="timed out"):
        _registry(handler).get_definition("def/v1", ctx=background())
