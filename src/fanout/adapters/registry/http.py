"""Definition registry served over HTTP."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from fanout.domain.errors import DefinitionNotFoundError, RegistryError

from .translator import parse_definition

if TYPE_CHECKING:
    from collections.abc import Callable

    from fanout.config.registry import HttpRegistryConfig
    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import DefinitionDocument, DefinitionRef

log = logging.getLogger(__name__)


def _default_client(config: HttpRegistryConfig) -> httpx.Client:
    return httpx.Client(
        base_url=config.base_url,
        timeout=config.timeout_seconds,
        headers=dict(config.default_headers),
    )


class HttpDefinitionRegistry:
    """Fetch definitions with ``GET {base_url}/definitions/{ref}``.

    Every lookup is a single request. Failures are reported, never retried.
    """

    def __init__(
        self,
        *,
        config: HttpRegistryConfig,
        client_factory: Callable[[HttpRegistryConfig], httpx.Client] | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory or _default_client

    def get_definition(
        self, ref: DefinitionRef, *, ctx: ReconcileContext
    ) -> DefinitionDocument:
        ctx.check()
        path = f"/definitions/{quote(ref, safe='')}"
        timeout = self._config.timeout_seconds
        remaining = ctx.remaining_seconds()
        if remaining is not None:
            timeout = min(timeout, remaining)
        with self._client_factory(self._config) as client:
            try:
                response = client.get(path, timeout=timeout)
            except httpx.TimeoutException as exc:
                ctx.check()
                raise RegistryError(f"Registry request for {ref} timed out") from exc
            except httpx.HTTPError as exc:
                raise RegistryError(f"Registry request for {ref} failed: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise DefinitionNotFoundError(ref)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RegistryError(
                f"Registry returned {response.status_code} for definition {ref}"
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise RegistryError(f"Registry returned invalid JSON for definition {ref}") from exc
        if not isinstance(payload, dict):
            raise RegistryError(f"Unexpected registry payload for definition {ref}")

        definition = parse_definition(payload, source=str(response.url))
        log.debug("Fetched definition %s from %s", definition.ref, response.url)
        return definition


if TYPE_CHECKING:
    from fanout.config.registry import HttpRegistryConfig as _Config
    from fanout.domain.ports import DefinitionRegistry

    _registry_check: DefinitionRegistry = HttpDefinitionRegistry(
        config=_Config(base_url="http://registry.invalid")
    )
