"""PostgREST / Storage client for the remote impact log."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from scanledger.adapters.http_resilience import ResilientClient
from scanledger.domain.ports import RemoteStoreError

from .schema import ImpactEntryRow
from .translator import parse_remote_record, payload_to_json

if TYPE_CHECKING:
    from collections.abc import Callable

    from scanledger.config import RemoteStoreConfig, ResilienceConfig
    from scanledger.domain.model import RemoteRecord
    from scanledger.domain.ports import ImpactPayload

log = getLogger(__name__)

IMPACT_TABLE_PATH = "rest/v1/impact_entries"
IMAGE_BUCKET = "impact-images"
CONFLICT_TARGET = "user_id,item_key,day_key"
SELECT_COLUMNS = (
    "id,user_id,item_key,day_key,item,material,recyclable,bin,notes,"
    "scanned_at,points,scan_count,source,image_path"
)
_DECLINED_STATUSES = frozenset({406, 409})


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class SupabaseImpactStore:
    config: RemoteStoreConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    def _headers(self, **extra: str) -> dict[str, str]:
        return {
            "apikey": self.config.anon_key,
            "Authorization": f"Bearer {self.config.access_token}",
            **extra,
        }

    async def fetch(self, *, limit: int) -> list[RemoteRecord]:
        params = {
            "select": SELECT_COLUMNS,
            "user_id": f"eq.{self.config.user_id}",
            "order": "scanned_at.desc",
            "limit": str(limit),
        }
        response = await self._request(
            "GET",
            f"{self.base_url}/{IMPACT_TABLE_PATH}",
            params=params,
            headers=self._headers(Accept="application/json"),
        )
        _raise_for_status(response, "fetch impact entries")

        payload = _json_body(response)
        if not isinstance(payload, list):
            raise RemoteStoreError("Unexpected impact_entries payload", status_code=response.status_code)

        records: list[RemoteRecord] = []
        for raw_row in cast(list[object], payload):
            try:
                row = ImpactEntryRow.model_validate(raw_row)
            except ValidationError as exc:
                log.warning("Skipping unreadable impact row %r: %s", raw_row, exc)
                continue
            records.append(parse_remote_record(row))
        log.debug("Fetched %s impact rows", len(records))
        return records

    async def insert(self, payload: ImpactPayload) -> bool:
        response = await self._request(
            "POST",
            f"{self.base_url}/{IMPACT_TABLE_PATH}",
            params={"on_conflict": CONFLICT_TARGET},
            json=payload_to_json(payload),
            headers=self._headers(
                Prefer="resolution=merge-duplicates,return=representation",
            ),
        )
        if response.status_code in _DECLINED_STATUSES:
            log.info("Upsert of %r declined with HTTP %s", payload.item_key, response.status_code)
            return False
        _raise_for_status(response, "upsert impact entry")
        return response.text.strip() != "[]"

    async def upload_image(self, *, data: bytes, path: str) -> None:
        encoded = quote(path, safe="/")
        response = await self._request(
            "POST",
            f"{self.base_url}/storage/v1/object/{IMAGE_BUCKET}/{encoded}",
            content=data,
            headers=self._headers(**{"Content-Type": "image/jpeg", "x-upsert": "true"}),
        )
        _raise_for_status(response, "upload impact image")
        log.debug("Uploaded %s bytes to %s", len(data), path)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        json: object = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        try:
            async with self.client_factory(self.config.resilience) as client:
                if content is not None:
                    return await client.request(
                        method, url, params=params, headers=headers, content=content
                    )
                if json is not None:
                    return await client.request(
                        method, url, params=params, headers=headers, json=json
                    )
                return await client.request(method, url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"{method} {url} failed: {exc}") from exc


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_success:
        return
    message = f"Could not {action}: HTTP {response.status_code} {response.text.strip()[:200]}"
    log.error(message)
    raise RemoteStoreError(message, status_code=response.status_code)


def _json_body(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise RemoteStoreError(
            "Remote store returned a non-JSON body", status_code=response.status_code
        ) from exc

