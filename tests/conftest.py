"""Pytest fixtures: fakes de store/transporte y settings aislados del entorno."""

from __future__ import annotations

import json
from typing import Any

import pytest

from core.config import AppSettings
from core.domain.models import Credentials, RequestDescriptor, TransportResponse


class FakeTransport:
    """Devuelve respuestas en orden y registra cada petición enviada."""

    def __init__(self, *responses: TransportResponse | BaseException) -> None:
        self._responses = list(responses)
        self.requests: list[RequestDescriptor] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def send(self, request: RequestDescriptor) -> TransportResponse:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeStore:
    """Store con refresh controlado por el test."""

    def __init__(
        self,
        credentials: Credentials | None,
        *,
        refreshed: Credentials | BaseException | None = None,
    ) -> None:
        self._credentials = credentials
        self._refreshed = refreshed
        self.refresh_calls = 0

    def current_credentials(self) -> Credentials | None:
        return self._credentials

    async def refresh(self) -> Credentials:
        self.refresh_calls += 1
        if isinstance(self._refreshed, BaseException):
            raise self._refreshed
        if self._refreshed is None:
            raise AssertionError("refresh() was not expected")
        self._credentials = self._refreshed
        return self._refreshed


def json_response(status_code: int, payload: Any) -> TransportResponse:
    return TransportResponse(status_code=status_code, body=json.dumps(payload).encode("utf-8"))


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(
        access_token="old-token",
        instance_url="https://na1.example.com",
        identity_url="https://login.example.com/id/00Dxx0000001gPL/005xx000001X8Uz",
    )


@pytest.fixture
def refreshed_credentials() -> Credentials:
    return Credentials(
        access_token="new-token",
        instance_url="https://na1.example.com",
        identity_url="https://login.example.com/id/00Dxx0000001gPL/005xx000001X8Uz",
    )


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        instance_url="https://na1.example.com",
        access_token="old-token",
        identity_url="https://login.example.com/id/00Dxx0000001gPL/005xx000001X8Uz",
        refresh_token="refresh-1",
        client_id="client-abc",
        login_url="https://login.example.com",
    )
