"""Remote service gateway: authenticated REST calls with typed results."""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import httpx

from clickploy.api.models import (
    CreateProjectRequest,
    Database,
    DatabaseCredentials,
    Deployment,
    Project,
    StorageStats,
    User,
    credentials_from_payload,
    database_from_payload,
    deployment_from_payload,
    project_from_payload,
    storage_stats_from_payload,
    user_from_payload,
)
from clickploy.config.schema import Session
from clickploy.observability.logging import get_logger, log_event


logger = get_logger("clickploy.gateway")

T = TypeVar("T")


class GatewayError(Exception):
    """Single failure type for every gateway call; carries a readable message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


def _decode_list(payload: Any, build: Callable[[dict[str, Any]], T]) -> list[T]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError("expected a JSON array")
    return [build(item) for item in payload if isinstance(item, dict)]


def _decode_object(payload: Any, build: Callable[[dict[str, Any]], T]) -> T:
    if not isinstance(payload, dict):
        raise ValueError("expected a JSON object")
    return build(payload)


class Gateway:
    """Synchronous client for the Clickploy REST API.

    Every method either returns decoded records or raises ``GatewayError``;
    callers never see ``httpx`` exceptions.
    """

    def __init__(
        self,
        session: Session,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = session.server_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": session.api_key},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Gateway":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        failure: str,
        json_body: Any = None,
        body_in_error: bool = False,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, path, json=json_body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log_event(
                logger,
                "gateway_transport_error",
                level=logging.WARNING,
                method=method,
                path=path,
                error=str(exc),
            )
            raise GatewayError(f"{failure}: {exc}") from exc

        if response.is_success:
            return response

        log_event(
            logger,
            "gateway_http_error",
            level=logging.WARNING,
            method=method,
            path=path,
            status_code=response.status_code,
        )
        if body_in_error:
            detail = response.text.strip() or f"{response.status_code} {response.reason_phrase}"
        else:
            detail = f"{response.status_code} {response.reason_phrase}"
        raise GatewayError(f"{failure}: {detail}")

    def _json(self, response: httpx.Response, *, failure: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"{failure}: invalid response body") from exc

    def _fetch(
        self,
        path: str,
        *,
        failure: str,
        decode: Callable[[Any], T],
    ) -> T:
        response = self._request("GET", path, failure=failure)
        payload = self._json(response, failure=failure)
        try:
            return decode(payload)
        except ValueError as exc:
            raise GatewayError(f"{failure}: {exc}") from exc

    def validate_connection(self) -> User:
        try:
            response = self._client.get("/api/user")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise GatewayError(f"Failed to connect to server: {exc}") from exc
        if not response.is_success:
            raise GatewayError(
                f"Authentication failed: {response.status_code} {response.reason_phrase}"
            )
        payload = self._json(response, failure="Failed to parse user response")
        try:
            return _decode_object(payload, user_from_payload)
        except ValueError as exc:
            raise GatewayError(f"Failed to parse user response: {exc}") from exc

    def list_projects(self) -> list[Project]:
        return self._fetch(
            "/api/projects",
            failure="Failed to fetch projects",
            decode=lambda payload: _decode_list(payload, project_from_payload),
        )

    def get_project(self, project_id: str) -> Project:
        return self._fetch(
            f"/api/projects/{project_id}",
            failure="Failed to fetch project",
            decode=lambda payload: _decode_object(payload, project_from_payload),
        )

    def create_project(self, request: CreateProjectRequest) -> Project:
        failure = "Failed to create project"
        response = self._request(
            "POST",
            "/api/projects",
            failure=failure,
            json_body=request.to_payload(),
            body_in_error=True,
        )
        try:
            return _decode_object(self._json(response, failure=failure), project_from_payload)
        except ValueError as exc:
            raise GatewayError(f"{failure}: {exc}") from exc

    def redeploy(self, project_id: str, commit: str | None = None) -> Any:
        failure = "Failed to redeploy project"
        response = self._request(
            "POST",
            f"/api/projects/{project_id}/redeploy",
            failure=failure,
            json_body={"commit": commit},
        )
        return self._json(response, failure=failure)

    def stop(self, project_id: str) -> Any:
        failure = "Failed to stop project"
        response = self._request("POST", f"/api/projects/{project_id}/stop", failure=failure)
        return self._json(response, failure=failure)

    def list_deployments(self) -> list[Deployment]:
        return self._fetch(
            "/api/activity",
            failure="Failed to fetch activity",
            decode=lambda payload: _decode_list(payload, deployment_from_payload),
        )

    def storage_stats(self) -> StorageStats:
        return self._fetch(
            "/api/storage/stats",
            failure="Failed to fetch storage stats",
            decode=lambda payload: _decode_object(payload, storage_stats_from_payload),
        )

    def list_databases(self) -> list[Database]:
        return self._fetch(
            "/api/storage/databases",
            failure="Failed to fetch databases",
            decode=lambda payload: _decode_list(payload, database_from_payload),
        )

    def create_database(self, name: str, engine: str) -> Any:
        failure = "Failed to create database"
        response = self._request(
            "POST",
            "/api/storage/databases",
            failure=failure,
            json_body={"name": name, "type": engine},
            body_in_error=True,
        )
        return self._json(response, failure=failure)

    def delete_database(self, database_id: int) -> None:
        self._request(
            "DELETE",
            f"/api/storage/databases/{database_id}",
            failure="Failed to delete database",
        )

    def stop_database(self, database_id: int) -> None:
        self._request(
            "POST",
            f"/api/storage/databases/{database_id}/stop",
            failure="Failed to stop database",
        )

    def restart_database(self, database_id: int) -> None:
        self._request(
            "POST",
            f"/api/storage/databases/{database_id}/restart",
            failure="Failed to restart database",
        )

    def get_database_credentials(self, database_id: int) -> DatabaseCredentials:
        return self._fetch(
            f"/api/storage/databases/{database_id}/credentials",
            failure="Failed to fetch database credentials",
            decode=lambda payload: _decode_object(payload, credentials_from_payload),
        )
