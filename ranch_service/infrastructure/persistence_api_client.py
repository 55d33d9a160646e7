"""
Infrastructure layer: HTTP persistence backend with retry logic.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from pydantic import BaseModel
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ranch_service.config import settings
from ranch_service.domain.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
)
from ranch_service.domain.models import (
    EventRecord,
    Gender,
    ProductionSummary,
    Ranch,
    RanchFilter,
    SortField,
    SortOrder,
)
from ranch_service.infrastructure.api_constants import (
    APIConstants,
    PersistenceAPIEndpoints,
)
from ranch_service.infrastructure.persistence import RanchRepository


# Pydantic models for API responses
class RanchListResponse(BaseModel):
    """Response from the ranch listing endpoint."""
    count: int
    results: List[Ranch]


class CountResponse(BaseModel):
    """Response from counting endpoints."""
    count: int


class ProductionSummaryResponse(BaseModel):
    results: List[ProductionSummary]


class EventListResponse(BaseModel):
    results: List[EventRecord]


class _RetryableServerError(Exception):
    """5xx response, retried before being reported as PersistenceError."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"{response.status_code} - {response.text}")
        self.response = response


class PersistenceAPIClient(RanchRepository):
    """
    RanchRepository backed by a REST persistence service.
    Implements retry logic with exponential backoff on 5xx and transport errors.
    """

    def __init__(self):
        """Initialize the API client with configuration."""
        self.base_url = settings.persistence_api_base_url
        self.api_key = settings.persistence_api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=settings.persistence_timeout_seconds,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Optional[Dict[str, Any]]:
        """
        Make an HTTP request, mapping failures to domain errors.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Response data as dictionary, or None for empty responses

        Raises:
            NotFoundError: On 404
            ConflictError: On 409 or 412
            PersistenceError: On any other failure, after retries
        """
        try:
            response = await self._send(method, endpoint, **kwargs)
        except _RetryableServerError as e:
            raise PersistenceError(f"Persistence request failed: {e}")
        except httpx.RequestError as e:
            raise PersistenceError(f"Persistence request error: {str(e)}")

        if response.status_code == 404:
            raise NotFoundError(f"Resource not found: {endpoint}")
        if response.status_code in (409, 412):
            raise ConflictError(f"Conflicting update: {response.text}")
        if response.is_error:
            raise PersistenceError(
                f"Persistence request failed: {response.status_code} - {response.text}"
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((_RetryableServerError, httpx.TransportError)),
        reraise=True,
    )
    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        response = await self.client.request(method, endpoint, **kwargs)
        # Retry on server errors (5xx)
        if response.status_code >= 500:
            raise _RetryableServerError(response)
        return response

    # Ranch aggregates

    async def get_ranch(self, ranch_id: str) -> Ranch:
        data = await self._make_request("GET", PersistenceAPIEndpoints.ranch(ranch_id))
        return Ranch.model_validate(data)

    async def insert_ranch(self, ranch: Ranch) -> Ranch:
        data = await self._make_request(
            "POST",
            PersistenceAPIEndpoints.RANCHES,
            json=ranch.model_dump(mode="json"),
        )
        return Ranch.model_validate(data)

    async def save_ranch(self, ranch: Ranch, expected_version: int) -> Ranch:
        payload = ranch.model_copy(update={"version": expected_version + 1})
        data = await self._make_request(
            "PUT",
            PersistenceAPIEndpoints.ranch(ranch.id),
            json=payload.model_dump(mode="json"),
            headers={APIConstants.IF_MATCH_HEADER: str(expected_version)},
        )
        return Ranch.model_validate(data) if data else payload

    async def delete_ranch(self, ranch_id: str) -> None:
        await self._make_request("DELETE", PersistenceAPIEndpoints.ranch(ranch_id))

    async def list_ranches(
        self,
        ranch_filter: RanchFilter,
        offset: int,
        limit: int,
        sort_field: SortField,
        sort_order: SortOrder,
    ) -> tuple[list[Ranch], int]:
        params = ranch_filter.model_dump(mode="json", exclude_none=True)
        params.update({
            "offset": offset,
            "limit": limit,
            "sort_by": sort_field.value,
            "sort_order": sort_order.value,
        })
        data = await self._make_request("GET", PersistenceAPIEndpoints.RANCHES, params=params)
        response = RanchListResponse(**data)
        return response.results, response.count

    # Herd records

    async def count_animals(self, ranch_id: str, gender: Optional[Gender] = None) -> int:
        params = {"exclude_status": "sold"}
        if gender is not None:
            params["gender"] = gender.value
        data = await self._make_request(
            "GET", PersistenceAPIEndpoints.animal_count(ranch_id), params=params
        )
        return CountResponse(**data).count

    async def summarize_production(
        self, ranch_id: str, since: datetime
    ) -> list[ProductionSummary]:
        data = await self._make_request(
            "GET",
            PersistenceAPIEndpoints.production_summary(ranch_id),
            params={"since": since.isoformat()},
        )
        return ProductionSummaryResponse(**data).results

    async def list_recent_events(self, ranch_id: str, limit: int) -> list[EventRecord]:
        data = await self._make_request(
            "GET",
            PersistenceAPIEndpoints.events(ranch_id),
            params={"limit": limit, "ordering": "-created_at"},
        )
        return EventListResponse(**data).results

    async def count_alerts(
        self, ranch_id: str, priorities: Iterable[str], status: str = "active"
    ) -> int:
        data = await self._make_request(
            "GET",
            PersistenceAPIEndpoints.alert_count(ranch_id),
            params={"status": status, "priority": ",".join(sorted(priorities))},
        )
        return CountResponse(**data).count
