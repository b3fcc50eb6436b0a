"""Wellness check-in tool and its data sources.

``StaticCheckinSource`` serves a fixed summary for development and tests;
``HttpCheckinSource`` reads from a remote check-in service over HTTP.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sarthi.core.exceptions import ToolError
from sarthi.core.resilience import CircuitBreaker, CircuitBreakerOpen, checkin_service_circuit_breaker
from sarthi.models import ToolName
from sarthi.tools.base import Tool

logger = logging.getLogger(__name__)


class StressDomain(BaseModel):
    domain: str
    score: float


class CheckinSummary(BaseModel):
    """Averaged check-in data for a user over a period."""

    model_config = ConfigDict(populate_by_name=True)

    avg_wellness: float = Field(..., alias="avgWellness")
    stress_domains: list[StressDomain] = Field(default_factory=list, alias="stressDomains")
    last_checkin_date: datetime | None = Field(None, alias="lastCheckinDate")


class FetchCheckinsArgs(BaseModel):
    user_id: str = Field(..., min_length=1, description="User identifier")
    days: int = Field(30, ge=1, le=365, description="Number of days to look back")


class CheckinSource(Protocol):
    async def fetch(self, user_id: str, days: int) -> CheckinSummary: ...


class StaticCheckinSource:
    """Fixed check-in summary, optionally per user."""

    def __init__(self, summaries: dict[str, CheckinSummary] | None = None) -> None:
        self._summaries = summaries or {}

    async def fetch(self, user_id: str, days: int) -> CheckinSummary:
        if user_id in self._summaries:
            return self._summaries[user_id]
        return CheckinSummary(
            avg_wellness=7.2,
            stress_domains=[
                StressDomain(domain="work", score=6.5),
                StressDomain(domain="relationships", score=4.2),
            ],
            last_checkin_date=datetime.now(UTC),
        )


class HttpCheckinSource:
    """Check-in summaries from a remote service.

    Calls ``GET {base_url}/users/{user_id}/checkins/summary?days=N`` and
    expects ``{avgWellness, stressDomains, lastCheckinDate}``.
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout
        self._circuit_breaker = circuit_breaker or checkin_service_circuit_breaker

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def fetch(self, user_id: str, days: int) -> CheckinSummary:
        client = await self._get_http_client()
        url = f"{self._base_url}/users/{user_id}/checkins/summary"
        try:
            response = await self._circuit_breaker.call(client.get, url, params={"days": days})
            response.raise_for_status()
            return CheckinSummary.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise ToolError(
                ToolName.FETCH_CHECKINS.value, f"Check-in service returned {e.response.status_code}"
            ) from e
        except CircuitBreakerOpen as e:
            raise ToolError(ToolName.FETCH_CHECKINS.value, str(e)) from e
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            raise ToolError(ToolName.FETCH_CHECKINS.value, f"Check-in service error: {e}") from e

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()


class FetchCheckinsTool(Tool):
    name = ToolName.FETCH_CHECKINS
    description = "Fetch user's wellness check-in history and calculate averages"
    args_model = FetchCheckinsArgs

    def __init__(self, source: CheckinSource | None = None) -> None:
        self._source = source or StaticCheckinSource()

    async def run(self, args: FetchCheckinsArgs) -> dict[str, Any]:  # type: ignore[override]
        summary = await self._source.fetch(args.user_id, args.days)
        return summary.model_dump(mode="json")

    async def aclose(self) -> None:
        close = getattr(self._source, "close", None)
        if close is not None:
            await close()
