"""Async HTTP client for the QA console API."""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from qa_center.client.session import SessionContext


logger = logging.getLogger(__name__)

# Rates shown when the rates endpoint cannot be read
DEFAULT_RATES: Dict[str, float] = {
    "costSttPrerecorded": 0.0052,
    "costOpenAiInput": 0.00005,
    "costOpenAiOutput": 0.00015,
    "priceSttPrerecorded": 0.0065,
    "priceOpenAiInput": 0.0000625,
    "priceOpenAiOutput": 0.0001875,
}


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class MalformedResponseError(ApiError):
    """2xx response whose body is not the expected JSON."""


def describe_run_result(result: Dict[str, Any]) -> str:
    """
    One-line summary of a manual scheduler run.

    Accepts either the run result or the ``{message, result}`` envelope.
    A run that processed nothing without an error is not a failure.
    """
    result = result.get("result", result)
    if not result.get("success", False) or result.get("error"):
        return f"Run failed: {result.get('error') or result.get('message') or 'Unknown error'}"

    found = result.get("interactionsFound", 0)
    processed = result.get("interactionsProcessed", 0)
    summary = f"Found {found} interactions, processed {processed}."
    if processed == 0:
        return (
            f"{summary} No interactions matched the criteria "
            "or all interactions have already been evaluated."
        )
    return summary


class QAClient:
    """
    Thin wrapper over the REST API.

    The bearer token is read from ``session`` on every request, so logging in
    or out through the session takes effect immediately.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[SessionContext] = None,
        api_prefix: str = "/api",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.session = session or SessionContext()
        self.api_prefix = api_prefix.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "QAClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        response = await self._client.request(
            method,
            f"{self.api_prefix}{path}",
            json=json_data,
            params=params,
            headers=self.session.auth_headers(),
        )

        if response.status_code >= 400:
            detail = response.reason_phrase
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("detail"):
                detail = body["detail"]
            logger.warning(f"{method} {path} failed: {response.status_code} {detail}")
            raise ApiError(response.status_code, str(detail))

        if response.status_code == 204:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(response.status_code, f"Invalid JSON body: {e}") from e

    # Auth

    async def login(self, username: str, password: str) -> str:
        data = await self._request("POST", "/auth/login", {"username": username, "password": password})
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise MalformedResponseError(200, "Login response has no access_token")
        self.session.token = token
        return token

    def logout(self) -> None:
        self.session.clear()

    # Credits

    async def get_balance(self) -> Dict[str, Any]:
        return await self._request("GET", "/credits/balance")

    async def add_credits(self, amount: float, description: Optional[str] = None) -> Dict[str, Any]:
        """Add credit, then return the balance fetched afterwards."""
        payload: Dict[str, Any] = {"amount": amount}
        if description:
            payload["description"] = description
        await self._request("POST", "/credits/add", payload)
        return await self.get_balance()

    async def update_threshold(self, threshold: float) -> Dict[str, Any]:
        return await self._request("PUT", "/credits/threshold", {"threshold": threshold})

    async def list_transactions(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        return await self._request("GET", "/credits/transactions", params={"page": page, "limit": limit})

    async def get_credit_stats(self) -> Dict[str, Any]:
        return await self._request("GET", "/credits/stats")

    # Billing

    async def get_rates(self) -> Dict[str, float]:
        try:
            rates = await self._request("GET", "/billing/rates")
        except (ApiError, httpx.HTTPError) as e:
            logger.warning(f"Using default billing rates: {e}")
            return dict(DEFAULT_RATES)
        return {**DEFAULT_RATES, **rates}

    async def get_usage(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> Dict[str, Any]:
        params = {}
        if start_date:
            params["startDate"] = start_date
        if end_date:
            params["endDate"] = end_date
        return await self._request("GET", "/billing/usage", params=params)

    # Criteria and scheduler

    async def list_criteria(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "/criteria")

    async def get_criteria(self, profile_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/criteria/{profile_id}")

    async def save_criteria(self, profile: Dict[str, Any], profile_id: Optional[int] = None) -> Dict[str, Any]:
        if profile_id is None:
            return await self._request("POST", "/criteria", profile)
        return await self._request("PUT", f"/criteria/{profile_id}", profile)

    async def get_scheduler_presets(self) -> List[Dict[str, str]]:
        return await self._request("GET", "/scheduler/presets")

    async def update_scheduler(self, profile_id: int, config: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/scheduler/profile/{profile_id}", config)

    async def run_scheduler(self, profile_id: int, max_evaluations: Optional[int] = None) -> Dict[str, Any]:
        payload = {"maxEvaluations": max_evaluations} if max_evaluations is not None else None
        return await self._request("POST", f"/scheduler/run/{profile_id}", payload)

    async def get_scheduler_history(self, profile_id: int, limit: int = 10) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/scheduler/history/{profile_id}", params={"limit": limit})

    # Interactions

    async def get_messages(self, interaction_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/interactions/{interaction_id}/messages")

    def audio_proxy_path(self, recording_url: str) -> str:
        return f"{self.api_prefix}/audio-proxy?url={quote(recording_url, safe='')}"
