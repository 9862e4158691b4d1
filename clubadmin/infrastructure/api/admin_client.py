"""Concrete implementation of the AdminApi interface over HTTP using httpx.

Translates transport and HTTP failures into the exceptions the error
classifier understands: ApiRequestError (message starts with the status
code), ConnectionError for transport failures and TimeoutError for timeouts.
"""

import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from clubadmin.domain.interfaces.admin_api import AdminApi
from clubadmin.domain.models.common import (
    AdminNotes, ApplicationStats, ClubApplication, ClubId, RejectionReason,
    ReportFormat, ReportType,
)
from clubadmin.domain.models.errors import ApiRequestError

logger = logging.getLogger(__name__)

APPLICATIONS_PATH = "/api/admin/club-applications"
EXPORT_PATH = "/api/admin/export"
HEALTH_PATH = "/api/health"

REPORT_TYPES = ("applications", "statistics", "admin-activity")
REPORT_FORMATS = ("csv", "json")


class AdminApiClient(AdminApi):
    """httpx implementation of the AdminApi interface."""

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the client.

        Args:
            base_url: Root URL of the admin API (e.g., http://localhost:8787).
            token: Bearer token sent with every request, if any.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (httpx.MockTransport in tests).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._transport = transport
        logger.info(f"AdminApiClient initialized for: {self.base_url}")

    def _client(self) -> httpx.AsyncClient:
        # One client per call: each CLI command runs in its own event loop
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        logger.debug(f"{method} {path} params={params}")
        try:
            async with self._client() as client:
                response = await client.request(method, path, params=params, json=payload)
                response.raise_for_status()
                return response
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request to {path} timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            detail = self._error_detail(e.response)
            logger.warning(f"{method} {path} returned HTTP {e.response.status_code}: {detail}")
            raise ApiRequestError(e.response.status_code, detail) from e
        except httpx.RequestError as e:
            raise ConnectionError(f"Network error while contacting {self.base_url}: {e}") from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text.strip() or response.reason_phrase
        if isinstance(body, dict):
            detail = body.get("error") or body.get("message")
            if detail:
                return str(detail)
        return response.reason_phrase

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        """Returns the data of a {success, data, error} envelope."""
        try:
            body = response.json()
        except ValueError as e:
            raise ApiRequestError(response.status_code, f"Invalid JSON response: {e}") from e
        if isinstance(body, dict) and "success" in body:
            if not body["success"]:
                raise ApiRequestError(response.status_code, str(body.get("error") or "Request failed"))
            return body.get("data")
        return body

    # --- Commands ---

    async def approve_application(self, club_id: ClubId, admin_notes: Optional[AdminNotes] = None) -> Dict[str, Any]:
        response = await self._request(
            "POST", f"{APPLICATIONS_PATH}/approve",
            payload={"club_id": club_id, "admin_notes": admin_notes},
        )
        return self._unwrap(response) or {}

    async def reject_application(self, club_id: ClubId, reason: RejectionReason) -> Dict[str, Any]:
        response = await self._request(
            "POST", f"{APPLICATIONS_PATH}/reject",
            payload={"club_id": club_id, "rejection_reason": reason},
        )
        return self._unwrap(response) or {}

    async def bulk_approve(self, club_ids: Sequence[ClubId], admin_notes: Optional[AdminNotes] = None) -> Dict[str, Any]:
        response = await self._request(
            "POST", f"{APPLICATIONS_PATH}/bulk-approve",
            payload={"clubIds": list(club_ids), "adminNotes": admin_notes},
        )
        return self._unwrap(response) or {}

    # --- Queries ---

    async def list_applications(self, status: Optional[str] = None) -> List[ClubApplication]:
        params = {"status": status} if status else None
        data = self._unwrap(await self._request("GET", APPLICATIONS_PATH, params=params))
        if isinstance(data, dict):
            data = data.get("applications", [])
        return list(data or [])

    async def get_stats(self) -> ApplicationStats:
        data = self._unwrap(await self._request("GET", f"{APPLICATIONS_PATH}/stats")) or {}
        return ApplicationStats(
            pending=int(data.get("pending", 0)),
            approved=int(data.get("approved", 0)),
            rejected=int(data.get("rejected", 0)),
            total=int(data.get("total", 0)),
        )

    async def export_report(self, report_type: ReportType, report_format: ReportFormat) -> str:
        """Exports a report and returns its content.

        Raises:
            ValueError: If report_type or report_format is not supported.
        """
        if report_type not in REPORT_TYPES:
            raise ValueError(f"Unsupported report type '{report_type}'. Expected one of: {', '.join(REPORT_TYPES)}")
        if report_format not in REPORT_FORMATS:
            raise ValueError(f"Unsupported report format '{report_format}'. Expected one of: {', '.join(REPORT_FORMATS)}")

        response = await self._request("GET", f"{EXPORT_PATH}/{report_type}", params={"format": report_format})
        if "json" not in response.headers.get("content-type", ""):
            return response.text
        data = self._unwrap(response)
        return data if isinstance(data, str) else json.dumps(data, indent=2)

    async def ping(self) -> float:
        start_time = time.perf_counter()
        await self._request("GET", HEALTH_PATH)
        return time.perf_counter() - start_time
