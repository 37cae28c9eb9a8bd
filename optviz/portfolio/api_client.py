"""
HTTP client for the options API.

Thin synchronous wrapper around ``/api/options``. Validation failures come
back as ``OptionValidationError``; anything that means "the backend is not
usable right now" becomes ``BackendUnavailableError`` so callers can fall back
to local-only behaviour.
"""

from __future__ import annotations
from typing import List, Optional
import logging

import httpx

from optviz.models.option_record import OptionDraft, OptionRecord
from optviz.utils.error_handling import BackendUnavailableError, OptionValidationError

logger = logging.getLogger(__name__)


class OptionsApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            base_url: Backend root, e.g. ``http://localhost:8000``
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "OptionsApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"{method} {path} failed: {type(e).__name__}: {e}") from e
        if response.status_code >= 500:
            raise BackendUnavailableError(f"{method} {path} returned {response.status_code}")
        return response

    @staticmethod
    def _error_body(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def list_options(self) -> List[OptionRecord]:
        """Fetch every stored option, newest first."""
        response = self._request("GET", "/api/options")
        if response.status_code != 200:
            raise BackendUnavailableError(f"GET /api/options returned {response.status_code}")
        try:
            return [OptionRecord.from_dict(item) for item in response.json()]
        except (KeyError, TypeError, ValueError) as e:
            raise BackendUnavailableError(f"Malformed option list: {e}") from e

    def add_option(self, draft: OptionDraft) -> int:
        """
        Store a new option.

        Returns:
            The id assigned by the backend

        Raises:
            OptionValidationError: if the backend rejected the payload (400)
            BackendUnavailableError: on network errors or unexpected statuses
        """
        response = self._request("POST", "/api/options", json=draft.to_payload())
        if response.status_code == 400:
            body = self._error_body(response)
            raise OptionValidationError(body.get("error", "Invalid request"), body.get("message", ""))
        if response.status_code != 201:
            raise BackendUnavailableError(f"POST /api/options returned {response.status_code}")
        try:
            return int(response.json()["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise BackendUnavailableError(f"Malformed create response: {e}") from e

    def delete_option(self, option_id: int) -> bool:
        """Delete an option; False when the backend does not know the id."""
        response = self._request("DELETE", f"/api/options/{option_id}")
        if response.status_code == 404:
            return False
        if response.status_code != 200:
            raise BackendUnavailableError(f"DELETE /api/options/{option_id} returned {response.status_code}")
        return True
