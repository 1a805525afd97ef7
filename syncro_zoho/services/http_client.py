"""
Single-attempt HTTP access shared by the Zoho Books and Syncro clients.

No retries and no token handling happen here: one call, one timeout, one
HttpResponse (or NetworkFailed). Retrying or concurrent callers can be layered
on top without touching the sync logic.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from syncro_zoho.exceptions import NetworkFailed
from syncro_zoho.helpers.json_encoder import dumps

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """Status code plus the decoded JSON body (None when not JSON)."""
    status_code: int
    body: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient:
    """Thin wrapper around a requests session."""

    def __init__(self, timeout: float = 30, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None,
                params: Optional[Dict[str, Any]] = None, json_body: Any = None,
                form: Optional[Dict[str, Any]] = None) -> HttpResponse:
        """
        Make one HTTP request.

        Args:
            method (str): HTTP method (e.g., "GET", "POST").
            url (str): Absolute URL.
            headers (dict): Extra request headers.
            params (dict): Query parameters.
            json_body: Body serialized as JSON (Decimal aware).
            form (dict): Body sent as application/x-www-form-urlencoded.

        Returns:
            HttpResponse: Response status and decoded body.

        Raises:
            NetworkFailed: On connection errors and timeouts.
        """
        headers = dict(headers or {})
        headers.setdefault("Accept", "application/json")
        data = None
        if json_body is not None:
            headers["Content-Type"] = "application/json"
            data = dumps(json_body)
        elif form is not None:
            data = form

        logger.debug(f"{method.upper()} {url} params={params}")
        try:
            response = self.session.request(
                method.upper(),
                url,
                headers=headers,
                params=params,
                data=data,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise NetworkFailed(f"{method.upper()} {url} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise NetworkFailed(f"{method.upper()} {url} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        logger.debug(f"{method.upper()} {url} -> {response.status_code}")
        return HttpResponse(status_code=response.status_code, body=body, text=response.text or "")
