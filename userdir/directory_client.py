"""Client for interacting with the remote user directory API."""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from userdir.config import get_config_value
from userdir.errors import NetworkError, NotFound, ServerError, Unauthorized
from userdir.models import PageResult, Record


class DirectoryClient:
    """
    Stateless request functions for the directory API.

    Every call either returns parsed data or raises one of ``Unauthorized``,
    ``NotFound``, ``ServerError`` or ``NetworkError``. Nothing is retried; the
    token is passed in by the caller and never kept here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        base_url = base_url or get_config_value("api.base_url")
        if not base_url:
            self.logger.critical("Missing API base URL at client initialization.")
            raise ValueError("Missing API base URL")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or get_config_value("api.timeout_seconds", 10)
        self.api_key = api_key or get_config_value("api.api_key")
        self.session = requests.Session()
        self._setup_session()

    def _setup_session(self) -> None:
        """Setup the session headers. No retry adapter is mounted."""
        self.session.headers.update(
            {"User-Agent": "User Directory Client/1.0", "Accept": "application/json"}
        )
        if self.api_key:
            self.session.headers["x-api-key"] = self.api_key
        self.logger.debug("Requests Session configured without retries.")

    def _log_api_call(
        self,
        method: str,
        url: str,
        payload: Optional[Dict[str, Any]] = None,
        response: Optional[requests.Response] = None,
    ) -> None:
        """Log API calls in debug mode"""
        if not get_config_value("app_settings.debug_mode", False):
            return

        safe_payload = payload
        if url.endswith("/login") and payload:
            safe_payload = payload.copy()
            if "password" in safe_payload:
                safe_payload["password"] = "***REDACTED***"

        log_data = {
            "method": method,
            "url": url,
            "payload": safe_payload,
            "status_code": response.status_code if response is not None else None,
            "response_body": None,
        }

        if response is not None and not url.endswith("/login"):
            try:
                log_data["response_body"] = response.json()
            except ValueError:
                log_data["response_body"] = response.text[:1000]

        self.logger.debug(f"Directory API Call: {json.dumps(log_data, indent=2, default=str)}")

    @staticmethod
    def _auth_headers(token: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    def _send(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        sender = getattr(self.session, method.lower())
        try:
            response = sender(
                url, headers=headers, params=params, json=payload, timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            self.logger.error(f"Timeout calling {method} {path}: {str(e)}")
            raise NetworkError("Request timed out.") from e
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Network error calling {method} {path}: {str(e)}")
            raise NetworkError(f"Network error: {str(e)}") from e

        self._log_api_call(method, url, payload=payload or params, response=response)
        return response

    def _raise_for_status(self, response: requests.Response, action: str) -> None:
        """Map a non-2xx response onto the error taxonomy."""
        status = response.status_code
        if 200 <= status < 300:
            return

        detail = self._error_detail(response)
        if status in (401, 403):
            self.logger.warning(f"{action} rejected the token ({status}).")
            raise Unauthorized(detail or "Unauthorized", status)
        if status == 404:
            self.logger.warning(f"{action} failed: not found (404).")
            raise NotFound(detail or "Not found", status)
        self.logger.error(f"{action} failed with status {status}")
        self.logger.debug(f"Raw failure response: {response.text[:500]}")
        raise ServerError(detail or f"HTTP error! status: {status}", status)

    @staticmethod
    def _error_detail(response: requests.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return body["error"]
        return None

    def _json_body(self, response: requests.Response, action: str) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            self.logger.error(f"Failed to parse JSON from {action} response: {str(e)}")
            raise ServerError(f"Unreadable response from {action}", response.status_code) from e
        if not isinstance(body, dict):
            self.logger.error(f"Unexpected structure in {action} response: {type(body)}")
            raise ServerError(f"Unexpected response from {action}", response.status_code)
        return body

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Authenticate and return the response body, which holds the token."""
        self.logger.info("Attempting login...")
        response = self._send(
            "POST", "/login", payload={"email": email, "password": password}
        )

        # The API answers a wrong email/password pair with 400 and an "error" message
        if response.status_code == 400:
            detail = self._error_detail(response) or "Login failed"
            self.logger.warning(f"Login rejected (400): {detail}")
            raise Unauthorized(detail, 400)
        self._raise_for_status(response, "Login")

        body = self._json_body(response, "login")
        if not body.get("token"):
            self.logger.error("Login response successful but 'token' key missing.")
            raise ServerError("Login response did not contain a token", response.status_code)
        self.logger.info("Login successful, received token.")
        return body

    def list_page(self, page: int, token: Optional[str]) -> PageResult:
        """Fetch one page of records."""
        self.logger.info(f"Fetching users page {page}...")
        response = self._send(
            "GET", "/users", headers=self._auth_headers(token), params={"page": page}
        )
        self._raise_for_status(response, f"List users page {page}")

        body = self._json_body(response, "list users")
        raw_records = body.get("data")
        if not isinstance(raw_records, list):
            self.logger.error(f"Unexpected structure for 'data' key: {type(raw_records)}")
            raise ServerError("Unexpected response structure from users endpoint")

        try:
            records: List[Record] = [Record.from_api(item) for item in raw_records]
            current_page = int(body.get("page", page))
            total_pages = max(1, int(body.get("total_pages", 1)))
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Error processing users response: {str(e)}", exc_info=True)
            raise ServerError("Unexpected record data from users endpoint") from e

        self.logger.debug(
            f"Parsed {len(records)} users on page {current_page} of {total_pages}."
        )
        return PageResult(records=records, current_page=current_page, total_pages=total_pages)

    def update_record(
        self, record_id: int, fields: Dict[str, Any], token: Optional[str]
    ) -> Record:
        """Update a record and return it as the server now holds it."""
        self.logger.info(f"Updating user {record_id}...")
        response = self._send(
            "PUT", f"/users/{record_id}", headers=self._auth_headers(token), payload=dict(fields)
        )
        self._raise_for_status(response, f"Update user {record_id}")

        body = self._json_body(response, "update user")
        # The API echoes the submitted fields (plus updatedAt) but not the id
        merged = {**fields, **{k: v for k, v in body.items() if v is not None}}
        merged["id"] = record_id
        self.logger.info(f"User {record_id} updated.")
        return Record.from_api(merged)

    def delete_record(self, record_id: int, token: Optional[str]) -> bool:
        """Delete a record. Returns True on success."""
        self.logger.info(f"Deleting user {record_id}...")
        response = self._send(
            "DELETE", f"/users/{record_id}", headers=self._auth_headers(token)
        )
        self._raise_for_status(response, f"Delete user {record_id}")
        self.logger.info(f"User {record_id} deleted.")
        return True
