"""Base HTTP Client for the vibequeue API"""

from typing import Any

import httpx
from rich.console import Console
from rich.panel import Panel

console = Console()


class VibeQueueError(Exception):
    """Base exception for vibequeue API errors"""

    pass


class APIClient:
    """HTTP client for the vibequeue API"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: int = 30,
        headers: dict[str, str] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.default_headers = headers or {}
        self.client = httpx.Client(
            base_url=self.base_url, timeout=timeout, headers=self.default_headers
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.client.close()

    def _handle_response(self, response: httpx.Response) -> Any:
        """Handle API response and extract data"""
        try:
            data = response.json()
        except ValueError:
            console.print(f"[red]Failed to parse response: {response.text}[/red]")
            raise VibeQueueError(
                f"Invalid JSON response: {response.status_code}"
            ) from None

        if response.status_code >= 400:
            error = data.get("error") or {}
            error_msg = error.get("message") or data.get("detail") or "Unknown error"
            console.print(Panel(f"[red]{error_msg}[/red]", title="API Error"))
            raise VibeQueueError(f"API Error {response.status_code}: {error_msg}")

        # Handle envelope format (with "ok" field)
        if "ok" in data:
            if not data.get("ok", False):
                error_msg = data.get("error", {}).get("message", "Request failed")
                console.print(Panel(f"[red]{error_msg}[/red]", title="Request Failed"))
                raise VibeQueueError(error_msg)
            return data.get("data", {})

        return data

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self.client.request(method, f"/v1{path}", **kwargs)
        except httpx.RequestError as e:
            console.print(f"[red]Connection error: {e}[/red]")
            raise VibeQueueError(f"Connection failed: {e}") from None
        return self._handle_response(response)

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make GET request"""
        return self._request("GET", path, params=params)

    def post(self, path: str, json: dict[str, Any] | None = None) -> Any:
        """Make POST request"""
        return self._request("POST", path, json=json)
