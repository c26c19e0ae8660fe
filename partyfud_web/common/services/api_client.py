"""
Partyfud remote API client
Covers the two endpoints the local cart needs to push its state upstream:
custom package creation and cart item creation.
"""
from typing import Any, Callable, Dict, List, Optional

import requests

from ..utils.result import ApiResult, Err, ErrorKind, Ok
from .logging import log_event


def extract_error_message(data: Any, status: Optional[int] = None) -> str:
    """Pick a readable message out of the API's several error body shapes."""
    if isinstance(data, str) and data:
        return data
    if isinstance(data, dict):
        message = data.get("message")
        if message:
            return message if isinstance(message, str) else str(message)
        error = data.get("error")
        if isinstance(error, str) and error:
            return error
        if isinstance(error, dict):
            nested = error.get("message")
            if nested:
                return nested if isinstance(nested, str) else str(nested)
            return str(error)
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            parts = []
            for e in errors:
                if isinstance(e, str):
                    parts.append(e)
                elif isinstance(e, dict) and e.get("message"):
                    parts.append(str(e["message"]))
                else:
                    parts.append(str(e))
            return ", ".join(parts)
        if errors:
            return str(errors)
    return f"HTTP {status}" if status else "An error occurred"


def _compact(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


class PartyfudApiClient:
    """
    Thin wrapper over the Partyfud HTTP API:
    - every call returns Ok/Err instead of raising
    - response bodies are checked before anything is handed back
    - Authorization header comes from ``token_provider`` when it yields a token
    """

    CUSTOM_PACKAGES_ENDPOINT = "/api/user/packages"
    CART_ITEMS_ENDPOINT = "/api/user/cart/items"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token_provider = token_provider
        self._session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> ApiResult:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers(),
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            log_event("warning", "api.request_failed", method=method, endpoint=endpoint, kind="timeout")
            return Err(ErrorKind.TIMEOUT, "Request timeout. Please check your connection and try again.")
        except requests.exceptions.RequestException as exc:
            log_event("warning", "api.request_failed", method=method, endpoint=endpoint, kind="network", error=str(exc))
            return Err(ErrorKind.NETWORK, str(exc) or "Network error occurred")

        try:
            data = response.json()
        except ValueError:
            text = response.text or f"HTTP {response.status_code}"
            log_event("warning", "api.request_failed", method=method, endpoint=endpoint, kind="invalid_response", status=response.status_code)
            return Err(ErrorKind.INVALID_RESPONSE, text, response.status_code)

        if not response.ok:
            kind = ErrorKind.UNAUTHORIZED if response.status_code in (401, 403) else ErrorKind.HTTP
            message = extract_error_message(data, response.status_code)
            log_event("warning", "api.request_failed", method=method, endpoint=endpoint, kind=kind.value, status=response.status_code, message=message)
            return Err(kind, message, response.status_code)

        return Ok(data)

    def create_custom_package(
        self,
        *,
        dish_ids: List[str],
        people_count: int,
        name: Optional[str] = None,
        quantities: Optional[Dict[str, int]] = None,
    ) -> ApiResult:
        """POST /api/user/packages, Ok value is the new remote package id."""
        result = self._request(
            "POST",
            self.CUSTOM_PACKAGES_ENDPOINT,
            _compact({"name": name, "dish_ids": list(dish_ids), "people_count": people_count, "quantities": quantities}),
        )
        if not result.ok:
            return result
        body = result.value if isinstance(result.value, dict) else {}
        package = body.get("data") if isinstance(body.get("data"), dict) else {}
        package_id = package.get("id")
        if not package_id:
            return Err(ErrorKind.INVALID_RESPONSE, "Package id missing from response")
        return Ok(str(package_id))

    def create_cart_item(
        self,
        *,
        package_id: str,
        guests: int,
        price_at_time: float,
        date: Optional[str] = None,
        event_time: Optional[str] = None,
        event_type: Optional[str] = None,
        area: Optional[str] = None,
    ) -> ApiResult:
        """POST /api/user/cart/items, Ok value is the server's cart item."""
        result = self._request(
            "POST",
            self.CART_ITEMS_ENDPOINT,
            _compact(
                {
                    "package_id": package_id,
                    "guests": guests,
                    "price_at_time": price_at_time,
                    "date": date,
                    "event_time": event_time,
                    "event_type": event_type,
                    "area": area,
                }
            ),
        )
        if not result.ok:
            return result
        body = result.value if isinstance(result.value, dict) else None
        if body is None or (body.get("success") is False):
            return Err(ErrorKind.INVALID_RESPONSE, extract_error_message(body or {}, None))
        return Ok(body.get("data"))
