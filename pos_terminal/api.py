"""HTTP client for the ERP backend."""

from __future__ import annotations

import logging
from typing import Any

import requests

from pos_terminal.config import API_BASE_URL, COMPANY_ID, REQUEST_TIMEOUT_SECONDS
from pos_terminal.errors import ApiError

logger = logging.getLogger(__name__)


def _error_message(response: requests.Response) -> str:
    """Prefer the backend's own `message` field over the bare status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code} from {response.url}"


class ErpClient:
    """Thin wrapper over the ERP REST endpoints used by the terminal."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        company_id: str = COMPANY_ID,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.company_id = company_id
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def _request(self, method: str, path: str, *, params: dict | None = None, payload: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url} params={params!r}")
        try:
            response = self.session.request(method, url, params=params, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            logger.warning(f"{method} {url} failed: {exc}")
            raise ApiError(None, f"Could not reach the server: {exc}") from exc

        if not response.ok:
            message = _error_message(response)
            logger.warning(f"{method} {url} -> {response.status_code}: {message}")
            raise ApiError(response.status_code, message)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, f"Invalid JSON from {url}") from exc

    def products_with_variants(self) -> dict:
        return self._request("GET", "/products/with-variants")

    def stock_summary(self, product_id: str, variant_id: str, location_id: str) -> dict:
        params = {
            "company_id": self.company_id,
            "product_id": product_id,
            "product_variant_id": variant_id,
            "location_id": location_id,
        }
        return self._request("GET", "/stock-entries/summary", params=params)

    def create_pos_invoice(self, payload: dict) -> dict:
        return self._request("POST", "/pos-invoices", payload=payload)

    def collections(self) -> list:
        return self._request("GET", "/collections/company", params={"company_id": self.company_id})

    def collection_products(self, collection_id: str) -> list:
        return self._request("GET", f"/collection-products/collection/{collection_id}")

    def brands(self) -> list:
        return self._request("GET", "/brands/company", params={"company_id": self.company_id})

    def customers(self) -> list:
        return self._request("GET", "/customers/company/filter/", params={"company_id": self.company_id})

    def tables(self) -> list:
        return self._request("GET", "/master-tables")

    def stewards(self) -> dict:
        return self._request("GET", "/filter/users", params={"user_status": 3})

    def pending_invoices(self, customer_code: str) -> list:
        params = {"company_id": self.company_id, "customer_code": customer_code}
        return self._request("GET", "/invoices/filter/pending", params=params)

    def invoice_balance(self, customer_code: str, invoice_number: str) -> dict:
        params = {"company_id": self.company_id, "customer_id": customer_code, "ref_id": invoice_number}
        return self._request("GET", "/invoices/balance", params=params)

    def create_receipt(self, payload: dict) -> dict:
        return self._request("POST", "/receipts", payload=payload)

    def locations(self) -> list:
        return self._request("GET", "/locations")
