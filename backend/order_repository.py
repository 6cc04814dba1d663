"""Order and template lookups against the Supabase PostgREST API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from errors import DatabaseError, NotFoundError
from models import Order, Template
from settings import Settings


logger = logging.getLogger(__name__)


class OrderRepository:
    def __init__(self, rest_url: str, service_role_key: str, session: Optional[requests.Session] = None, timeout: float = 30.0) -> None:
        self._rest_url = rest_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "OrderRepository":
        return cls(settings.rest_url, settings.service_role_key, session=session)

    def get_order(self, order_id: str) -> Order:
        row = self._select_one("orders", order_id)
        if row is None:
            raise NotFoundError("Order not found")
        return Order.from_row(row)

    def get_template(self, template_id: Optional[str]) -> Template:
        row = self._select_one("templates", template_id) if template_id else None
        if row is None:
            raise NotFoundError("Template not found")
        return Template.from_row(row)

    def count_client_records(self, order_id: str) -> int:
        """Number of mailing recipients uploaded for ``order_id``."""
        return len(self._select("client_records", {"select": "id", "order_id": f"eq.{order_id}"}))

    def update_order(self, order_id: str, fields: Dict[str, Any]) -> None:
        url = f"{self._rest_url}/orders"
        try:
            response = self._session.patch(
                url,
                params={"id": f"eq.{order_id}"},
                json=fields,
                headers={**self._headers, "Prefer": "return=minimal"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise DatabaseError(f"Order update failed: {exc}") from exc
        if not response.ok:
            raise DatabaseError(f"Order update failed ({response.status_code}): {response.text}")
        logger.info("Updated order %s fields: %s", order_id, sorted(fields))

    def _select_one(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        rows = self._select(table, {"select": "*", "id": f"eq.{row_id}", "limit": "1"})
        return rows[0] if rows else None

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        url = f"{self._rest_url}/{table}"
        try:
            response = self._session.get(
                url,
                params=params,
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise DatabaseError(f"Lookup in {table} failed: {exc}") from exc

        if not response.ok:
            raise DatabaseError(f"Lookup in {table} failed ({response.status_code}): {response.text}")

        return response.json() or []
