"""Tests for PostgREST order and template lookups."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_PATH = PROJECT_ROOT / "backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))


from errors import DatabaseError, NotFoundError  # noqa: E402  pylint: disable=wrong-import-position
from order_repository import OrderRepository  # noqa: E402  pylint: disable=wrong-import-position


REST_URL = "https://proj.supabase.co/rest/v1"


def _response(rows=None, status_code: int = 200, text: str = "") -> MagicMock:
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.text = text
    response.json.return_value = rows
    return response


def _repository(session: MagicMock) -> OrderRepository:
    return OrderRepository(REST_URL, "service-key", session=session)


def test_get_order_maps_row_and_sends_service_key() -> None:
    session = MagicMock()
    session.get.return_value = _response(
        [
            {
                "id": "o1",
                "template_id": "t1",
                "custom_message": None,
                "selected_message": "Season's greetings",
                "logo_url": "logos/a.png",
                "signature_url": "signatures/raw.png",
                "cropped_signature_url": "signatures/cropped.png",
                "unrelated_column": 42,
            }
        ]
    )

    order = _repository(session).get_order("o1")

    assert order.id == "o1"
    assert order.message == "Season's greetings"
    assert order.signature_path == "signatures/cropped.png"
    args, kwargs = session.get.call_args
    assert args[0] == f"{REST_URL}/orders"
    assert kwargs["params"]["id"] == "eq.o1"
    assert kwargs["headers"]["apikey"] == "service-key"
    assert kwargs["headers"]["Authorization"] == "Bearer service-key"


def test_order_without_message_uses_default() -> None:
    session = MagicMock()
    session.get.return_value = _response([{"id": "o2", "template_id": "t1"}])

    order = _repository(session).get_order("o2")

    assert order.message.startswith("Warmest wishes")
    assert order.signature_path is None


def test_missing_rows_raise_not_found() -> None:
    session = MagicMock()
    session.get.return_value = _response([])
    repository = _repository(session)

    with pytest.raises(NotFoundError, match="Order not found"):
        repository.get_order("o404")
    with pytest.raises(NotFoundError, match="Template not found"):
        repository.get_template("t404")


def test_order_without_template_id_is_template_not_found() -> None:
    session = MagicMock()

    with pytest.raises(NotFoundError, match="Template not found"):
        _repository(session).get_template(None)

    session.get.assert_not_called()


def test_get_template_maps_row() -> None:
    session = MagicMock()
    session.get.return_value = _response([{"id": "t1", "name": "Snow", "preview_url": "/lovable-uploads/snow.png"}])

    template = _repository(session).get_template("t1")

    assert (template.id, template.name, template.preview_url) == ("t1", "Snow", "/lovable-uploads/snow.png")
    assert session.get.call_args.args[0] == f"{REST_URL}/templates"


def test_http_errors_raise_database_error() -> None:
    session = MagicMock()
    session.get.return_value = _response(status_code=401, text="JWT expired")

    with pytest.raises(DatabaseError, match="JWT expired"):
        _repository(session).get_order("o1")


def test_transport_errors_raise_database_error() -> None:
    session = MagicMock()
    session.patch.side_effect = requests.Timeout("slow")

    with pytest.raises(DatabaseError):
        _repository(session).update_order("o1", {"a": 1})


def test_update_order_patches_single_row() -> None:
    session = MagicMock()
    session.patch.return_value = _response(status_code=204)

    _repository(session).update_order("o1", {"production_combined_pdf_path": "cards/x.pdf"})

    args, kwargs = session.patch.call_args
    assert args[0] == f"{REST_URL}/orders"
    assert kwargs["params"] == {"id": "eq.o1"}
    assert kwargs["json"] == {"production_combined_pdf_path": "cards/x.pdf"}
    assert kwargs["headers"]["Prefer"] == "return=minimal"


def test_count_client_records_filters_by_order() -> None:
    session = MagicMock()
    session.get.return_value = _response([{"id": 1}, {"id": 2}])

    assert _repository(session).count_client_records("o1") == 2

    args, kwargs = session.get.call_args
    assert args[0] == f"{REST_URL}/client_records"
    assert kwargs["params"] == {"select": "id", "order_id": "eq.o1"}
