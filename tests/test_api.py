# tests/test_api.py
import logging

import pytest
from rest_framework.test import APIClient

from core import exceptions as errors
from core.context import bind_actor, clear_actor, get_actor
from core.logging import ActorFilter

pytestmark = pytest.mark.django_db


class TestPermissions:
    def test_anonymous_is_rejected(self, db):
        response = APIClient().get("/api/v1/clients/")
        assert response.status_code == 401

    def test_viewer_can_read(self, viewer_client, customer):
        response = viewer_client.get("/api/v1/clients/")
        assert response.status_code == 200
        assert response.data["count"] == 1

    def test_viewer_cannot_write(self, viewer_client):
        response = viewer_client.post(
            "/api/v1/clients/", {"last_name": "Durand", "first_name": "Léa", "phone": "0611"}, format="json"
        )
        assert response.status_code == 403

    def test_roles_header_grants_write(self, viewer_client):
        response = viewer_client.post(
            "/api/v1/clients/",
            {"last_name": "Durand", "first_name": "Léa", "phone": "0611"},
            format="json",
            HTTP_X_ROLES="ROLE_ACCUEIL",
        )
        assert response.status_code == 201

    def test_client_resource_roles(self, user):
        client = APIClient()
        client.force_authenticate(user=user, token={"resource_access": {"atelier-api": {"roles": ["ROLE_ADMIN"]}}})
        response = client.post(
            "/api/v1/parts/",
            {"reference": "R-1", "designation": "Joint", "purchase_price": "1.00", "sale_price": "2.00"},
            format="json",
        )
        assert response.status_code == 201


class TestErrorRendering:
    @pytest.mark.parametrize(
        "exc, status_code, code",
        [
            (errors.NotFoundError("Client", "x"), 404, "NOT_FOUND"),
            (errors.InvalidReferenceError("client", "x"), 400, "INVALID_REFERENCE"),
            (errors.ValidationError("Téléphone obligatoire", field="phone"), 400, "VALIDATION_ERROR"),
            (errors.ConflictError(), 409, "CONFLICT"),
            (errors.DeviceUnavailableError("d1", "Prêté"), 409, "DEVICE_UNAVAILABLE"),
            (errors.AlreadyReturnedError("l1"), 409, "ALREADY_RETURNED"),
            (errors.InsufficientStockError("p1", 3, 1), 409, "INSUFFICIENT_STOCK"),
            (errors.DocumentGenerationError(), 502, "DOCUMENT_GENERATION_FAILED"),
        ],
    )
    def test_typed_errors(self, exc, status_code, code):
        response = errors.exception_handler(exc, {})
        assert response.status_code == status_code
        assert response.data["code"] == code
        assert response.data["detail"]

    def test_conflicts_are_conflicts(self):
        assert isinstance(errors.InsufficientStockError("p1", 3, 1), errors.ConflictError)
        assert errors.ValidationError("x", field="phone").as_dict() == {
            "detail": "x", "code": "VALIDATION_ERROR", "field": "phone",
        }

    def test_other_exceptions_are_left_to_drf(self):
        assert errors.exception_handler(RuntimeError("boom"), {}) is None


class TestActor:
    def test_filter_adds_actor(self):
        record = logging.LogRecord("workshop", logging.INFO, __file__, 1, "msg", None, None)
        clear_actor()
        ActorFilter().filter(record)
        assert record.actor == "-"

        bind_actor("paul")
        try:
            ActorFilter().filter(record)
            assert record.actor == "paul"
        finally:
            clear_actor()

    def test_header_actor_is_cleared_after_request(self, api_client, intervention):
        api_client.patch(
            f"/api/v1/interventions/{intervention.pk}/",
            {"notes": "Rappeler le client"},
            format="json",
            HTTP_X_TECHNICIEN="marc",
        )
        assert get_actor() is None
