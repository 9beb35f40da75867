# tests/conftest.py
from decimal import Decimal

import httpx
import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from customers.models import Client, Device
from loans.models import LoanerDevice
from stock.models import Part
from workshop import services as workshop_services

# Jeton décodé tel que le fournit JWTAuthentication (rôles Keycloak-like)
STAFF_TOKEN = {"realm_access": {"roles": ["ROLE_TECHNICIEN"]}}
VIEWER_TOKEN = {"realm_access": {"roles": ["ROLE_LECTEUR"]}}

DOCUMENTS = {
    "document_url": "https://documents.test/depots/fiche.pdf",
    "qr_code_url": "https://documents.test/depots/qr.png",
}


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="tech1", password="secret")


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user, token=STAFF_TOKEN)
    return client


@pytest.fixture
def viewer_client(user):
    client = APIClient()
    client.force_authenticate(user=user, token=VIEWER_TOKEN)
    return client


@pytest.fixture
def make_customer(db):
    def _make(**fields):
        data = {"last_name": "Martin", "first_name": "Julie", "phone": "0601020304", **fields}
        return Client.objects.create(**data)
    return _make


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture
def device(customer):
    return Device.objects.create(
        client=customer, type="Lave-linge", brand="Samsung", model="WW90T", serial_number="SN-0001"
    )


@pytest.fixture
def make_part(db):
    def _make(reference="P-001", stock_quantity=10, minimum_quantity=5, sale_price="12.00", **fields):
        return Part.objects.create(
            reference=reference,
            designation=fields.pop("designation", f"Pièce {reference}"),
            stock_quantity=stock_quantity,
            minimum_quantity=minimum_quantity,
            purchase_price=Decimal(fields.pop("purchase_price", "5.00")),
            sale_price=Decimal(sale_price),
            **fields,
        )
    return _make


@pytest.fixture
def make_loaner(db):
    def _make(**fields):
        data = {"type": "Lave-linge", "brand": "Bosch", "condition": "Bon", **fields}
        return LoanerDevice.objects.create(**data)
    return _make


@pytest.fixture
def loaner(make_loaner):
    return make_loaner(serial_number="PRET-001")


@pytest.fixture
def intervention(customer, device):
    return workshop_services.create_intervention(
        customer.pk, device_id=device.pk, description="Ne vidange plus"
    )


@pytest.fixture
def planned_intervention(intervention):
    return workshop_services.update_intervention(intervention.pk, status="Planifié")


@pytest.fixture
def documents_ok(monkeypatch):
    """Générateur de documents joignable : renvoie les URLs et garde les appels."""
    calls = []

    def fake_post(url, **kwargs):
        calls.append({"url": url, **kwargs})
        return httpx.Response(200, json=DOCUMENTS, request=httpx.Request("POST", url))

    monkeypatch.setattr("workshop.documents.httpx.post", fake_post)
    return calls


@pytest.fixture
def documents_down(monkeypatch):
    def fake_post(url, **kwargs):
        raise httpx.ConnectError("connection refused", request=httpx.Request("POST", url))

    monkeypatch.setattr("workshop.documents.httpx.post", fake_post)
