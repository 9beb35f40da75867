# tests/test_stock.py
import pytest
from django.db import IntegrityError, transaction

from core import exceptions as errors
from stock import services
from stock.models import Part
from workshop import services as workshop_services

pytestmark = pytest.mark.django_db


class TestConsume:
    def test_decrements_stock(self, make_part):
        part = make_part(stock_quantity=10)
        consumed = services.consume(part.pk, 3)
        assert consumed.stock_quantity == 7
        part.refresh_from_db()
        assert part.stock_quantity == 7

    def test_insufficient_stock_leaves_stock_unchanged(self, make_part):
        part = make_part(stock_quantity=2)
        with pytest.raises(errors.InsufficientStockError) as exc:
            services.consume(part.pk, 3)
        assert exc.value.data == {"part": str(part.pk), "requested": 3, "available": 2}
        part.refresh_from_db()
        assert part.stock_quantity == 2

    def test_whole_stock_can_be_used(self, make_part):
        part = make_part(stock_quantity=2)
        assert services.consume(part.pk, 2).stock_quantity == 0

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, make_part, quantity):
        part = make_part()
        with pytest.raises(errors.ValidationError):
            services.consume(part.pk, quantity)

    def test_inactive_part_cannot_be_used(self, make_part):
        part = make_part()
        services.deactivate(part.pk)
        with pytest.raises(errors.NotFoundError):
            services.consume(part.pk, 1)

    def test_database_rejects_negative_stock(self, make_part):
        part = make_part(stock_quantity=1)
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Part.objects.filter(pk=part.pk).update(stock_quantity=-1)


class TestAlerts:
    def test_alert_predicate(self, make_part):
        assert make_part(reference="A", stock_quantity=4, minimum_quantity=5).in_alert
        assert not make_part(reference="B", stock_quantity=5, minimum_quantity=5).in_alert

    def test_inactive_parts_are_not_alerting(self, make_part):
        part = make_part(stock_quantity=0)
        services.deactivate(part.pk)
        assert not services.alerts().exists()

    def test_part_stays_in_alert_after_usage(self, api_client, make_part, intervention):
        """P1 (stock 3, minimum 5) en alerte avant et après une sortie de 1."""
        p1 = make_part(reference="P1", stock_quantity=3, minimum_quantity=5)
        make_part(reference="P2", stock_quantity=20, minimum_quantity=5)

        response = api_client.get("/api/v1/parts/alerts/")
        assert response.status_code == 200
        assert response.data["count"] == 1
        assert [row["reference"] for row in response.data["results"]] == ["P1"]

        workshop_services.record_part_usage(intervention.pk, p1.pk, 1)
        p1.refresh_from_db()
        assert p1.stock_quantity == 2

        response = api_client.get("/api/v1/parts/alerts/")
        assert [row["reference"] for row in response.data["results"]] == ["P1"]
        assert response.data["results"][0]["stock_quantity"] == 2
        assert response.data["results"][0]["in_alert"] is True


class TestPartApi:
    def test_create_and_list(self, api_client):
        response = api_client.post(
            "/api/v1/parts/",
            {
                "reference": "CRB-120",
                "designation": "Courroie",
                "compatible_models": ["WW90T"],
                "stock_quantity": 4,
                "purchase_price": "3.50",
                "sale_price": "9.90",
            },
            format="json",
        )
        assert response.status_code == 201, response.data
        assert response.data["minimum_quantity"] == 5
        assert response.data["in_alert"] is True

        response = api_client.get("/api/v1/parts/", {"search": "courroie"})
        assert response.data["count"] == 1

    def test_absolute_stock_edit(self, api_client, make_part):
        part = make_part(stock_quantity=1)
        response = api_client.patch(f"/api/v1/parts/{part.pk}/", {"stock_quantity": 12}, format="json")
        assert response.status_code == 200
        assert response.data["stock_quantity"] == 12

    def test_negative_stock_edit_is_rejected(self, api_client, make_part):
        part = make_part(stock_quantity=1)
        response = api_client.patch(f"/api/v1/parts/{part.pk}/", {"stock_quantity": -4}, format="json")
        assert response.status_code == 400
        assert response.data["code"] == "VALIDATION_ERROR"
        assert "stock_quantity" in response.data["errors"]
        part.refresh_from_db()
        assert part.stock_quantity == 1

    def test_missing_reference_is_rejected(self, api_client):
        response = api_client.post(
            "/api/v1/parts/", {"designation": "Joint", "purchase_price": "1", "sale_price": "2"}, format="json"
        )
        assert response.status_code == 400
        assert "reference" in response.data["errors"]

    def test_delete_is_soft(self, api_client, make_part, intervention):
        part = make_part()
        workshop_services.record_part_usage(intervention.pk, part.pk, 1)

        response = api_client.delete(f"/api/v1/parts/{part.pk}/")
        assert response.status_code == 204
        part.refresh_from_db()
        assert part.active is False
        assert part.usages.count() == 1

        assert api_client.get("/api/v1/parts/").data["count"] == 0
        assert api_client.get("/api/v1/parts/", {"active": "false"}).data["count"] == 1

    def test_unknown_part(self, api_client, db):
        response = api_client.get("/api/v1/parts/1f0c6c07-0000-4000-8000-000000000000/")
        assert response.status_code == 404
        assert response.data["code"] == "NOT_FOUND"
