# tests/test_loans.py
import datetime

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from core import exceptions as errors
from loans import services
from loans.models import Loan, LoanerDevice

pytestmark = pytest.mark.django_db


def open_loans(device):
    return Loan.objects.filter(loaner_device=device, status=Loan.Status.OPEN).count()


class TestLoanLedger:
    def test_open_close_reopen_scenario(self, loaner, make_customer):
        """D1 prêté à C1, refusé à C2, rendu, puis prêté à C2."""
        c1 = make_customer(last_name="Un")
        c2 = make_customer(last_name="Deux")

        loan1 = services.open_loan(loaner.pk, c1.pk)
        loaner.refresh_from_db()
        assert loaner.status == LoanerDevice.Status.LOANED
        assert loan1.status == Loan.Status.OPEN

        with pytest.raises(errors.DeviceUnavailableError):
            services.open_loan(loaner.pk, c2.pk)
        assert open_loans(loaner) == 1

        services.close_loan(loan1.pk, condition_at_return="Bon")
        loaner.refresh_from_db()
        assert loaner.status == LoanerDevice.Status.AVAILABLE

        loan2 = services.open_loan(loaner.pk, c2.pk)
        assert loan2.client_id == c2.pk
        assert open_loans(loaner) == 1

    def test_close_twice_fails(self, loaner, customer):
        loan = services.open_loan(loaner.pk, customer.pk)
        services.close_loan(loan.pk)

        with pytest.raises(errors.AlreadyReturnedError):
            services.close_loan(loan.pk)

        assert Loan.objects.filter(loaner_device=loaner, status=Loan.Status.RETURNED).count() == 1
        loaner.refresh_from_db()
        assert loaner.status == LoanerDevice.Status.AVAILABLE

    def test_close_records_condition_on_loan_and_device(self, loaner, customer):
        loan = services.open_loan(loaner.pk, customer.pk, notes="Prêt pendant réparation")
        assert loan.condition_at_loan == "Bon"

        closed = services.close_loan(loan.pk, condition_at_return="À réparer", notes="Hublot rayé")

        assert closed.returned_at is not None
        assert closed.condition_at_return == "À réparer"
        assert closed.notes == "Hublot rayé"
        loaner.refresh_from_db()
        assert loaner.condition == "À réparer"

    def test_close_unknown_loan(self, db):
        with pytest.raises(errors.NotFoundError):
            services.close_loan("1f0c6c07-0000-4000-8000-000000000000")

    def test_open_on_maintenance_device(self, make_loaner, customer):
        device = make_loaner(status=LoanerDevice.Status.MAINTENANCE)
        with pytest.raises(errors.DeviceUnavailableError) as exc:
            services.open_loan(device.pk, customer.pk)
        assert exc.value.data["current_status"] == "En maintenance"
        assert not Loan.objects.exists()

    def test_open_with_unknown_client_writes_nothing(self, loaner):
        with pytest.raises(errors.InvalidReferenceError):
            services.open_loan(loaner.pk, "not-a-uuid")
        loaner.refresh_from_db()
        assert loaner.status == LoanerDevice.Status.AVAILABLE

    def test_open_linked_to_intervention(self, loaner, customer, intervention):
        loan = services.open_loan(loaner.pk, customer.pk, intervention_id=intervention.pk)
        assert loan.intervention_id == intervention.pk

    def test_database_rejects_second_open_loan(self, loaner, customer):
        Loan.objects.create(loaner_device=loaner, client=customer)
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Loan.objects.create(loaner_device=loaner, client=customer)

    def test_delete_returned_loan_only(self, loaner, customer):
        loan = services.open_loan(loaner.pk, customer.pk)
        with pytest.raises(errors.ConflictError):
            services.delete_loan(loan.pk)

        services.close_loan(loan.pk)
        services.delete_loan(loan.pk)
        assert not Loan.objects.exists()

    def test_update_only_touches_return_date_and_notes(self, loaner, customer):
        loan = services.open_loan(loaner.pk, customer.pk)
        new_date = timezone.localdate() + datetime.timedelta(days=10)

        updated = services.update_loan(loan.pk, expected_return_date=new_date, notes="Prolongé", status="Retourné")

        assert updated.expected_return_date == new_date
        assert updated.notes == "Prolongé"
        assert updated.status == Loan.Status.OPEN


class TestLateStatus:
    def test_late_is_derived_not_stored(self, loaner, customer):
        yesterday = timezone.localdate() - datetime.timedelta(days=1)
        loan = services.open_loan(loaner.pk, customer.pk, expected_return_date=yesterday)

        assert loan.status == Loan.Status.OPEN
        assert loan.compute_effective_status() == Loan.LATE
        annotated = Loan.objects.with_effective_status().get(pk=loan.pk)
        assert annotated.effective_status == Loan.LATE
        assert list(Loan.objects.late()) == [loan]

    def test_not_late_on_due_date(self, loaner, customer):
        today = timezone.localdate()
        loan = services.open_loan(loaner.pk, customer.pk, expected_return_date=today)
        assert loan.compute_effective_status() == Loan.Status.OPEN
        assert not Loan.objects.late().exists()

    def test_returned_loan_is_never_late(self, loaner, customer):
        yesterday = timezone.localdate() - datetime.timedelta(days=1)
        loan = services.open_loan(loaner.pk, customer.pk, expected_return_date=yesterday)
        services.close_loan(loan.pk)

        annotated = Loan.objects.with_effective_status().get(pk=loan.pk)
        assert annotated.effective_status == Loan.Status.RETURNED

    def test_filter_by_effective_status(self, make_loaner, customer):
        yesterday = timezone.localdate() - datetime.timedelta(days=1)
        late = services.open_loan(make_loaner().pk, customer.pk, expected_return_date=yesterday)
        on_time = services.open_loan(make_loaner().pk, customer.pk)

        assert list(Loan.objects.with_effective_status_equal(Loan.LATE)) == [late]
        assert list(Loan.objects.with_effective_status_equal(Loan.Status.OPEN)) == [on_time]


class TestLoanerDevicePool:
    def test_created_available_by_default(self, db):
        device = services.create_loaner_device(type="Micro-ondes")
        assert device.status == LoanerDevice.Status.AVAILABLE

    def test_cannot_be_created_loaned(self, db):
        with pytest.raises(errors.ValidationError):
            services.create_loaner_device(type="Micro-ondes", status=LoanerDevice.Status.LOANED)

    def test_maintenance_toggle(self, loaner):
        services.update_loaner_device(loaner.pk, status=LoanerDevice.Status.MAINTENANCE)
        loaner.refresh_from_db()
        assert loaner.status == LoanerDevice.Status.MAINTENANCE

        services.update_loaner_device(loaner.pk, status=LoanerDevice.Status.AVAILABLE, location="Étagère 2")
        loaner.refresh_from_db()
        assert loaner.status == LoanerDevice.Status.AVAILABLE
        assert loaner.location == "Étagère 2"

    def test_status_loaned_is_not_settable(self, loaner):
        with pytest.raises(errors.ValidationError):
            services.update_loaner_device(loaner.pk, status=LoanerDevice.Status.LOANED)

    def test_loaned_device_cannot_go_to_maintenance(self, loaner, customer):
        services.open_loan(loaner.pk, customer.pk)
        with pytest.raises(errors.ConflictError):
            services.update_loaner_device(loaner.pk, status=LoanerDevice.Status.MAINTENANCE)
        loaner.refresh_from_db()
        assert loaner.status == LoanerDevice.Status.LOANED

    def test_delete_blocked_while_loaned(self, loaner, customer):
        loan = services.open_loan(loaner.pk, customer.pk)
        with pytest.raises(errors.ConflictError):
            services.delete_loaner_device(loaner.pk)

        services.close_loan(loan.pk)
        services.delete_loaner_device(loaner.pk)
        assert not LoanerDevice.objects.filter(pk=loaner.pk).exists()

    def test_available_listing(self, make_loaner, customer):
        free = make_loaner(type="Aspirateur")
        busy = make_loaner(type="Lave-linge")
        services.open_loan(busy.pk, customer.pk)
        assert list(services.available_devices()) == [free]


class TestLoanApi:
    def test_open_and_return(self, api_client, loaner, customer):
        response = api_client.post(
            "/api/v1/loans/",
            {"loaner_device_id": str(loaner.pk), "client_id": str(customer.pk)},
            format="json",
        )
        assert response.status_code == 201, response.data
        loan_id = response.data["id"]
        assert response.data["effective_status"] == "En cours"

        response = api_client.post(f"/api/v1/loans/{loan_id}/return/", {"condition_at_return": "Bon"}, format="json")
        assert response.status_code == 200
        assert response.data["status"] == "Retourné"

        response = api_client.post(f"/api/v1/loans/{loan_id}/return/", {}, format="json")
        assert response.status_code == 409
        assert response.data["code"] == "ALREADY_RETURNED"

    def test_second_open_is_conflict(self, api_client, loaner, customer):
        payload = {"loaner_device_id": str(loaner.pk), "client_id": str(customer.pk)}
        assert api_client.post("/api/v1/loans/", payload, format="json").status_code == 201

        response = api_client.post("/api/v1/loans/", payload, format="json")
        assert response.status_code == 409
        assert response.data["code"] == "DEVICE_UNAVAILABLE"
        assert response.data["loaner_device"] == str(loaner.pk)

    def test_late_listing_and_filter(self, api_client, make_loaner, customer):
        yesterday = timezone.localdate() - datetime.timedelta(days=1)
        late = services.open_loan(make_loaner().pk, customer.pk, expected_return_date=yesterday)
        services.open_loan(make_loaner().pk, customer.pk)

        response = api_client.get("/api/v1/loans/late/")
        assert response.status_code == 200
        assert [row["id"] for row in response.data["results"]] == [str(late.pk)]

        response = api_client.get("/api/v1/loans/", {"status": "Retard"})
        assert response.data["count"] == 1
        assert response.data["results"][0]["effective_status"] == "Retard"

        response = api_client.get("/api/v1/loans/active/")
        assert response.data["count"] == 2

    def test_device_loan_history(self, api_client, loaner, customer):
        loan = services.open_loan(loaner.pk, customer.pk)
        services.close_loan(loan.pk)
        services.open_loan(loaner.pk, customer.pk)

        response = api_client.get(f"/api/v1/loaner-devices/{loaner.pk}/loans/")
        assert response.status_code == 200
        assert len(response.data) == 2

    def test_available_endpoint(self, api_client, make_loaner, customer):
        free = make_loaner()
        services.open_loan(make_loaner().pk, customer.pk)

        response = api_client.get("/api/v1/loaner-devices/available/")
        assert [row["id"] for row in response.data] == [str(free.pk)]

    def test_delete_loaned_device_is_conflict(self, api_client, loaner, customer):
        services.open_loan(loaner.pk, customer.pk)
        response = api_client.delete(f"/api/v1/loaner-devices/{loaner.pk}/")
        assert response.status_code == 409
        assert LoanerDevice.objects.filter(pk=loaner.pk).exists()
