import json
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.management import call_command
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from bookings.models import Booking
from payments.models import Payment
from payments.services import reconciler
from payments.services.paystack import InitializedTransaction, VerifiedTransaction
from payments.services.signatures import compute_signature

WEBHOOK_SECRET = "sk_test_webhook"


class FakePaystack:
    def __init__(self, verify_status="success"):
        self.verify_status = verify_status
        self.verified = []

    def initialize_transaction(self, *, amount, email, reference, currency, metadata=None):
        return InitializedTransaction(
            authorization_url=f"https://checkout.paystack.com/{reference}",
            access_code="ac_123",
            raw={"reference": reference},
        )

    def verify_transaction(self, reference):
        self.verified.append(reference)
        return VerifiedTransaction(
            status=self.verify_status,
            transaction_id="4099260516",
            raw={"reference": reference, "status": self.verify_status},
        )


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def paystack(monkeypatch, settings):
    settings.PAYSTACK_SECRET_KEY = WEBHOOK_SECRET
    settings.PAYSTACK_USE_STUB = False
    fake = FakePaystack()
    monkeypatch.setattr(reconciler, "get_client", lambda config=None: fake)
    return fake


@pytest.fixture
def patient(db):
    return User.objects.create_user(
        username="ada@example.com",
        email="ada@example.com",
        password="examplepass",
        first_name="Ada",
        last_name="Okafor",
        phone="0803-000-0001",
    )


@pytest.fixture
def other_patient(db):
    return User.objects.create_user(
        username="tunde@example.com",
        email="tunde@example.com",
        password="examplepass",
        first_name="Tunde",
        last_name="Bello",
    )


@pytest.fixture
def staff(db):
    return User.objects.create_user(
        username="admin@example.com",
        email="admin@example.com",
        password="examplepass",
        role=User.ROLE_ADMIN,
        is_staff=True,
    )


@pytest.fixture
def booking(patient):
    return Booking.objects.create(
        user=patient,
        full_name="Ada Okafor",
        email="ada@example.com",
        phone="0803-000-0001",
        test_type="blood",
        appointment_date=timezone.localdate() + timedelta(days=2),
        appointment_time="10:00",
        location="lab2",
    )


def initialize(client, booking, **extra):
    payload = {"booking_id": booking.booking_id, "amount": "5000.00"}
    payload.update(extra)
    return client.post("/api/payments/initialize/", payload, format="json")


def post_webhook(client, event, secret=WEBHOOK_SECRET, signature=None):
    body = json.dumps(event, separators=(",", ":"))
    headers = {}
    if signature is None:
        signature = compute_signature(secret, body.encode("utf-8"))
    if signature:
        headers["HTTP_X_PAYSTACK_SIGNATURE"] = signature
    return client.post(
        "/api/payments/webhook/paystack/",
        data=body,
        content_type="application/json",
        **headers,
    )


def test_initialize_requires_authentication(db, client, booking):
    response = initialize(client, booking)

    assert response.status_code == 401


def test_initialize_returns_checkout_url(client, patient, booking, paystack):
    client.force_authenticate(user=patient)

    response = initialize(client, booking)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["payment"]["status"] == Payment.PROCESSING
    assert body["payment"]["booking_id"] == booking.booking_id
    assert body["payment"]["currency"] == "NGN"
    assert body["payment"]["authorization_url"].startswith("https://checkout.paystack.com/")


def test_initialize_accepts_numeric_booking_id(client, patient, booking, paystack):
    client.force_authenticate(user=patient)

    response = initialize(client, booking, booking_id=str(booking.pk))

    assert response.status_code == 201


def test_initialize_for_someone_elses_booking_is_not_found(client, other_patient, booking, paystack):
    client.force_authenticate(user=other_patient)

    response = initialize(client, booking)

    assert response.status_code == 404
    assert not Payment.objects.exists()


def test_initialize_while_active_payment_conflicts(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    assert initialize(client, booking).status_code == 201

    response = initialize(client, booking)

    assert response.status_code == 409
    assert Payment.objects.filter(booking=booking).count() == 1


def test_initialize_with_duplicate_reference_is_rejected(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    assert initialize(client, booking, payment_method="cash", reference="PAY_FIXED").status_code == 201

    response = initialize(client, booking, payment_method="cash", reference="PAY_FIXED")

    assert response.status_code == 400
    assert "reference" in response.json()


def test_initialize_rejects_non_positive_amount(client, patient, booking, paystack):
    client.force_authenticate(user=patient)

    response = initialize(client, booking, amount="0")

    assert response.status_code == 400
    assert "amount" in response.json()


def test_initialize_without_paystack_key_is_unavailable(client, patient, booking, settings):
    settings.PAYSTACK_SECRET_KEY = ""
    settings.PAYSTACK_USE_STUB = False
    client.force_authenticate(user=patient)

    response = initialize(client, booking)

    assert response.status_code == 503
    assert not Payment.objects.exists()


def test_cash_initialize_does_not_need_paystack(client, patient, booking, settings):
    settings.PAYSTACK_SECRET_KEY = ""
    client.force_authenticate(user=patient)

    response = initialize(client, booking, payment_method="cash")

    assert response.status_code == 201
    assert response.json()["message"] == "Cash payment initialized"
    assert response.json()["payment"]["status"] == Payment.PENDING


def test_webhook_success_confirms_booking_and_sends_receipt(client, patient, booking, paystack, mailoutbox):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    client.force_authenticate(user=None)

    response = post_webhook(
        client,
        {"event": "charge.success", "data": {"reference": reference, "id": 4099260516, "status": "success"}},
    )

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    payment = Payment.objects.get(reference=reference)
    assert payment.status == Payment.COMPLETED
    assert payment.transaction_id == "4099260516"
    booking.refresh_from_db()
    assert booking.status == Booking.CONFIRMED
    assert booking.payment_status == Booking.PAID
    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == ["ada@example.com"]
    assert reference in mailoutbox[0].body


def test_duplicate_success_webhook_is_idempotent(client, patient, booking, paystack, mailoutbox):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    client.force_authenticate(user=None)
    event = {"event": "charge.success", "data": {"reference": reference, "id": 1}}

    post_webhook(client, event)
    paid_at = Payment.objects.get(reference=reference).paid_at
    response = post_webhook(client, event)

    assert response.status_code == 200
    assert Payment.objects.get(reference=reference).paid_at == paid_at
    assert len(mailoutbox) == 1


def test_failed_webhook_after_success_is_ignored(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    client.force_authenticate(user=None)

    post_webhook(client, {"event": "charge.success", "data": {"reference": reference, "id": 1}})
    response = post_webhook(
        client, {"event": "charge.failed", "data": {"reference": reference, "gateway_response": "Declined"}}
    )

    assert response.status_code == 200
    payment = Payment.objects.get(reference=reference)
    assert payment.status == Payment.COMPLETED
    assert payment.retry_count == 0


def test_failed_webhook_marks_payment_failed(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    client.force_authenticate(user=None)

    post_webhook(
        client, {"event": "charge.failed", "data": {"reference": reference, "gateway_response": "Declined"}}
    )

    payment = Payment.objects.get(reference=reference)
    assert payment.status == Payment.FAILED
    assert payment.failure_reason == "Declined"
    assert payment.retry_count == 1
    booking.refresh_from_db()
    assert booking.payment_status == Booking.UNPAID


def test_webhook_with_bad_signature_is_rejected(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    client.force_authenticate(user=None)

    response = post_webhook(
        client,
        {"event": "charge.success", "data": {"reference": reference, "id": 1}},
        secret="sk_test_someone_else",
    )

    assert response.status_code == 400
    assert Payment.objects.get(reference=reference).status == Payment.PROCESSING


def test_webhook_without_signature_is_rejected(client, paystack, db):
    response = post_webhook(client, {"event": "charge.success", "data": {}}, signature="")

    assert response.status_code == 400


def test_webhook_with_malformed_body_is_rejected(client, paystack, db):
    body = b"not json"
    response = client.post(
        "/api/payments/webhook/paystack/",
        data=body,
        content_type="application/json",
        HTTP_X_PAYSTACK_SIGNATURE=compute_signature(WEBHOOK_SECRET, body),
    )

    assert response.status_code == 400


def test_webhook_for_unknown_reference_is_acknowledged(client, paystack, db):
    response = post_webhook(client, {"event": "charge.success", "data": {"reference": "PAY_MISSING", "id": 9}})

    assert response.status_code == 200


def test_webhook_without_secret_configured_errors(client, settings, db):
    settings.PAYSTACK_SECRET_KEY = ""

    response = post_webhook(client, {"event": "charge.success", "data": {}}, secret="anything")

    assert response.status_code == 500


def test_verify_endpoint_completes_payment(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]

    response = client.post(f"/api/payments/verify/{reference}/")

    assert response.status_code == 200
    assert response.json()["payment"]["status"] == Payment.COMPLETED
    assert paystack.verified == [reference]


def test_verify_after_completion_does_not_call_paystack(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    client.post(f"/api/payments/verify/{reference}/")

    response = client.post(f"/api/payments/verify/{reference}/")

    assert response.status_code == 200
    assert paystack.verified == [reference]


def test_verify_other_users_payment_is_not_found(client, patient, other_patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    client.force_authenticate(user=other_patient)

    response = client.post(f"/api/payments/verify/{reference}/")

    assert response.status_code == 404


def test_public_key_and_config_status(client, settings, db):
    settings.PAYSTACK_PUBLIC_KEY = "pk_test_abc"
    settings.PAYSTACK_SECRET_KEY = "sk_test_abc"
    settings.PAYSTACK_USE_STUB = False

    key_response = client.get("/api/payments/config/public-key/")
    status_response = client.get("/api/payments/config/status/")

    assert key_response.status_code == 200
    assert key_response.json() == {"public_key": "pk_test_abc"}
    body = status_response.json()
    assert body["configured"] is True
    assert body["stub"] is False
    assert "NGN" in body["supported_currencies"]


def test_user_payment_list_includes_summary(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    reconciler.mark_failed(Payment.objects.get(reference=reference), reason="Declined")
    initialize(client, booking, amount="7000.00", payment_method="cash")

    response = client.get("/api/payments/user/", {"limit": 1})

    assert response.status_code == 200
    body = response.json()
    assert len(body["payments"]) == 1
    assert body["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_items": 2,
        "has_next": True,
        "has_prev": False,
    }
    assert body["summary"]["total_payments"] == 2
    assert Decimal(body["summary"]["total_amount"]) == Decimal("12000.00")
    assert body["summary"]["failed_payments"] == 1
    assert body["summary"]["pending_payments"] == 1
    assert body["summary"]["completed_payments"] == 0


def test_user_payment_list_filters_by_status(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    initialize(client, booking, payment_method="cash")

    response = client.get("/api/payments/user/", {"status": Payment.COMPLETED})

    assert response.json()["payments"] == []


def test_payment_detail_is_scoped_to_owner(client, patient, other_patient, booking, paystack):
    client.force_authenticate(user=patient)
    payment_id = initialize(client, booking).json()["payment"]["id"]

    assert client.get(f"/api/payments/{payment_id}/").status_code == 200

    client.force_authenticate(user=other_patient)
    assert client.get(f"/api/payments/{payment_id}/").status_code == 404


def test_refund_is_staff_only(client, patient, staff, booking, paystack):
    client.force_authenticate(user=patient)
    body = initialize(client, booking).json()["payment"]
    client.post(f"/api/payments/verify/{body['reference']}/")

    response = client.post(f"/api/payments/{body['id']}/refund/", {"amount": "5000.00"}, format="json")
    assert response.status_code == 403

    client.force_authenticate(user=staff)
    response = client.post(
        f"/api/payments/{body['id']}/refund/",
        {"amount": "5000.00", "reason": "Sample lost"},
        format="json",
    )

    assert response.status_code == 200
    assert response.json()["status"] == Payment.REFUNDED
    booking.refresh_from_db()
    assert booking.payment_status == Booking.REFUNDED


def test_refund_of_unpaid_payment_is_rejected(client, patient, staff, booking, paystack):
    client.force_authenticate(user=patient)
    payment_id = initialize(client, booking).json()["payment"]["id"]
    client.force_authenticate(user=staff)

    response = client.post(f"/api/payments/{payment_id}/refund/", {"amount": "100.00"}, format="json")

    assert response.status_code == 400
    assert Payment.objects.get(pk=payment_id).status == Payment.PROCESSING


def test_staff_can_cancel_processing_payment(client, patient, staff, booking, paystack):
    client.force_authenticate(user=patient)
    payment_id = initialize(client, booking).json()["payment"]["id"]
    client.force_authenticate(user=staff)

    response = client.post(f"/api/payments/{payment_id}/cancel/", {"reason": "Duplicate"}, format="json")

    assert response.status_code == 200
    assert response.json()["status"] == Payment.CANCELLED
    assert response.json()["failure_reason"] == "Duplicate"

    again = client.post(f"/api/payments/{payment_id}/cancel/", {}, format="json")
    assert again.status_code == 400


def test_cancel_stale_payments_command(db, patient, booking, capsys):
    payment = reconciler.initialize_payment(
        user=patient, booking=booking, amount=Decimal("5000"), payment_method=Payment.CASH
    )
    Payment.objects.filter(pk=payment.pk).update(created_at=timezone.now() - timedelta(days=10))

    call_command("cancel_stale_payments", "--days", "7")

    payment.refresh_from_db()
    assert payment.status == Payment.CANCELLED
    assert "Cancelled 1 stale" in capsys.readouterr().out


def test_success_webhook_for_leftover_pending_is_acknowledged(client, patient, booking, paystack):
    Payment.objects.create(user=patient, booking=booking, reference="PAY_LEFTOVER", amount=Decimal("5000"))
    client.force_authenticate(user=patient)
    assert initialize(client, booking).status_code == 201
    client.force_authenticate(user=None)

    response = post_webhook(client, {"event": "charge.success", "data": {"reference": "PAY_LEFTOVER", "id": 9}})

    assert response.status_code == 200
    assert Payment.objects.get(reference="PAY_LEFTOVER").status == Payment.PENDING
    assert Payment.objects.filter(booking=booking, status=Payment.PROCESSING).count() == 1


def test_user_payment_summary_follows_filters(client, patient, booking, paystack):
    client.force_authenticate(user=patient)
    reference = initialize(client, booking).json()["payment"]["reference"]
    reconciler.mark_failed(Payment.objects.get(reference=reference), reason="Declined")
    initialize(client, booking, amount="7000.00", payment_method="cash")

    response = client.get("/api/payments/user/", {"status": Payment.PENDING})

    summary = response.json()["summary"]
    assert summary["total_payments"] == 1
    assert Decimal(summary["total_amount"]) == Decimal("7000.00")
    assert summary["pending_payments"] == 1
    assert summary["failed_payments"] == 0
