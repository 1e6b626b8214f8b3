"""Tests for the POS HTTP API."""

import json

import pytest
from django.urls import reverse

from loyaltyhub.models import Customer, Visit


pytestmark = pytest.mark.django_db


@pytest.fixture
def api(client, venue_visit):
    """POST/GET helpers authenticated as High Street."""

    class Api:
        venue = venue_visit

        def post(self, name, payload, api_key=None):
            return client.post(
                reverse(f"loyaltyhub:{name}"),
                data=payload if isinstance(payload, str) else json.dumps(payload),
                content_type="application/json",
                HTTP_X_API_KEY=venue_visit.api_key if api_key is None else api_key,
            )

        def get(self, name, params=None):
            return client.get(
                reverse(f"loyaltyhub:{name}"),
                params or {},
                HTTP_X_API_KEY=venue_visit.api_key,
            )

    return Api()


class TestAuthentication:
    def test_missing_key(self, client, venue_visit):
        response = client.post(
            reverse("loyaltyhub:identify"), data="{}", content_type="application/json"
        )
        assert response.status_code == 401
        assert response.json()["error"] == "MISSING_API_KEY"

    def test_invalid_key(self, api):
        response = api.post("identify", {"identifier": "x"}, api_key="wrong")
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_API_KEY"

    def test_inactive_venue(self, api, venue_visit):
        venue_visit.is_active = False
        venue_visit.save()
        response = api.post("identify", {"identifier": "x"})
        assert response.status_code == 403
        assert response.json()["error"] == "VENUE_INACTIVE"

    def test_method_not_allowed(self, api):
        response = api.get("identify")
        assert response.status_code == 405


class TestIdentifyEndpoint:
    def test_identify(self, api, customer):
        response = api.post("identify", {"rfid_code": "0004521983"})

        assert response.status_code == 200
        data = response.json()
        assert data["found"] is True
        assert data["customer_id"] == customer.pk
        assert data["tier"] == "Member"
        assert data["wet_discount"] == 5.0
        assert data["discount_type"] == "discount"

    def test_not_found(self, api):
        response = api.post("identify", {"identifier": "nobody"})
        assert response.status_code == 404
        assert response.json()["error"] == "CUSTOMER_NOT_FOUND"

    def test_missing_identifier(self, api):
        response = api.post("identify", {})
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"

    def test_bad_json(self, api):
        response = api.post("identify", "{not json")
        assert response.status_code == 400


class TestRegisterEndpoint:
    def test_register(self, api):
        response = api.post(
            "register",
            {"name": "Alice", "email": "alice@example.com", "dob": "1990-04-01", "rfid_code": "0001"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["home_venue"] == "High Street"
        assert Customer.objects.get(pk=data["customer_id"]).identifiers.count() == 1

    def test_duplicate_email(self, api, customer):
        response = api.post("register", {"name": "Alice", "email": "jane@example.com"})
        assert response.status_code == 409
        assert response.json()["error"] == "DUPLICATE_EMAIL"

    def test_bad_dob(self, api):
        response = api.post("register", {"name": "Alice", "dob": "01/04/1990"})
        assert response.status_code == 400


class TestIdentifierEndpoint:
    def test_add(self, api, customer):
        response = api.post(
            "identifiers", {"customer_id": customer.pk, "value": "0009990001", "label": "Card"}
        )
        assert response.status_code == 201
        assert response.json()["value"] == "0009990001"

    def test_duplicate(self, api, customer, customer_b):
        response = api.post("identifiers", {"customer_id": customer_b.pk, "value": "0004521983"})
        assert response.status_code == 409

    def test_unknown_customer(self, api):
        response = api.post("identifiers", {"customer_id": 999, "value": "0009990001"})
        assert response.status_code == 404


class TestTransactionEndpoint:
    PAYLOAD = {
        "total_amount": "24.50",
        "wet_total": 14.5,
        "dry_total": 10,
        "discount_amount": "2.45",
        "discount_type": "discount",
        "tier_at_visit": "Member",
        "ticket_id": "T-1",
        "items": [
            {"product_name": "Pint of Bitter", "quantity": 2, "price": "4.50", "is_wet": True},
        ],
    }

    def test_record(self, api, customer):
        response = api.post("transaction", {"customer_id": customer.pk, **self.PAYLOAD})

        assert response.status_code == 201
        visit = Visit.objects.get(pk=response.json()["transaction_id"])
        assert visit.venue == api.venue
        assert visit.items.get().quantity == 2

    def test_retry_is_idempotent(self, api, customer):
        first = api.post("transaction", {"customer_id": customer.pk, **self.PAYLOAD})
        second = api.post("transaction", {"customer_id": customer.pk, **self.PAYLOAD})

        assert first.json()["transaction_id"] == second.json()["transaction_id"]
        assert Visit.objects.count() == 1

    def test_unknown_customer(self, api):
        response = api.post("transaction", {"customer_id": 999, **self.PAYLOAD})
        assert response.status_code == 404

    def test_bad_amount(self, api, customer):
        response = api.post(
            "transaction", {"customer_id": customer.pk, "total_amount": "lots"}
        )
        assert response.status_code == 400

    def test_non_finite_quantity(self, api, customer):
        body = (
            '{"customer_id": ' + str(customer.pk) + ', "total_amount": 5,'
            ' "items": [{"product_name": "Lager", "quantity": NaN}]}'
        )
        response = api.post("transaction", body)

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_REQUEST"
        assert Visit.objects.count() == 0

    def test_infinite_amount(self, api, customer):
        response = api.post(
            "transaction", {"customer_id": customer.pk, "total_amount": "Infinity"}
        )
        assert response.status_code == 400

    def test_numeric_promo_code(self, api, customer, promo_summer):
        response = api.post(
            "transaction",
            {"customer_id": customer.pk, **self.PAYLOAD, "promo_code": 42, "ticket_id": 7},
        )

        assert response.status_code == 201
        visit = Visit.objects.get()
        assert visit.promo_code == "42"
        assert visit.ticket_id == "7"


class TestSyncEndpoint:
    def test_sync(self, api, customer, customer_b):
        response = api.get("sync")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["sync_time"]

    def test_cursor_in_future(self, api, customer):
        response = api.get("sync", {"updated_since": "2999-01-01T00:00:00Z"})
        assert response.json()["count"] == 0

    def test_bad_cursor(self, api):
        response = api.get("sync", {"updated_since": "yesterday"})
        assert response.status_code == 400


class TestPromoEndpoints:
    def test_validate(self, api, promo_summer):
        response = api.post("promo-validate", {"code": "summer"})
        assert response.status_code == 200
        assert response.json()["promo"]["wet_discount"] == 20.0

    def test_validate_invalid(self, api):
        response = api.post("promo-validate", {"code": "NOPE"})
        assert response.status_code == 400
        assert response.json()["error_code"] == "PROMO_NOT_FOUND"

    def test_validate_numeric_code(self, api, promo_summer):
        response = api.post("promo-validate", {"code": 123})
        assert response.status_code == 400
        assert response.json()["error_code"] == "PROMO_NOT_FOUND"

    def test_apply(self, api, customer, promo_summer):
        response = api.post(
            "promo-apply",
            {
                "code": "SUMMER",
                "customer_id": customer.pk,
                "base_wet_discount": 10,
                "base_dry_discount": 10,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["discount_type"] == "promo"
        assert (data["wet_discount"], data["dry_discount"]) == (20.0, 15.0)

    def test_apply_bonus_as_guest(self, api, bonus_double):
        response = api.post("promo-apply", {"code": "DOUBLE", "base_wet_discount": 10})
        assert response.status_code == 400
        assert response.json()["reason"] == "PROMO_MEMBERSHIP_REQUIRED"
