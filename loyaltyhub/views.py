"""
POS API endpoints.

Every request authenticates with the venue API key header (G3); the
authenticated venue is the visiting venue for all operations.

    POST identify/          {"identifier": "..."}  (or rfid_code / qr_code / email)
    POST register/          {"name": "...", "email", "phone", "dob", "rfid_code"}
    POST identifiers/       {"customer_id": 1, "value": "...", "label": "..."}
    POST transaction/       {"customer_id": 1, "total_amount": ..., "items": [...]}
    GET  sync/              ?updated_since=2025-01-01T00:00:00Z
    POST promos/validate/   {"code": "...", "customer_id", "total_amount"}
    POST promos/apply/      {"code": "...", "customer_id", "base_wet_discount", ...}
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, is_dataclass
from decimal import Decimal, InvalidOperation

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from loyaltyhub.conf import loyaltyhub_settings
from loyaltyhub.exceptions import LoyaltyError
from loyaltyhub.gates import GateError, Gates
from loyaltyhub.service import LoyaltyHub
from loyaltyhub.services.transactions import DiscountInfo, LineItem, SaleTotals

logger = logging.getLogger("loyaltyhub.api")

AUTH_ERRORS = {
    "missing": ("MISSING_API_KEY", 401),
    "invalid": ("INVALID_API_KEY", 401),
    "inactive": ("VENUE_INACTIVE", 403),
}

ERROR_STATUS = {
    "INVALID_REQUEST": 400,
    "VENUE_INACTIVE": 403,
    "VENUE_NOT_FOUND": 404,
    "CUSTOMER_NOT_FOUND": 404,
    "DUPLICATE_EMAIL": 409,
    "DUPLICATE_RFID": 409,
    "DUPLICATE_IDENTIFIER": 409,
    "PROMO_USAGE_LIMIT": 409,
}


class LoyaltyJSONEncoder(DjangoJSONEncoder):
    """Percentages and amounts go out as JSON numbers."""

    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        return super().default(o)


def json_response(data, status: int = 200) -> JsonResponse:
    if is_dataclass(data):
        data = asdict(data)
    return JsonResponse(data, status=status, encoder=LoyaltyJSONEncoder)


def error_response(exc: LoyaltyError) -> JsonResponse:
    return json_response(exc.as_dict(), status=ERROR_STATUS.get(exc.code, 500))


def _decimal(data: dict, key: str, default: str | None = "0") -> Decimal | None:
    value = data.get(key)
    if value in (None, ""):
        return Decimal(default) if default is not None else None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise LoyaltyError("INVALID_REQUEST", message=f"'{key}' must be a number") from exc
    if not number.is_finite():
        raise LoyaltyError("INVALID_REQUEST", message=f"'{key}' must be a finite number")
    return number


def _optional_int(data: dict, key: str) -> int | None:
    value = data.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise LoyaltyError("INVALID_REQUEST", message=f"'{key}' must be an integer") from exc


def _required_int(data: dict, key: str) -> int:
    value = _optional_int(data, key)
    if value is None:
        raise LoyaltyError("INVALID_REQUEST", message=f"'{key}' is required")
    return value


@method_decorator(csrf_exempt, name="dispatch")
class VenueAPIView(View):
    """
    Base view: venue authentication, JSON parsing and error mapping.

    Sets self.venue before the handler runs.
    """

    def dispatch(self, request, *args, **kwargs):
        api_key = request.headers.get(loyaltyhub_settings.API_KEY_HEADER, "")
        try:
            self.venue = Gates.venue_authentication(api_key)
        except GateError as exc:
            code, status = AUTH_ERRORS.get(
                exc.details.get("reason"), ("INVALID_API_KEY", 401)
            )
            return json_response({"error": code, "message": exc.message}, status=status)

        try:
            return super().dispatch(request, *args, **kwargs)
        except LoyaltyError as exc:
            logger.info("%s rejected for venue %s: %s", request.path, self.venue.pk, exc.code)
            return error_response(exc)

    def json_body(self, request) -> dict:
        try:
            data = json.loads(request.body or b"{}")
        except (json.JSONDecodeError, ValueError) as exc:
            raise LoyaltyError("INVALID_REQUEST", message="Invalid JSON") from exc
        if not isinstance(data, dict):
            raise LoyaltyError("INVALID_REQUEST", message="JSON object expected")
        return data


class IdentifyView(VenueAPIView):
    def post(self, request):
        data = self.json_body(request)
        identifier = (
            data.get("identifier")
            or data.get("rfid_code")
            or data.get("qr_code")
            or data.get("email")
        )
        if not identifier:
            raise LoyaltyError("INVALID_REQUEST", message="An identifier is required")

        result = LoyaltyHub.identify(str(identifier), self.venue.pk)
        if not result.found:
            return json_response(
                {"error": result.error_code, "message": result.message},
                status=ERROR_STATUS.get(result.error_code, 404),
            )
        return json_response(result)


class RegisterView(VenueAPIView):
    def post(self, request):
        data = self.json_body(request)

        dob = None
        if data.get("dob"):
            try:
                dob = parse_date(str(data["dob"]))
            except ValueError:
                dob = None
            if dob is None:
                raise LoyaltyError("INVALID_REQUEST", message="'dob' must be YYYY-MM-DD")

        registration = LoyaltyHub.register(
            self.venue.pk,
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            dob=dob,
            rfid=str(data.get("rfid_code") or data.get("rfid") or ""),
        )
        return json_response(registration, status=201)


class IdentifierView(VenueAPIView):
    def post(self, request):
        data = self.json_body(request)
        ident = LoyaltyHub.add_identifier(
            _required_int(data, "customer_id"),
            str(data.get("value") or data.get("rfid_code") or ""),
            label=str(data.get("label") or ""),
            venue_id=self.venue.pk,
        )
        return json_response({"identifier_id": ident.pk, "value": ident.value}, status=201)


class TransactionView(VenueAPIView):
    def post(self, request):
        data = self.json_body(request)

        items = data.get("items") or []
        if not isinstance(items, list):
            raise LoyaltyError("INVALID_REQUEST", message="'items' must be a list")

        line_items = [
            LineItem(
                product_name=str(item.get("product_name") or "").strip(),
                product_group=str(item.get("product_group") or "").strip(),
                quantity=_decimal(item, "quantity", default="1"),
                price=_decimal(item, "price"),
                is_wet=bool(item.get("is_wet")),
            )
            for item in items
            if isinstance(item, dict)
        ]

        visit_id = LoyaltyHub.record_transaction(
            _required_int(data, "customer_id"),
            self.venue.pk,
            SaleTotals(
                total_amount=_decimal(data, "total_amount"),
                wet_total=_decimal(data, "wet_total"),
                dry_total=_decimal(data, "dry_total"),
            ),
            DiscountInfo(
                discount_amount=_decimal(data, "discount_amount"),
                discount_type=str(data.get("discount_type") or ""),
                tier_at_visit=str(data.get("tier_at_visit") or ""),
            ),
            promo_code=str(data.get("promo_code") or ""),
            line_items=line_items,
            ticket_id=str(data.get("ticket_id") or ""),
        )
        return json_response({"success": True, "transaction_id": visit_id}, status=201)


class SyncView(VenueAPIView):
    def get(self, request):
        updated_since = None
        raw = request.GET.get("updated_since")
        if raw:
            try:
                updated_since = parse_datetime(raw)
            except ValueError:
                updated_since = None
            if updated_since is None:
                raise LoyaltyError(
                    "INVALID_REQUEST", message="'updated_since' must be an ISO datetime"
                )
            if timezone.is_naive(updated_since):
                updated_since = timezone.make_aware(updated_since)

        return json_response(LoyaltyHub.sync(self.venue.pk, updated_since=updated_since))


class PromoValidateView(VenueAPIView):
    def post(self, request):
        data = self.json_body(request)
        validation = LoyaltyHub.validate_promo(
            str(data.get("code") or ""),
            self.venue.pk,
            customer_id=_optional_int(data, "customer_id"),
            total_amount=_decimal(data, "total_amount", default=None),
        )
        return json_response(validation, status=200 if validation.valid else 400)


class PromoApplyView(VenueAPIView):
    def post(self, request):
        data = self.json_body(request)
        application = LoyaltyHub.apply_promo(
            str(data.get("code") or ""),
            self.venue.pk,
            customer_id=_optional_int(data, "customer_id"),
            base_wet=_decimal(data, "base_wet_discount"),
            base_dry=_decimal(data, "base_dry_discount"),
        )
        return json_response(application, status=200 if application.success else 400)
