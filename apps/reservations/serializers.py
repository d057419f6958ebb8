"""Serializers for the reservation engine."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

from .conf import reservation_settings
from .domain.entities import BookingRequest, Payer, Recurrence
from .domain.exceptions import ReservationValidationError
from .domain.recurrence import Weekday
from .models import Reservation

TIME_FORMAT = "%H:%M"
TIME_INPUT_FORMATS = ["%H:%M", "%H:%M:%S"]


def slot_field(**kwargs):
    return serializers.TimeField(format=TIME_FORMAT, input_formats=TIME_INPUT_FORMATS, **kwargs)


class SlotSelectionSerializer(serializers.Serializer):
    """One click on the slot board."""

    court = serializers.IntegerField()
    selection = serializers.ListField(child=slot_field(), required=False, default=list)
    clicked = slot_field()


class BookingRequestSerializer(serializers.Serializer):
    """
    Typed boundary for reservation requests.

    Accepts either ``date`` or the recurrence fields. Subclasses pin one
    of the two forms for the single and bulk endpoints.
    """

    SCHEDULE = None  # "single", "bulk" or None for either

    court = serializers.IntegerField()
    user = serializers.IntegerField(required=False, allow_null=True)
    username = serializers.CharField(required=False, allow_blank=True, default="")
    role_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    slots = serializers.ListField(child=slot_field(), allow_empty=False)
    date = serializers.DateField(required=False, allow_null=True)
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    weekdays = serializers.ListField(
        child=serializers.ChoiceField(choices=[(day.value, day.name.title()) for day in Weekday]),
        required=False,
        allow_empty=False,
    )
    group_name = serializers.CharField(required=False, allow_blank=True, default="", max_length=120)
    heater = serializers.BooleanField(required=False, default=False)
    light = serializers.BooleanField(required=False, default=False)
    allow_overdraft = serializers.BooleanField(required=False, default=False)
    request_id = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=64)
    created_by = serializers.CharField(required=False, allow_blank=True, max_length=50)

    def validate_user(self, value):  # type: ignore
        if value is not None and not get_user_model().objects.filter(pk=value).exists():
            raise serializers.ValidationError("Unknown user.")
        return value

    def validate(self, attrs):  # type: ignore
        has_date = attrs.get("date") is not None
        recurrence_fields = ("start_date", "end_date", "weekdays")
        has_recurrence = any(attrs.get(name) not in (None, []) for name in recurrence_fields)

        if self.SCHEDULE == "single" and not has_date:
            raise serializers.ValidationError({"date": "This field is required."})
        if self.SCHEDULE == "bulk":
            missing = {name: "This field is required." for name in recurrence_fields if not attrs.get(name)}
            if missing:
                raise serializers.ValidationError(missing)
            if not attrs.get("group_name", "").strip():
                raise serializers.ValidationError({"group_name": "Recurring reservations need a group name."})
        if has_date and has_recurrence:
            raise serializers.ValidationError("Give either a date or a recurrence, not both.")
        if not has_date and not has_recurrence:
            raise serializers.ValidationError("A date or a recurrence is required.")
        if has_recurrence and attrs.get("start_date") and attrs.get("end_date"):
            if attrs["start_date"] > attrs["end_date"]:
                raise serializers.ValidationError({"end_date": "End date must not be before start date."})
        return attrs

    def to_request(self) -> BookingRequest:
        """Build the immutable request; domain validation errors surface as field errors."""
        data = self.validated_data
        username = data.get("username", "")
        if not username and data.get("user") is not None:
            user = get_user_model().objects.filter(pk=data["user"]).first()
            username = user.get_username() if user else ""
        payer = Payer(user_id=data.get("user"), role_id=data.get("role_id") or None, display_name=username)
        recurrence = None
        try:
            if data.get("start_date"):
                recurrence = Recurrence(
                    start_date=data["start_date"],
                    end_date=data["end_date"],
                    weekdays=tuple(data["weekdays"]),
                )
            return BookingRequest(
                court_id=data["court"],
                payer=payer,
                slots=tuple(data["slots"]),
                date=data.get("date"),
                recurrence=recurrence,
                heater=data.get("heater", False),
                light=data.get("light", False),
                allow_overdraft=data.get("allow_overdraft", False),
                group_name=data.get("group_name", ""),
                request_id=data.get("request_id") or None,
                created_by=data.get("created_by") or reservation_settings().ledger_created_by,
            )
        except ReservationValidationError as exc:
            raise serializers.ValidationError({"code": exc.code, "detail": exc.message})


class SingleReservationSerializer(BookingRequestSerializer):
    SCHEDULE = "single"


class BulkReservationSerializer(BookingRequestSerializer):
    SCHEDULE = "bulk"


class ReservationSerializer(serializers.ModelSerializer):
    start_time = serializers.TimeField(format=TIME_FORMAT)
    end_time = serializers.TimeField(format=TIME_FORMAT)
    court_name = serializers.ReadOnlyField(source="court.name")

    class Meta:
        model = Reservation
        fields = [
            "id",
            "court",
            "court_name",
            "date",
            "start_time",
            "end_time",
            "slots",
            "duration",
            "user",
            "username",
            "is_guest_reservation",
            "total_cost",
            "amount_paid",
            "original_price",
            "discount_percentage",
            "heater",
            "light",
            "allow_overdraft",
            "overdraft_used",
            "status",
            "bulk_group_name",
            "batch_id",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class BatchResultSerializer(serializers.Serializer):
    batch_id = serializers.UUIDField()
    state = serializers.CharField(source="state.value")
    reservation_ids = serializers.ListField(child=serializers.IntegerField())
    dates = serializers.ListField(child=serializers.DateField())
    total_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    amount_per_session = serializers.DecimalField(max_digits=12, decimal_places=2)
    overdraft_sessions = serializers.ListField(
        child=serializers.DecimalField(max_digits=12, decimal_places=2)
    )
    overdraft_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    new_balance = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    ledger_activity_id = serializers.IntegerField(allow_null=True)
    replayed = serializers.BooleanField()


class QuoteResultSerializer(serializers.Serializer):
    price = serializers.SerializerMethodField()
    dates = serializers.ListField(child=serializers.DateField())
    session_count = serializers.IntegerField()
    total = serializers.DecimalField(source="total.amount", max_digits=12, decimal_places=2)
    can_afford = serializers.BooleanField()
    reason = serializers.CharField()
    has_wallet = serializers.BooleanField()
    overdraft_total = serializers.SerializerMethodField()
    new_balance = serializers.SerializerMethodField()

    def get_price(self, obj):  # type: ignore
        return obj.price.to_dict()

    def get_overdraft_total(self, obj):  # type: ignore
        return str(obj.allocation.overdraft_total) if obj.allocation else None

    def get_new_balance(self, obj):  # type: ignore
        return str(obj.allocation.new_balance) if obj.allocation else None
