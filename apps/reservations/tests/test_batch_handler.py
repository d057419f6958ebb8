"""Reservation batches committed through the command handler."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import DatabaseError, OperationalError
from django.test import TestCase

from shared.application.message_bus import message_bus
from apps.courts.models import Court, RateBand
from apps.courts.repositories import DjangoCourtRepository
from apps.reservations.application.command_handlers import (
    CreateReservationBatchCommand,
    CreateReservationBatchHandler,
    QuoteReservationCommand,
    QuoteReservationHandler,
)
from apps.reservations.application.transaction import BookingTransaction
from apps.reservations.conf import ReservationSettings
from apps.reservations.domain.entities import BatchState, BookingRequest, Payer, Recurrence
from apps.reservations.domain.events import ReservationBatchCreated, WalletCharged
from apps.reservations.domain.exceptions import (
    CommitError,
    CourtNotFoundError,
    InsufficientFundsError,
    PricingError,
    ReservationValidationError,
    SlotConflictError,
)
from apps.reservations.domain.recurrence import Weekday
from apps.reservations.models import Reservation, ReservationSlot
from apps.reservations.repositories import DjangoReservationRepository
from apps.wallets.models import LedgerActivity, Wallet
from apps.wallets.repositories import DjangoLedgerRepository, DjangoWalletRepository


class FailingLedgerRepository(DjangoLedgerRepository):
    def add_activity(self, **values):
        raise DatabaseError("disk I/O error")


class BlindReservationRepository(DjangoReservationRepository):
    """Skips the conflict query so only the database constraint guards slots."""

    def find_conflicts(self, court_id, dates, slots, lock=False):
        return []


class LockTimeoutReservationRepository(DjangoReservationRepository):
    def find_conflicts(self, court_id, dates, slots, lock=False):
        raise OperationalError("could not obtain lock on row in relation \"reservations_reservationslot\"")


class LockTimeoutWalletRepository(DjangoWalletRepository):
    def get_for_user(self, user_id, lock=False):
        raise OperationalError("canceling statement due to lock timeout")


class ReservationBatchHandlerTests(TestCase):
    """Covers pricing, allocation and the all-or-nothing commit."""

    def setUp(self) -> None:
        self.member = get_user_model().objects.create_user(username="deniz", password="MemberPass123")
        self.wallet = Wallet.objects.create(user=self.member, balance=Decimal("500.00"))
        self.court = self._court("Center Court", Decimal("600.00"))

    def _court(self, name: str, hourly: Decimal) -> Court:
        court = Court.objects.create(
            name=name,
            available_from=time(8, 0),
            available_until=time(22, 0),
            time_slot_interval=60,
            heating_cost=Decimal("120.00"),
        )
        RateBand.objects.create(court=court, from_time=time(8, 0), until_time=time(22, 0), base_price=hourly)
        return court

    def _handler(self, **repos) -> CreateReservationBatchHandler:
        return CreateReservationBatchHandler(
            court_repo=repos.get("court_repo", DjangoCourtRepository()),
            reservation_repo=repos.get("reservation_repo", DjangoReservationRepository()),
            wallet_repo=repos.get("wallet_repo", DjangoWalletRepository()),
            ledger_repo=repos.get("ledger_repo", DjangoLedgerRepository()),
            settings=ReservationSettings(),
        )

    def _single(self, **overrides) -> BookingRequest:
        values = dict(
            court_id=self.court.pk,
            payer=Payer(user_id=self.member.pk, display_name="deniz"),
            slots=(time(9, 0), time(10, 0)),
            date=date(2024, 1, 15),
        )
        values.update(overrides)
        return BookingRequest(**values)

    def _mondays(self, court: Court, end: date, **overrides) -> BookingRequest:
        values = dict(
            court_id=court.pk,
            payer=Payer(user_id=self.member.pk, display_name="deniz"),
            slots=(time(18, 0),),
            recurrence=Recurrence(start_date=date(2024, 1, 1), end_date=end, weekdays=(Weekday.MONDAY,)),
            group_name="Monday league",
            allow_overdraft=True,
        )
        values.update(overrides)
        return BookingRequest(**values)

    def test_single_reservation_charges_wallet_once(self) -> None:
        self.wallet.balance = Decimal("2000.00")
        self.wallet.save()

        result = self._handler().handle(CreateReservationBatchCommand(request=self._single(heater=True)))

        self.assertEqual(result.state, BatchState.COMMITTED)
        self.assertEqual(result.total_cost, Decimal("1440.00"))
        reservation = Reservation.objects.get()
        self.assertEqual(reservation.total_cost, Decimal("1440.00"))
        self.assertEqual(reservation.amount_paid, Decimal("1440.00"))
        self.assertEqual(reservation.start_time, time(9, 0))
        self.assertEqual(reservation.end_time, time(11, 0))
        self.assertEqual(reservation.duration, 120)
        self.assertEqual(reservation.slots, ["09:00", "10:00"])
        self.assertEqual(ReservationSlot.objects.filter(reservation=reservation).count(), 2)

        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("560.00"))
        activity = LedgerActivity.objects.get()
        self.assertEqual(activity.amount, Decimal("-1440.00"))
        self.assertEqual(activity.service, LedgerActivity.Service.RESERVATION_CREATED)
        self.assertEqual(activity.reservation_count, 1)
        self.assertEqual(activity.overdraft_used, Decimal("0.00"))
        self.assertEqual(
            result.history,
            [
                BatchState.VALIDATING,
                BatchState.PRICING,
                BatchState.ALLOCATING,
                BatchState.COMMITTING,
                BatchState.COMMITTED,
            ],
        )

    def test_bulk_batch_spreads_overdraft_over_sessions(self) -> None:
        court = self._court("Court 2", Decimal("500.00"))

        result = self._handler().handle(
            CreateReservationBatchCommand(request=self._mondays(court, end=date(2024, 1, 15)))
        )

        self.assertEqual(result.dates, [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)])
        self.assertEqual(result.total_cost, Decimal("1500.00"))
        self.assertEqual(
            result.overdraft_sessions,
            [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")],
        )
        overdrafts = list(
            Reservation.objects.filter(batch_id=result.batch_id).order_by("date").values_list("overdraft_used", flat=True)
        )
        self.assertEqual(overdrafts, [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")])
        self.assertEqual(sum(overdrafts), Decimal("1000.00"))
        self.assertTrue(
            all(reservation.bulk_group_name == "Monday league" for reservation in Reservation.objects.all())
        )

        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("-1000.00"))
        activity = LedgerActivity.objects.get()
        self.assertEqual(activity.service, LedgerActivity.Service.BULK_RESERVATION_CREATED)
        self.assertEqual(activity.reservation_count, 3)
        self.assertEqual(activity.overdraft_used, Decimal("1000.00"))
        self.assertEqual(activity.overdraft_sessions["2024-01-15"], "333.34")
        self.assertEqual(activity.start_date, date(2024, 1, 1))
        self.assertEqual(activity.end_date, date(2024, 1, 15))

    def test_insufficient_funds_rejects_before_any_write(self) -> None:
        handler = self._handler()

        with self.assertRaises(InsufficientFundsError):
            handler.handle(CreateReservationBatchCommand(request=self._single()))

        self.assertFalse(Reservation.objects.exists())
        self.assertFalse(LedgerActivity.objects.exists())
        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("500.00"))

    def test_failed_ledger_write_rolls_back_every_reservation(self) -> None:
        handler = self._handler(ledger_repo=FailingLedgerRepository())
        request = self._mondays(self.court, end=date(2024, 1, 31))

        with self.assertRaises(CommitError):
            handler.handle(CreateReservationBatchCommand(request=request))

        self.assertEqual(Reservation.objects.count(), 0)
        self.assertEqual(ReservationSlot.objects.count(), 0)
        self.assertEqual(LedgerActivity.objects.count(), 0)
        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("500.00"))

    def test_conflicting_batch_is_rejected_without_charge(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()
        handler = self._handler()
        handler.handle(CreateReservationBatchCommand(request=self._single()))

        with self.assertRaises(SlotConflictError) as ctx:
            handler.handle(CreateReservationBatchCommand(request=self._single(slots=(time(10, 0), time(11, 0)))))

        self.assertEqual(ctx.exception.details["conflicts"], [{"date": "2024-01-15", "time": "10:00"}])
        self.assertEqual(Reservation.objects.count(), 1)
        self.assertEqual(LedgerActivity.objects.count(), 1)
        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("3800.00"))

    def test_slot_constraint_catches_double_booking(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()
        self._handler().handle(CreateReservationBatchCommand(request=self._single()))

        with self.assertRaises(SlotConflictError):
            self._handler(reservation_repo=BlindReservationRepository()).handle(
                CreateReservationBatchCommand(request=self._single())
            )

        self.assertEqual(Reservation.objects.count(), 1)
        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("3800.00"))

    def test_guest_batch_skips_wallet(self) -> None:
        request = self._single(payer=Payer(display_name="Saturday group"))

        result = self._handler().handle(CreateReservationBatchCommand(request=request))

        reservation = Reservation.objects.get()
        self.assertTrue(reservation.is_guest_reservation)
        self.assertIsNone(reservation.user)
        self.assertEqual(reservation.username, "Saturday group")
        self.assertEqual(reservation.amount_paid, Decimal("1200.00"))
        self.assertIsNone(result.new_balance)
        self.assertFalse(LedgerActivity.objects.exists())

    def test_member_without_wallet_skips_allocation(self) -> None:
        other = get_user_model().objects.create_user(username="ali", password="MemberPass123")

        self._handler().handle(
            CreateReservationBatchCommand(request=self._single(payer=Payer(user_id=other.pk)))
        )

        self.assertEqual(Reservation.objects.get().user, other)
        self.assertFalse(LedgerActivity.objects.exists())

    def test_repeated_request_id_is_replayed(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()
        handler = self._handler()
        request = self._single(request_id="req-1")

        first = handler.handle(CreateReservationBatchCommand(request=request))
        second = handler.handle(CreateReservationBatchCommand(request=request))

        self.assertTrue(second.replayed)
        self.assertEqual(second.batch_id, first.batch_id)
        self.assertEqual(second.reservation_ids, first.reservation_ids)
        self.assertEqual(second.ledger_activity_id, first.ledger_activity_id)
        self.assertEqual(Reservation.objects.count(), 1)
        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("3800.00"))

    def test_empty_recurrence_is_rejected(self) -> None:
        request = BookingRequest(
            court_id=self.court.pk,
            payer=Payer(user_id=self.member.pk),
            slots=(time(18, 0),),
            recurrence=Recurrence(start_date=date(2024, 1, 2), end_date=date(2024, 1, 6), weekdays=(0,)),
            group_name="Monday league",
        )

        with self.assertRaises(ReservationValidationError) as ctx:
            self._handler().handle(CreateReservationBatchCommand(request=request))

        self.assertEqual(ctx.exception.code, "no_valid_days")
        self.assertFalse(Reservation.objects.exists())

    def test_fractured_selection_is_rejected(self) -> None:
        with self.assertRaises(ReservationValidationError) as ctx:
            self._handler().handle(
                CreateReservationBatchCommand(request=self._single(slots=(time(9, 0), time(11, 0))))
            )

        self.assertEqual(ctx.exception.code, "non_contiguous")

    def test_slot_outside_schedule_is_rejected(self) -> None:
        with self.assertRaises(ReservationValidationError) as ctx:
            self._handler().handle(CreateReservationBatchCommand(request=self._single(slots=(time(22, 0),))))

        self.assertEqual(ctx.exception.code, "slot_outside_schedule")

    def test_inactive_court_is_not_found(self) -> None:
        self.court.status = Court.Status.MAINTENANCE
        self.court.save()

        with self.assertRaises(CourtNotFoundError):
            self._handler().handle(CreateReservationBatchCommand(request=self._single()))

    def test_events_are_published_after_commit(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()

        with patch.object(message_bus, "publish_events") as publish:
            with self.captureOnCommitCallbacks(execute=True):
                self._handler().handle(CreateReservationBatchCommand(request=self._single()))

        published = [event for call in publish.call_args_list for event in call.args[0]]
        self.assertEqual([type(event) for event in published], [ReservationBatchCreated, WalletCharged])
        self.assertEqual(published[1].amount, Decimal("1200.00"))

    def test_quote_reports_affordability_without_writing(self) -> None:
        handler = QuoteReservationHandler(
            court_repo=DjangoCourtRepository(),
            wallet_repo=DjangoWalletRepository(),
            settings=ReservationSettings(),
        )

        quote = handler.handle(QuoteReservationCommand(request=self._single()))
        self.assertEqual(quote.total.amount, Decimal("1200.00"))
        self.assertFalse(quote.can_afford)
        self.assertEqual(quote.reason, "insufficient_funds")

        quote = handler.handle(QuoteReservationCommand(request=self._single(allow_overdraft=True)))
        self.assertTrue(quote.can_afford)
        self.assertEqual(quote.allocation.overdraft_total, Decimal("700.00"))

        self.assertFalse(Reservation.objects.exists())
        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("500.00"))

    def test_lock_failure_in_conflict_check_becomes_commit_error(self) -> None:
        handler = self._handler(reservation_repo=LockTimeoutReservationRepository())

        with self.assertLogs("apps.reservations.application.command_handlers", level="WARNING") as logs:
            with self.assertRaises(CommitError):
                handler.handle(CreateReservationBatchCommand(request=self._mondays(self.court, end=date(2024, 1, 31))))

        self.assertTrue(any("rolled back (commit_failed)" in line for line in logs.output))
        self.assertFalse(Reservation.objects.exists())
        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("500.00"))

    def test_lock_failure_on_wallet_read_becomes_commit_error(self) -> None:
        handler = self._handler(wallet_repo=LockTimeoutWalletRepository())

        with self.assertLogs("apps.reservations.application.command_handlers", level="WARNING") as logs:
            with self.assertRaises(CommitError):
                handler.handle(CreateReservationBatchCommand(request=self._single(allow_overdraft=True)))

        self.assertTrue(any("rolled back (commit_failed)" in line for line in logs.output))
        self.assertFalse(Reservation.objects.exists())

    def test_failed_final_commit_is_not_reported_committed(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()
        close = BookingTransaction._close

        def close_then_fail(tx, exc_type, exc_val, exc_tb):
            close(tx, exc_type, exc_val, exc_tb)
            if exc_type is None:
                raise OperationalError("server closed the connection unexpectedly")

        with patch.object(BookingTransaction, "_close", close_then_fail):
            with self.assertLogs("apps.reservations.application.command_handlers", level="WARNING") as logs:
                with self.assertRaises(CommitError):
                    self._handler().handle(CreateReservationBatchCommand(request=self._single()))

        self.assertTrue(any("rolled back (commit_failed)" in line for line in logs.output))
        self.assertFalse(any("-> committed" in line for line in logs.output))

    def test_cancelled_reservation_frees_its_slots(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()
        handler = self._handler()
        handler.handle(CreateReservationBatchCommand(request=self._single()))
        first = Reservation.objects.get()

        first.mark_cancelled()

        self.assertFalse(ReservationSlot.objects.filter(reservation=first, is_active=True).exists())
        self.assertEqual(DjangoReservationRepository().occupied_slots(self.court.pk, date(2024, 1, 15)), [])

        result = handler.handle(CreateReservationBatchCommand(request=self._single()))

        self.assertEqual(result.state, BatchState.COMMITTED)
        self.assertEqual(
            sorted(DjangoReservationRepository().occupied_slots(self.court.pk, date(2024, 1, 15))),
            [time(9, 0), time(10, 0)],
        )

    def test_status_edit_releases_slots(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()
        self._handler().handle(CreateReservationBatchCommand(request=self._single()))
        reservation = Reservation.objects.get()

        reservation.status = Reservation.Status.CANCELLED
        reservation.save()

        self.assertEqual(ReservationSlot.objects.filter(is_active=True).count(), 0)
        self.assertEqual(ReservationSlot.objects.filter(reservation=reservation).count(), 2)

    def test_overlapping_bands_saved_without_validation_fail_pricing(self) -> None:
        RateBand.objects.create(
            court=self.court, from_time=time(18, 0), until_time=time(23, 0), base_price=Decimal("900.00")
        )

        with self.assertRaises(PricingError) as ctx:
            self._handler().handle(CreateReservationBatchCommand(request=self._single()))

        self.assertEqual(ctx.exception.code, "court_misconfigured")
        self.assertFalse(Reservation.objects.exists())

    def test_court_closing_at_midnight_books_last_hour(self) -> None:
        self.wallet.balance = Decimal("5000.00")
        self.wallet.save()
        court = Court.objects.create(name="Night Court", available_from=time(18, 0), available_until=time(0, 0))
        RateBand.objects.create(court=court, from_time=time(18, 0), until_time=time(0, 0), base_price=Decimal("700.00"))

        result = self._handler().handle(
            CreateReservationBatchCommand(request=self._single(court_id=court.pk, slots=(time(23, 0),)))
        )

        reservation = Reservation.objects.get(pk=result.reservation_ids[0])
        self.assertEqual(reservation.end_time, time(0, 0))
        self.assertEqual(reservation.total_cost, Decimal("700.00"))
