"""Wallet balance writes and the append-only ledger."""

from __future__ import annotations

import uuid
from datetime import date, time
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.test import TestCase

from apps.courts.models import Court
from apps.wallets.models import LedgerActivity, LedgerImmutableError, Wallet
from apps.wallets.repositories import DjangoLedgerRepository, DjangoWalletRepository


class WalletLedgerTests(TestCase):
    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="selin", password="MemberPass123")
        self.wallet = Wallet.objects.create(user=self.user, balance=Decimal("500.00"))
        self.court = Court.objects.create(name="Center Court")
        self.ledger = DjangoLedgerRepository()
        self.batch_id = uuid.uuid4()

    def _activity(self, **overrides) -> LedgerActivity:
        values = dict(
            wallet=self.wallet,
            service=LedgerActivity.Service.RESERVATION_CREATED,
            amount=Decimal("-600.00"),
            court=self.court,
            court_name=self.court.name,
            start_date=date(2024, 1, 15),
            end_date=date(2024, 1, 15),
            reservation_time=time(9, 0),
            reservation_end_time=time(10, 0),
            duration=60,
            amount_per_session=Decimal("600.00"),
            overdraft_used=Decimal("100.00"),
            overdraft_sessions={"2024-01-15": "100.00"},
            batch_id=self.batch_id,
        )
        values.update(overrides)
        return self.ledger.add_activity(**values)

    def test_get_for_user(self) -> None:
        repository = DjangoWalletRepository()

        self.assertEqual(repository.get_for_user(self.user.pk), self.wallet)
        self.assertIsNone(repository.get_for_user(None))
        self.assertIsNone(repository.get_for_user(9999))

    def test_set_balance_allows_negative_values(self) -> None:
        DjangoWalletRepository().set_balance(self.wallet, Decimal("-100.00"))

        self.wallet.refresh_from_db()
        self.assertEqual(self.wallet.balance, Decimal("-100.00"))

    def test_activity_cannot_be_changed(self) -> None:
        activity = self._activity()
        activity.amount = Decimal("0.00")

        with self.assertRaises(LedgerImmutableError):
            activity.save()

        activity.refresh_from_db()
        self.assertEqual(activity.amount, Decimal("-600.00"))

    def test_activity_cannot_be_deleted(self) -> None:
        activity = self._activity()

        with self.assertRaises(LedgerImmutableError):
            activity.delete()

        self.assertTrue(LedgerActivity.objects.filter(pk=activity.pk).exists())

    def test_find_by_request_id(self) -> None:
        activity = self._activity(request_id="front-desk-001")

        self.assertEqual(self.ledger.find_by_request_id("front-desk-001"), activity)
        self.assertIsNone(self.ledger.find_by_request_id(None))
        self.assertIsNone(self.ledger.find_by_request_id("unknown"))
        self.assertEqual(list(self.ledger.for_batch(self.batch_id)), [activity])

    def test_request_id_is_unique(self) -> None:
        self._activity(request_id="front-desk-001")

        with self.assertRaises(IntegrityError), transaction.atomic():
            self._activity(request_id="front-desk-001", batch_id=uuid.uuid4())

    def test_court_removal_keeps_activity(self) -> None:
        activity = self._activity()

        self.court.delete()

        activity.refresh_from_db()
        self.assertIsNone(activity.court_id)
        self.assertEqual(activity.court_name, "Center Court")
