from django.apps import AppConfig


class ReservationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.reservations"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus

        from apps.courts.repositories import DjangoCourtRepository
        from apps.wallets.repositories import DjangoLedgerRepository, DjangoWalletRepository

        from .application.command_handlers import (
            CreateReservationBatchCommand,
            CreateReservationBatchHandler,
            QuoteReservationCommand,
            QuoteReservationHandler,
        )
        from .application.event_handlers import log_batch_created, log_wallet_charged
        from .conf import reservation_settings
        from .domain.events import ReservationBatchCreated, WalletCharged
        from .repositories import DjangoReservationRepository

        settings = reservation_settings()
        courts = DjangoCourtRepository(currency=settings.currency)
        wallets = DjangoWalletRepository()

        message_bus.register_command_handler(
            CreateReservationBatchCommand,
            CreateReservationBatchHandler(
                court_repo=courts,
                reservation_repo=DjangoReservationRepository(),
                wallet_repo=wallets,
                ledger_repo=DjangoLedgerRepository(),
                settings=settings,
            ),
            replace=True,
        )
        message_bus.register_command_handler(
            QuoteReservationCommand,
            QuoteReservationHandler(court_repo=courts, wallet_repo=wallets, settings=settings),
            replace=True,
        )
        message_bus.register_event_handler(ReservationBatchCreated, log_batch_created)
        message_bus.register_event_handler(WalletCharged, log_wallet_charged)
