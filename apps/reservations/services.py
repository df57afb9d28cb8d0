"""
Service container for the reservation lifecycle.

The collaborators (ledger, payment capability, notifier, token signer) are
constructed once when the app registry is ready and handed to the state
machine, the sweeper and the completion and cancellation workflows. Views,
tasks and commands fetch the container with ``get_services()``; tests swap
it with ``override_services()``.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass

from django.apps import apps as django_apps
from django.conf import settings

from apps.experiences.inventory import SessionLedger
from payment_processor.services import PaymentServiceFactory

from .cancellation import CancellationService
from .completion import CompletionService
from .email_sender import EmailNotifier
from .state_machine import LifecycleConfig, ReservationStateMachine
from .sweeper import ExpirySweeper
from .tokens import ActionTokenSigner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationServices:
    ledger: SessionLedger
    payments: object
    notifier: EmailNotifier
    tokens: ActionTokenSigner
    state_machine: ReservationStateMachine
    sweeper: ExpirySweeper
    completion: CompletionService
    cancellation: CancellationService


def build_services(payments=None, notifier=None, tokens=None, ledger=None, config=None, clock=None):
    """Wire the lifecycle services. Any collaborator can be passed in to replace the default."""
    ledger = ledger or SessionLedger()
    payments = payments or PaymentServiceFactory.create_service('stripe')
    notifier = notifier or EmailNotifier(async_delivery=settings.RESERVATION_EMAILS_ASYNC)
    tokens = tokens or ActionTokenSigner(settings.TOKEN_SECRET)
    config = config or LifecycleConfig.from_settings()

    machine_kwargs = {'clock': clock} if clock else {}
    state_machine = ReservationStateMachine(ledger, payments, notifier, tokens, config, **machine_kwargs)

    return ReservationServices(
        ledger=ledger,
        payments=payments,
        notifier=notifier,
        tokens=tokens,
        state_machine=state_machine,
        sweeper=ExpirySweeper(state_machine),
        completion=CompletionService(state_machine),
        cancellation=CancellationService(state_machine),
    )


def get_services() -> ReservationServices:
    app_config = django_apps.get_app_config('reservations')
    if app_config.services is None:
        app_config.services = build_services()
    return app_config.services


@contextmanager
def override_services(**collaborators):
    """Temporarily rebuild the container with some collaborators replaced."""
    app_config = django_apps.get_app_config('reservations')
    previous = app_config.services
    app_config.services = build_services(**collaborators)
    try:
        yield app_config.services
    finally:
        app_config.services = previous
