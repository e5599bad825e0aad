"""
Service de versement des gains aux imprimeurs
Le montant demandé est réservé sur le solde disponible puis, selon l'issue du
virement, définitivement débité ou restitué
"""
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.models import Profile
from accounts.permissions import require_printer
from contracts.models import Contract
from core import notifications
from core.exceptions import (
    Forbidden, GatewayFailure, InsufficientFunds, LimitExceeded, NotFound, ValidationFailed,
)
from .balances import BalanceService
from .ledger import to_money
from .models import Payout
from .services.stripe_gateway import stripe_gateway

logger = logging.getLogger(__name__)

IBAN_PATTERN = re.compile(r'^[A-Z]{2}\d{2}[A-Z0-9]{11,30}$')
BIC_PATTERN = re.compile(r'^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$')


def min_payout_amount() -> Decimal:
    return to_money(getattr(settings, 'PAYOUT_MIN_AMOUNT', Decimal('10.00')))


def max_contracts_per_payout() -> int:
    return int(getattr(settings, 'PAYOUT_MAX_CONTRACTS', 100))


def normalize_iban(iban: str) -> str:
    return re.sub(r'\s+', '', iban or '').upper()


class PayoutService:
    """Service pour gérer les versements aux imprimeurs"""

    @staticmethod
    def _unpaid_contracts(printer):
        return Contract.objects.filter(
            printer=printer, status=Contract.DELIVERED_CONFIRMED, printer_paid=False,
        ).order_by('delivered_confirmed_at', 'id')

    @staticmethod
    def get_balance(printer) -> Dict[str, Any]:
        profile = Profile.objects.get(user=printer)
        in_flight = Payout.objects.filter(printer=printer, status__in=Payout.IN_FLIGHT_STATUSES).first()
        return {
            'available': str(profile.balance_available),
            'pending': str(profile.balance_pending),
            'reserved': str(profile.balance_reserved),
            'total': str(profile.balance_total),
            'currency': getattr(settings, 'PLATFORM_CURRENCY', 'EUR'),
            'contracts_awaiting_payout': PayoutService._unpaid_contracts(printer).count(),
            'payout_in_progress': {
                'id': in_flight.id,
                'amount': str(in_flight.amount),
                'status': in_flight.status,
            } if in_flight else None,
            'has_bank_details': profile.has_bank_details(),
            'min_payout_amount': str(min_payout_amount()),
        }

    # Coordonnées bancaires

    @staticmethod
    def get_bank_details(user) -> Dict[str, Any]:
        profile = Profile.objects.get(user=user)
        return {
            'account_holder_name': profile.bank_account_holder or '',
            'iban': profile.masked_iban(),
            'bic': profile.bank_bic or '',
            'bank_name': profile.bank_name or '',
            'has_bank_details': profile.has_bank_details(),
            'updated_at': profile.bank_details_updated_at.isoformat() if profile.bank_details_updated_at else None,
        }

    @staticmethod
    def update_bank_details(user, account_holder_name, iban, bic=None, bank_name=None) -> Profile:
        require_printer(user, "Seuls les imprimeurs peuvent enregistrer des coordonnées bancaires")
        holder = (account_holder_name or '').strip()
        if not holder:
            raise ValidationFailed("Le titulaire du compte est obligatoire")
        iban = normalize_iban(iban)
        if not IBAN_PATTERN.match(iban):
            raise ValidationFailed("IBAN invalide")
        bic = re.sub(r'\s+', '', bic or '').upper()
        if bic and not BIC_PATTERN.match(bic):
            raise ValidationFailed("BIC invalide")

        profile = Profile.objects.get(user=user)
        profile.bank_account_holder = holder
        profile.bank_iban = iban
        profile.bank_bic = bic or None
        profile.bank_name = (bank_name or '').strip() or None
        profile.bank_details_updated_at = timezone.now()
        profile.save(update_fields=['bank_account_holder', 'bank_iban', 'bank_bic', 'bank_name',
                                    'bank_details_updated_at', 'date_update'])
        logger.info(f"Coordonnées bancaires mises à jour pour le profil {profile.pk}")
        return profile

    # Demande, traitement, annulation

    @staticmethod
    @transaction.atomic
    def request_payout(printer, amount, notes: Optional[str] = None) -> Payout:
        """
        Demande de versement : un seul versement en attente ou en cours par
        imprimeur ; le montant est réservé immédiatement.
        """
        require_printer(printer, "Seuls les imprimeurs peuvent demander un versement")
        try:
            amount = to_money(amount)
        except ValueError:
            raise ValidationFailed("Montant invalide")
        minimum = min_payout_amount()
        if amount < minimum:
            raise ValidationFailed(f"Le montant minimum de versement est de {minimum}", min_amount=str(minimum))

        profile = Profile.objects.select_for_update().get(user=printer)
        if not profile.has_bank_details():
            raise ValidationFailed("Veuillez d'abord enregistrer vos coordonnées bancaires")

        in_flight = Payout.objects.filter(printer=printer, status__in=Payout.IN_FLIGHT_STATUSES).first()
        if in_flight:
            raise LimitExceeded("Un versement est déjà en cours", payout_id=in_flight.id, status=in_flight.status)
        if amount > profile.balance_available:
            raise InsufficientFunds(requested=str(amount), available=str(profile.balance_available))

        try:
            with transaction.atomic():
                payout = Payout.objects.create(
                    printer=printer,
                    amount=amount,
                    currency=getattr(settings, 'PLATFORM_CURRENCY', 'EUR'),
                    bank_details=profile.bank_details_snapshot(),
                    printer_notes=notes or None,
                )
        except IntegrityError:
            raise LimitExceeded("Un versement est déjà en cours")

        BalanceService.reserve(profile, amount)
        payout.contracts.set(PayoutService._unpaid_contracts(printer)[:max_contracts_per_payout()])
        logger.info(f"Versement #{payout.id} demandé par {printer.username} : {amount}")
        return payout

    @staticmethod
    def process_payout(payout: Payout, processed_by=None) -> Payout:
        """
        Exécute le virement d'un versement en attente.
        Succès : réservation débitée, contrats marqués payés.
        Échec : réservation restituée au solde disponible.
        """
        with transaction.atomic():
            payout = Payout.objects.select_for_update().get(pk=payout.pk)
            payout.start_processing(processed_by)

        profile = Profile.objects.get(user_id=payout.printer_id)
        try:
            if not profile.payee_account_id:
                payee = stripe_gateway.create_payee(payout.printer.email, (profile.country or 'FR')[:2].upper())
                profile.payee_account_id = payee['account_id']
                profile.save(update_fields=['payee_account_id', 'date_update'])
            transfer = stripe_gateway.transfer(payout.amount, profile.payee_account_id, {
                'payout_id': payout.id,
                'printer_id': payout.printer_id,
            })
        except GatewayFailure as e:
            return PayoutService._fail(payout, e.message, e.details.get('gateway_code', ''))

        with transaction.atomic():
            payout = Payout.objects.select_for_update().get(pk=payout.pk)
            payout.complete(transfer['id'])
            BalanceService.commit_reservation(profile, payout.amount)
            now = timezone.now()
            for contract in payout.contracts.select_for_update().filter(
                    printer_paid=False, status=Contract.DELIVERED_CONFIRMED):
                contract.mark_printer_paid(payout, now)
                contract.save()
            notifications.notify(payout.printer, notifications.PAYOUT_COMPLETED, {
                'payout_id': payout.id, 'amount': payout.amount})
        logger.info(f"Versement #{payout.id} effectué ({transfer['id']})")
        return payout

    @staticmethod
    @transaction.atomic
    def _fail(payout: Payout, error_message: str, error_code: str = '') -> Payout:
        payout = Payout.objects.select_for_update().get(pk=payout.pk)
        payout.fail(error_message, error_code)
        BalanceService.release_reservation(Profile.objects.get(user_id=payout.printer_id), payout.amount)
        notifications.notify(payout.printer, notifications.PAYOUT_FAILED, {
            'payout_id': payout.id, 'amount': payout.amount, 'error': error_message})
        logger.error(f"Versement #{payout.id} échoué : {error_message}")
        return payout

    @staticmethod
    @transaction.atomic
    def cancel_payout(payout: Payout, user) -> Payout:
        if payout.printer_id != user.pk and not user.is_staff:
            raise Forbidden("Vous ne pouvez pas annuler ce versement")
        payout = Payout.objects.select_for_update().get(pk=payout.pk)
        payout.cancel()
        BalanceService.release_reservation(Profile.objects.get(user_id=payout.printer_id), payout.amount)
        logger.info(f"Versement #{payout.id} annulé par {user.username}")
        return payout

    # Consultation

    @staticmethod
    def list_payouts(user, status=None):
        payouts = Payout.objects.all() if user.is_staff else Payout.objects.filter(printer=user)
        if status:
            payouts = payouts.filter(status=status)
        return payouts.select_related('printer')

    @staticmethod
    def get_payout(payout_id, user) -> Payout:
        payout = Payout.objects.filter(pk=payout_id).first()
        if payout is None:
            raise NotFound("Versement introuvable")
        if payout.printer_id != user.pk and not user.is_staff:
            raise Forbidden("Accès non autorisé à ce versement")
        return payout
