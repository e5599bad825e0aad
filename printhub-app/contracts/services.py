"""
Services pour le module Contrats
Cycle de vie du contrat, paiement en séquestre et libération des fonds
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from accounts.models import Profile
from compliance.guard import ComplianceDecision, ComplianceGuard
from core import notifications
from core.exceptions import (
    Forbidden, InsufficientFunds, InvalidStateTransition, MarketplaceError, NotFound, ValidationFailed,
)
from negotiations.models import Conversation
from payments import ledger
from payments.balances import BalanceService
from payments.services.stripe_gateway import stripe_gateway
from projects.models import Project, Quote
from projects.services import ProjectService
from .models import Contract, Transaction

logger = logging.getLogger(__name__)


class ContractService:
    """Service pour gérer les contrats d'impression"""

    @staticmethod
    def _lock(contract: Contract) -> Contract:
        return Contract.objects.select_for_update().get(pk=contract.pk)

    @staticmethod
    def _require_party(contract: Contract, user, party: str, message: str):
        if contract.party_of(user) != party:
            raise Forbidden(message)

    # Création

    @staticmethod
    @transaction.atomic
    def create_contract(quote: Quote, requester) -> Contract:
        """
        Crée le contrat d'un devis simple accepté.
        Un seul contrat non annulé par devis.
        """
        quote = Quote.objects.select_for_update().select_related('project').get(pk=quote.pk)
        if quote.status != Quote.ACCEPTED:
            raise InvalidStateTransition("Le devis doit être accepté avant de créer un contrat")
        if quote.project.client_id != requester.pk:
            raise Forbidden("Seul le client du projet peut créer le contrat")
        if Contract.objects.filter(quote=quote).exclude(status=Contract.CANCELLED).exists():
            raise InvalidStateTransition("Un contrat existe déjà pour ce devis")

        contract = Contract.objects.create(
            project=quote.project,
            quote=quote,
            client=requester,
            printer=quote.printer,
            quote_snapshot=quote.snapshot(),
            currency=ledger.currency(),
            **Contract.amounts_for(quote.price),
        )
        logger.info(f"Contrat #{contract.id} créé pour le devis #{quote.id}")
        return contract

    @staticmethod
    def create_from_conversation(conversation: Conversation) -> Contract:
        """Contrat d'une conversation signée ; sans effet s'il existe déjà"""
        existing = Contract.objects.filter(conversation=conversation).exclude(status=Contract.CANCELLED).first()
        if existing:
            return existing
        if not conversation.both_signed() or not conversation.current_quote:
            raise InvalidStateTransition("La conversation n'est pas signée")

        contract = Contract.objects.create(
            project_id=conversation.project_id,
            conversation=conversation,
            client_id=conversation.client_id,
            printer_id=conversation.printer_id,
            quote_snapshot=conversation.current_quote,
            currency=ledger.currency(),
            **Contract.amounts_for(conversation.current_quote['total_price']),
        )
        logger.info(f"Contrat #{contract.id} créé pour la conversation #{conversation.id}")
        return contract

    # Production

    @staticmethod
    def _mirror_on_conversation(contract: Contract, step: str, now, **data):
        if not contract.conversation_id:
            return
        conversation = Conversation.objects.select_for_update().get(pk=contract.conversation_id)
        if conversation.is_terminal():
            return
        conversation.record_production_step(step, now, **data)
        conversation.save()

    @staticmethod
    def _production_step(contract: Contract, printer, apply, step: str, **data) -> Contract:
        contract = ContractService._lock(contract)
        ContractService._require_party(
            contract, printer, 'printer', "Seul l'imprimeur peut mettre à jour la production")
        now = timezone.now()
        apply(contract, now)
        contract.save()
        ContractService._mirror_on_conversation(contract, step, now, **data)
        notifications.notify(contract.client, notifications.PRODUCTION_UPDATE, {
            'contract_id': contract.id, 'status': contract.status})
        logger.info(f"Contrat #{contract.id} : {contract.status}")
        return contract

    @staticmethod
    @transaction.atomic
    def start_printing(contract: Contract, printer) -> Contract:
        return ContractService._production_step(
            contract, printer, lambda c, now: c.start_printing(now), Conversation.PRINTING_STARTED)

    @staticmethod
    @transaction.atomic
    def complete_printing(contract: Contract, printer) -> Contract:
        return ContractService._production_step(
            contract, printer, lambda c, now: c.complete_printing(now), Conversation.PRINTING_COMPLETED)

    @staticmethod
    @transaction.atomic
    def send_photos(contract: Contract, printer, photos) -> Contract:
        if isinstance(photos, str):
            photos = [photos]
        photos = [p for p in (photos or []) if p]
        if not photos:
            raise ValidationFailed("Au moins une photo est requise")
        return ContractService._production_step(
            contract, printer, lambda c, now: c.send_photos(photos, now),
            Conversation.PHOTOS_SHARED, photos=photos)

    @staticmethod
    @transaction.atomic
    def mark_as_shipped(contract: Contract, printer, tracking_number=None, carrier=None) -> Contract:
        return ContractService._production_step(
            contract, printer, lambda c, now: c.mark_as_shipped(tracking_number, carrier, now),
            Conversation.ORDER_SHIPPED, tracking_number=tracking_number, shipping_method=carrier)

    @staticmethod
    @transaction.atomic
    def confirm_delivery(contract: Contract, client, now=None) -> Contract:
        """
        Confirmation de réception par le client : seul déclencheur du
        passage des gains de l'imprimeur de 'en attente' à 'disponible'.
        """
        contract = ContractService._lock(contract)
        ContractService._require_party(
            contract, client, 'client', "Seul le client peut confirmer la réception")
        now = now or timezone.now()
        contract.confirm_delivery(now)

        payment = Transaction.objects.select_for_update().filter(
            contract=contract, status=Transaction.PROCESSING).first()
        if payment is None:
            raise InvalidStateTransition("Aucun paiement en séquestre pour ce contrat")
        contract.save()

        payment.complete(now)
        payment.save()

        printer_profile = Profile.objects.get(user_id=contract.printer_id)
        BalanceService.release_pending(printer_profile, contract.printer_earnings)
        ComplianceGuard.record_settlement(contract.printer, contract.agreed_price, now)

        if contract.conversation_id:
            conversation = Conversation.objects.select_for_update().get(pk=contract.conversation_id)
            if not conversation.is_terminal():
                conversation.terminate(Conversation.COMPLETED, Conversation.CLIENT, now=now)
                conversation.save()
        Project.objects.filter(pk=contract.project_id).update(status=Project.COMPLETED, updated_at=now)

        notifications.notify(contract.printer, notifications.DELIVERY_CONFIRMED, {
            'contract_id': contract.id, 'printer_earnings': contract.printer_earnings})
        logger.info(f"Livraison confirmée pour le contrat #{contract.id}, {contract.printer_earnings} disponibles")
        return contract

    # Annulation

    @staticmethod
    @transaction.atomic
    def cancel_contract(contract: Contract, user, reason=None) -> Contract:
        """
        Annule un contrat et rembourse le paiement en séquestre.

        Les parties peuvent annuler un contrat simple tant que l'impression
        n'a pas commencé. Un contrat issu d'une conversation signée ne
        s'annule que par médiation (équipe), jusqu'à l'expédition.
        """
        party = contract.party_of(user)
        if party is None and not user.is_staff:
            raise Forbidden("Vous ne participez pas à ce contrat")

        contract = ContractService._lock(contract)
        if not user.is_staff:
            if contract.conversation_id:
                raise InvalidStateTransition(
                    "Ce contrat est issu d'une négociation signée : l'annulation passe par une médiation")
            if contract.status not in [Contract.PENDING_SIGNATURE, Contract.SIGNED]:
                raise InvalidStateTransition(
                    "L'impression a commencé, le contrat ne peut plus être annulé", status=contract.status)

        now = timezone.now()
        contract.cancel(reason, now)
        contract.save()

        payment = Transaction.objects.select_for_update().filter(
            contract=contract, status__in=[Transaction.PENDING, Transaction.PROCESSING]).first()
        if payment is not None:
            if payment.status == Transaction.PENDING:
                payment.fail("Contrat annulé", now)
                payment.save()
            else:
                PaymentService.refund(payment, reason or "Contrat annulé", now)
            ComplianceGuard.release(contract.printer, payment.amount)

        if contract.conversation_id:
            conversation = Conversation.objects.select_for_update().get(pk=contract.conversation_id)
            if not conversation.is_terminal():
                conversation.terminate(Conversation.CANCELLED_MEDIATION, Conversation.MEDIATOR, reason, now)
                conversation.save()

        project = Project.objects.select_for_update().get(pk=contract.project_id)
        ProjectService.reopen(project)

        for recipient in (contract.client, contract.printer):
            notifications.notify(recipient, notifications.CONTRACT_CANCELLED, {
                'contract_id': contract.id, 'reason': reason or ''})
        logger.info(f"Contrat #{contract.id} annulé par {user.username}")
        return contract

    # Consultation et agrégats

    @staticmethod
    def get_for_party(contract_id, user) -> Contract:
        contract = Contract.objects.select_related('project', 'client', 'printer').filter(pk=contract_id).first()
        if contract is None:
            raise NotFound("Contrat introuvable")
        if contract.party_of(user) is None and not user.is_staff:
            raise Forbidden("Vous ne participez pas à ce contrat")
        return contract

    @staticmethod
    def list_for_user(user, status=None):
        contracts = Contract.objects.filter(Q(client=user) | Q(printer=user))
        if status:
            contracts = contracts.filter(status=status)
        return contracts.select_related('project').order_by('-created_at')

    @staticmethod
    def printer_earnings(printer, start=None, end=None) -> Dict[str, Any]:
        """Gains confirmés d'un imprimeur sur une période"""
        contracts = Contract.objects.filter(
            printer=printer, status__in=[Contract.DELIVERED_CONFIRMED, Contract.COMPLETED])
        if start:
            contracts = contracts.filter(delivered_confirmed_at__gte=start)
        if end:
            contracts = contracts.filter(delivered_confirmed_at__lt=end)
        totals = contracts.aggregate(total=Sum('printer_earnings'), count=Count('id'))
        paid = contracts.filter(printer_paid=True).aggregate(total=Sum('printer_earnings'))
        return {
            'total_earnings': totals['total'] or Decimal('0.00'),
            'contract_count': totals['count'],
            'paid_out': paid['total'] or Decimal('0.00'),
        }

    @staticmethod
    def platform_revenue(start=None, end=None) -> Dict[str, Any]:
        """Commissions encaissées sur les transactions réglées"""
        payments = Transaction.objects.filter(status=Transaction.COMPLETED)
        if start:
            payments = payments.filter(completed_at__gte=start)
        if end:
            payments = payments.filter(completed_at__lt=end)
        totals = payments.aggregate(
            commission=Sum('commission'), volume=Sum('total_amount'), count=Count('id'))
        return {
            'total_commission': totals['commission'] or Decimal('0.00'),
            'total_volume': totals['volume'] or Decimal('0.00'),
            'transaction_count': totals['count'],
        }


class PaymentService:
    """Service de paiement en séquestre (solde client + passerelle Stripe)"""

    @staticmethod
    def authorize_payment(contract: Contract, client, use_balance=0, now=None) -> Tuple[Transaction, ComplianceDecision]:
        """
        Signature et paiement d'un contrat par le client.

        Le contrôle de conformité du vendeur précède tout débit. Un paiement
        entièrement couvert par le solde est confirmé immédiatement ; sinon
        la part carte est autorisée auprès de la passerelle et la transaction
        reste en attente de confirmation.
        """
        if contract.party_of(client) != 'client':
            raise Forbidden("Seul le client peut payer ce contrat")
        if contract.status != Contract.PENDING_SIGNATURE:
            raise InvalidStateTransition("Contrat déjà signé ou non signable", status=contract.status)
        if Transaction.objects.filter(contract=contract, status__in=Transaction.LIVE_STATUSES).exists():
            raise InvalidStateTransition("Un paiement est déjà en cours pour ce contrat")

        try:
            method, balance_used, gateway_amount = ledger.split_payment(contract.total_paid, use_balance)
        except ValueError as e:
            raise ValidationFailed(str(e))
        if balance_used > 0:
            available = Profile.objects.get(user=client).balance_available
            if available < balance_used:
                raise InsufficientFunds(requested=str(balance_used), available=str(available))

        decision = ComplianceGuard.authorize(contract.printer, contract.agreed_price, now)

        try:
            with transaction.atomic():
                locked = ContractService._lock(contract)
                if locked.status != Contract.PENDING_SIGNATURE:
                    raise InvalidStateTransition("Contrat déjà signé ou non signable", status=locked.status)
                try:
                    with transaction.atomic():
                        payment = Transaction.objects.create(
                            contract=locked,
                            client=client,
                            printer_id=locked.printer_id,
                            amount=locked.agreed_price,
                            commission=locked.platform_commission,
                            printer_payout=locked.printer_earnings,
                            total_amount=locked.total_paid,
                            currency=locked.currency,
                            payment_method=method,
                            balance_used=balance_used,
                            gateway_amount=gateway_amount,
                            metadata={'compliance_warning': decision.warning},
                        )
                except IntegrityError:
                    raise InvalidStateTransition("Un paiement est déjà en cours pour ce contrat")

                if gateway_amount > 0:
                    intent = stripe_gateway.authorize(gateway_amount, locked.currency, {
                        'contract_id': locked.id,
                        'transaction_id': payment.id,
                        'project_id': locked.project_id,
                        'client_id': client.pk,
                        'printer_id': locked.printer_id,
                    })
                    payment.gateway_payment_id = intent['id']
                    payment.client_secret = intent.get('client_secret')
                    payment.save(update_fields=['gateway_payment_id', 'client_secret', 'updated_at'])
        except Exception:
            ComplianceGuard.release(contract.printer, contract.agreed_price)
            raise

        logger.info(
            f"Paiement #{payment.id} autorisé pour le contrat #{contract.id} "
            f"({method} : solde {balance_used}, carte {gateway_amount})")

        if method == ledger.BALANCE:
            try:
                payment = PaymentService.confirm_payment(payment, now)
            except MarketplaceError as e:
                PaymentService.fail_payment(payment, e.message)
                raise
        return payment, decision

    @staticmethod
    @transaction.atomic
    def confirm_payment(payment: Transaction, now=None) -> Transaction:
        """
        Confirmation du paiement (callback passerelle ou paiement par solde).
        Une transaction ne déclenche ses mouvements de solde qu'une fois.
        """
        payment = Transaction.objects.select_for_update().get(pk=payment.pk)
        if payment.status != Transaction.PENDING:
            raise InvalidStateTransition("Transaction déjà traitée", status=payment.status)
        contract = ContractService._lock(payment.contract)
        now = now or timezone.now()

        payment.mark_processing(now)
        contract.sign(now)

        if payment.balance_used > 0:
            BalanceService.debit_available(Profile.objects.get(user_id=payment.client_id), payment.balance_used)
        BalanceService.credit_pending(Profile.objects.get(user_id=payment.printer_id), contract.printer_earnings)

        payment.save()
        contract.save()
        for recipient in (contract.client, contract.printer):
            notifications.notify(recipient, notifications.PAYMENT_CONFIRMED, {
                'contract_id': contract.id, 'transaction_id': payment.id, 'total_amount': payment.total_amount})
        logger.info(f"Paiement #{payment.id} confirmé, contrat #{contract.id} signé")
        return payment

    @staticmethod
    @transaction.atomic
    def fail_payment(payment: Transaction, error_message: str) -> Transaction:
        """Échec de l'autorisation : aucun solde n'a été touché"""
        payment = Transaction.objects.select_for_update().get(pk=payment.pk)
        if payment.status != Transaction.PENDING:
            raise InvalidStateTransition("Transaction déjà traitée", status=payment.status)
        payment.fail(error_message)
        payment.save()
        ComplianceGuard.release(payment.printer, payment.amount)
        logger.warning(f"Paiement #{payment.id} échoué : {error_message}")
        return payment

    @staticmethod
    def refund(payment: Transaction, reason: str, now=None) -> Transaction:
        """
        Rembourse une transaction en séquestre : part carte via la passerelle,
        part solde recréditée, gains en attente de l'imprimeur retirés.
        Doit être appelé dans une transaction, transaction verrouillée.
        """
        refund_id = None
        if payment.gateway_amount > 0 and payment.gateway_payment_id:
            refund_id = stripe_gateway.refund(payment.gateway_payment_id, payment.gateway_amount)['id']
        if payment.balance_used > 0:
            BalanceService.credit_available(Profile.objects.get(user_id=payment.client_id), payment.balance_used)
        BalanceService.reverse_pending(Profile.objects.get(user_id=payment.printer_id), payment.printer_payout)
        payment.refund(reason, refund_id, now)
        payment.save()
        logger.info(f"Paiement #{payment.id} remboursé ({payment.total_amount})")
        return payment

    @staticmethod
    def find_by_gateway_id(payment_id: Optional[str]) -> Transaction:
        payment = Transaction.objects.filter(gateway_payment_id=payment_id).first() if payment_id else None
        if payment is None:
            raise NotFound("Transaction introuvable")
        return payment
