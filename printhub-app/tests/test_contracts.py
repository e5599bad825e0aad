from decimal import Decimal
from unittest import mock

import pytest

from accounts.models import Profile
from contracts.models import Contract, Transaction
from contracts.services import ContractService, PaymentService
from core.exceptions import (
    ComplianceBlocked, Forbidden, GatewayFailure, InsufficientFunds, InvalidStateTransition, ValidationFailed,
)
from negotiations.models import Conversation
from negotiations.services import ConversationService
from payments import ledger
from payments.services.stripe_gateway import stripe_gateway
from projects.models import Project
from projects.services import QuoteService
from .conftest import set_balance


def balances(user):
    profile = Profile.objects.get(user=user)
    return profile.balance_available, profile.balance_pending, profile.balance_total


class TestPayment:

    def test_mixed_payment(self, contract, client_user, printer):
        set_balance(client_user, '200.00')

        payment, decision = PaymentService.authorize_payment(contract, client_user, use_balance='40')

        assert decision.allowed is True
        assert payment.status == Transaction.PENDING
        assert payment.payment_method == ledger.MIXED
        assert payment.balance_used == Decimal('40.00')
        assert payment.gateway_amount == Decimal('70.00')
        assert payment.total_amount == Decimal('110.00')
        assert payment.gateway_payment_id.startswith('pi_test_')
        assert balances(client_user)[0] == Decimal('200.00')

        PaymentService.confirm_payment(payment)

        assert balances(client_user)[0] == Decimal('160.00')
        assert balances(printer)[1] == Decimal('100.00')
        contract.refresh_from_db()
        assert contract.status == Contract.SIGNED

    def test_balance_only_payment_is_confirmed_immediately(self, contract, client_user, printer):
        set_balance(client_user, '150.00')
        payment, _ = PaymentService.authorize_payment(contract, client_user, use_balance='110.00')

        assert payment.payment_method == ledger.BALANCE
        assert payment.status == Transaction.PROCESSING
        assert not payment.gateway_payment_id
        assert balances(client_user)[0] == Decimal('40.00')
        assert balances(printer)[1] == Decimal('100.00')

    def test_confirm_is_applied_once(self, contract, client_user, printer):
        payment, _ = PaymentService.authorize_payment(contract, client_user)
        PaymentService.confirm_payment(payment)
        with pytest.raises(InvalidStateTransition):
            PaymentService.confirm_payment(payment)
        assert balances(printer)[1] == Decimal('100.00')

    def test_second_authorization_is_refused(self, contract, client_user):
        PaymentService.authorize_payment(contract, client_user)
        with pytest.raises(InvalidStateTransition):
            PaymentService.authorize_payment(contract, client_user)
        assert Transaction.objects.filter(contract=contract).count() == 1

    def test_insufficient_balance(self, contract, client_user, printer):
        set_balance(client_user, '10.00')
        with pytest.raises(InsufficientFunds) as excinfo:
            PaymentService.authorize_payment(contract, client_user, use_balance='40')
        assert excinfo.value.details['available'] == '10.00'
        assert not Transaction.objects.exists()
        assert Profile.objects.get(user=printer).reserved_revenue == Decimal('0.00')

    def test_balance_cannot_exceed_total(self, contract, client_user):
        set_balance(client_user, '500.00')
        with pytest.raises(ValidationFailed):
            PaymentService.authorize_payment(contract, client_user, use_balance='120')

    def test_only_the_client_pays(self, contract, printer):
        with pytest.raises(Forbidden):
            PaymentService.authorize_payment(contract, printer)

    def test_blocked_seller_is_never_charged(self, contract, client_user, printer):
        Profile.objects.filter(user=printer).update(
            yearly_revenue=Decimal('2950.00'), revenue_year=contract.created_at.year)
        set_balance(client_user, '200.00')

        with pytest.raises(ComplianceBlocked):
            PaymentService.authorize_payment(contract, client_user, use_balance='40')

        assert not Transaction.objects.exists()
        assert balances(client_user)[0] == Decimal('200.00')
        assert Profile.objects.get(user=printer).account_blocked is True
        contract.refresh_from_db()
        assert contract.status == Contract.PENDING_SIGNATURE

    def test_gateway_failure_releases_the_reservation(self, contract, client_user, printer):
        failure = GatewayFailure('Carte refusée', gateway_code='card_declined')
        with mock.patch.object(stripe_gateway, 'authorize', side_effect=failure):
            with pytest.raises(GatewayFailure):
                PaymentService.authorize_payment(contract, client_user)

        assert not Transaction.objects.exists()
        profile = Profile.objects.get(user=printer)
        assert profile.reserved_revenue == Decimal('0.00')
        assert profile.reserved_transaction_count == 0

    def test_failed_payment_releases_and_allows_retry(self, contract, client_user, printer):
        payment, _ = PaymentService.authorize_payment(contract, client_user)
        payment = PaymentService.fail_payment(payment, 'Fonds insuffisants')
        assert payment.status == Transaction.FAILED
        assert Profile.objects.get(user=printer).reserved_revenue == Decimal('0.00')

        retry, _ = PaymentService.authorize_payment(contract, client_user)
        assert retry.status == Transaction.PENDING


class TestProduction:

    def test_printing_requires_payment(self, contract, printer):
        with pytest.raises(InvalidStateTransition):
            ContractService.start_printing(contract, printer)

    def test_steps_are_ordered(self, paid_contract, printer):
        with pytest.raises(InvalidStateTransition):
            ContractService.mark_as_shipped(paid_contract, printer, 'TRK')
        ContractService.start_printing(paid_contract, printer)
        with pytest.raises(InvalidStateTransition):
            ContractService.send_photos(paid_contract, printer, ['https://cdn.example.com/a.jpg'])

    def test_only_printer_updates_production(self, paid_contract, client_user):
        with pytest.raises(Forbidden):
            ContractService.start_printing(paid_contract, client_user)

    def test_photos_are_required(self, paid_contract, printer):
        ContractService.start_printing(paid_contract, printer)
        ContractService.complete_printing(paid_contract, printer)
        with pytest.raises(ValidationFailed):
            ContractService.send_photos(paid_contract, printer, [])

    def test_conversation_mirrors_production(self, paid_contract, signed_conversation, printer):
        conversation = ConversationService.start_printing(signed_conversation, printer)
        assert conversation.status == Conversation.IN_PRODUCTION
        conversation = ConversationService.complete_printing(conversation, printer)
        conversation = ConversationService.share_photos(conversation, printer, ['https://cdn.example.com/a.jpg'])
        assert conversation.photo_urls == ['https://cdn.example.com/a.jpg']
        conversation = ConversationService.ship_order(conversation, printer, 'TRK9', 'Chronopost')
        assert conversation.status == Conversation.READY
        assert conversation.tracking_number == 'TRK9'

        paid_contract.refresh_from_db()
        assert paid_contract.status == Contract.SHIPPED
        assert paid_contract.print_photos[0]['url'] == 'https://cdn.example.com/a.jpg'
        assert paid_contract.shipping_carrier == 'Chronopost'


class TestDelivery:

    def test_delivery_releases_the_printer_earnings(self, delivered_contract, printer, signed_conversation):
        assert delivered_contract.status == Contract.DELIVERED_CONFIRMED
        available, pending, total = balances(printer)
        assert available == Decimal('100.00')
        assert pending == Decimal('0.00')
        assert total == Decimal('100.00')

        payment = delivered_contract.transactions.get()
        assert payment.status == Transaction.COMPLETED

        profile = Profile.objects.get(user=printer)
        assert profile.yearly_revenue == Decimal('100.00')
        assert profile.yearly_transaction_count == 1
        assert profile.reserved_revenue == Decimal('0.00')

        conversation = Conversation.objects.get(pk=signed_conversation.pk)
        assert conversation.status == Conversation.COMPLETED
        assert conversation.is_archived is True
        assert Project.objects.get(pk=delivered_contract.project_id).status == Project.COMPLETED

    def test_delivery_is_confirmed_by_the_client_only(self, paid_contract, printer):
        ContractService.start_printing(paid_contract, printer)
        ContractService.complete_printing(paid_contract, printer)
        ContractService.send_photos(paid_contract, printer, ['https://cdn.example.com/a.jpg'])
        ContractService.mark_as_shipped(paid_contract, printer)
        with pytest.raises(Forbidden):
            ContractService.confirm_delivery(paid_contract, printer)

    def test_delivery_cannot_be_confirmed_twice(self, delivered_contract, client_user, printer):
        with pytest.raises(InvalidStateTransition):
            ContractService.confirm_delivery(delivered_contract, client_user)
        assert balances(printer)[0] == Decimal('100.00')


@pytest.fixture
def legacy_contract(project, client_user, printer):
    quote = QuoteService.create_quote(project, printer, '50.00', 'Impression en PETG sous 3 jours')
    QuoteService.accept_quote(quote, client_user)
    return ContractService.create_contract(quote, client_user)


class TestCancellation:

    def test_legacy_contract_amounts(self, legacy_contract):
        assert legacy_contract.agreed_price == Decimal('50.00')
        assert legacy_contract.total_paid == Decimal('55.00')
        assert legacy_contract.quote_snapshot['price'] == '50.00'

    def test_cancel_refunds_the_escrow(self, legacy_contract, client_user, printer):
        set_balance(client_user, '20.00')
        payment, _ = PaymentService.authorize_payment(legacy_contract, client_user, use_balance='20')
        PaymentService.confirm_payment(payment)
        assert balances(client_user)[0] == Decimal('0.00')

        contract = ContractService.cancel_contract(legacy_contract, client_user, 'Projet abandonné')

        assert contract.status == Contract.CANCELLED
        payment.refresh_from_db()
        assert payment.status == Transaction.REFUNDED
        assert payment.gateway_refund_id.startswith('re_test_')
        assert payment.refund_amount == Decimal('55.00')
        assert balances(client_user)[0] == Decimal('20.00')
        assert balances(printer)[1:] == (Decimal('0.00'), Decimal('0.00'))
        assert Profile.objects.get(user=printer).reserved_revenue == Decimal('0.00')

        project = Project.objects.get(pk=contract.project_id)
        assert project.status == Project.OPEN
        assert project.printer_found is False

    def test_cancel_after_printing_started_is_refused(self, legacy_contract, client_user, printer):
        payment, _ = PaymentService.authorize_payment(legacy_contract, client_user)
        PaymentService.confirm_payment(payment)
        ContractService.start_printing(legacy_contract, printer)
        with pytest.raises(InvalidStateTransition):
            ContractService.cancel_contract(legacy_contract, printer)

    def test_signed_conversation_contract_goes_through_mediation(self, paid_contract, client_user, staff_user,
                                                                signed_conversation, printer):
        with pytest.raises(InvalidStateTransition):
            ContractService.cancel_contract(paid_contract, client_user)

        conversation = ConversationService.cancel_by_mediation(signed_conversation, staff_user, 'Litige qualité')

        assert conversation.status == Conversation.CANCELLED_MEDIATION
        paid_contract.refresh_from_db()
        assert paid_contract.status == Contract.CANCELLED
        assert paid_contract.transactions.get().status == Transaction.REFUNDED
        assert balances(printer)[1] == Decimal('0.00')

    def test_outsider_cannot_cancel(self, legacy_contract, outsider):
        with pytest.raises(Forbidden):
            ContractService.cancel_contract(legacy_contract, outsider)


class TestStatistics:

    def test_earnings_and_revenue(self, delivered_contract, printer):
        earnings = ContractService.printer_earnings(printer)
        assert earnings['total_earnings'] == Decimal('100.00')
        assert earnings['contract_count'] == 1
        assert earnings['paid_out'] == Decimal('0.00')

        revenue = ContractService.platform_revenue()
        assert revenue['total_commission'] == Decimal('10.00')
        assert revenue['total_volume'] == Decimal('110.00')
        assert revenue['transaction_count'] == 1
