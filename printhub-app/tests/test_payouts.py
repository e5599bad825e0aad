from decimal import Decimal
from unittest import mock

import pytest

from accounts.models import Profile
from contracts.models import Contract
from core.exceptions import (
    Forbidden, GatewayFailure, InsufficientFunds, InvalidStateTransition, LimitExceeded, ValidationFailed,
)
from payments.models import Payout
from payments.payout_service import PayoutService
from payments.services.stripe_gateway import stripe_gateway

IBAN = 'FR76 3000 6000 0112 3456 7890 189'


@pytest.fixture
def payee(delivered_contract, printer):
    PayoutService.update_bank_details(printer, 'Bob Martin', IBAN, 'agrifrpp', 'Crédit Agricole')
    return printer


def balance(user):
    profile = Profile.objects.get(user=user)
    return {
        'available': profile.balance_available,
        'reserved': profile.balance_reserved,
        'total': profile.balance_total,
    }


class TestBankDetails:

    def test_iban_is_normalized_and_masked(self, printer):
        PayoutService.update_bank_details(printer, 'Bob Martin', IBAN.lower(), 'AGRIFRPP')
        profile = Profile.objects.get(user=printer)
        assert profile.bank_iban == 'FR7630006000011234567890189'

        details = PayoutService.get_bank_details(printer)
        assert details['iban'].startswith('FR76')
        assert details['iban'].endswith('0189')
        assert '*' in details['iban']
        assert details['has_bank_details'] is True

    @pytest.mark.parametrize('holder, iban, bic', [
        ('', IBAN, ''),
        ('Bob Martin', 'FR76', ''),
        ('Bob Martin', IBAN, 'AGRI'),
    ])
    def test_invalid_bank_details(self, printer, holder, iban, bic):
        with pytest.raises(ValidationFailed):
            PayoutService.update_bank_details(printer, holder, iban, bic)

    def test_clients_have_no_bank_details(self, client_user):
        with pytest.raises(Forbidden):
            PayoutService.update_bank_details(client_user, 'Alice', IBAN)


class TestPayoutRequest:

    def test_request_reserves_the_amount(self, payee):
        payout = PayoutService.request_payout(payee, '100.00', 'Merci')

        assert payout.status == Payout.PENDING
        assert payout.bank_details['iban'] == 'FR7630006000011234567890189'
        assert list(payout.contracts.values_list('status', flat=True)) == [Contract.DELIVERED_CONFIRMED]
        assert balance(payee) == {
            'available': Decimal('0.00'), 'reserved': Decimal('100.00'), 'total': Decimal('100.00')}

    def test_single_payout_in_flight(self, payee):
        PayoutService.request_payout(payee, '40')
        with pytest.raises(LimitExceeded):
            PayoutService.request_payout(payee, '40')
        assert Payout.objects.filter(printer=payee, status=Payout.PENDING).count() == 1

    def test_minimum_amount(self, payee, settings):
        settings.PAYOUT_MIN_AMOUNT = '20.00'
        with pytest.raises(ValidationFailed) as excinfo:
            PayoutService.request_payout(payee, '19.99')
        assert excinfo.value.details['min_amount'] == '20.00'

    def test_amount_above_available(self, payee):
        with pytest.raises(InsufficientFunds):
            PayoutService.request_payout(payee, '100.01')

    def test_bank_details_are_required(self, delivered_contract, printer):
        with pytest.raises(ValidationFailed):
            PayoutService.request_payout(printer, '50')
        assert not Payout.objects.exists()

    def test_balance_summary(self, payee):
        summary = PayoutService.get_balance(payee)
        assert summary['available'] == '100.00'
        assert summary['contracts_awaiting_payout'] == 1
        assert summary['payout_in_progress'] is None
        assert summary['has_bank_details'] is True


class TestPayoutProcessing:

    def test_successful_transfer(self, payee, staff_user, delivered_contract):
        payout = PayoutService.request_payout(payee, '100')

        payout = PayoutService.process_payout(payout, processed_by=staff_user)

        assert payout.status == Payout.COMPLETED
        assert payout.gateway_transfer_id.startswith('tr_test_')
        assert payout.processed_by == staff_user
        assert balance(payee) == {
            'available': Decimal('0.00'), 'reserved': Decimal('0.00'), 'total': Decimal('0.00')}
        assert Profile.objects.get(user=payee).payee_account_id.startswith('acct_test_')

        delivered_contract.refresh_from_db()
        assert delivered_contract.status == Contract.COMPLETED
        assert delivered_contract.printer_paid is True
        assert delivered_contract.payout == payout

    def test_partial_payout_keeps_the_rest_available(self, payee, staff_user):
        payout = PayoutService.request_payout(payee, '30')
        PayoutService.process_payout(payout, processed_by=staff_user)
        assert balance(payee) == {
            'available': Decimal('70.00'), 'reserved': Decimal('0.00'), 'total': Decimal('70.00')}

    def test_failed_transfer_restores_the_balance(self, payee, staff_user, delivered_contract):
        payout = PayoutService.request_payout(payee, '100')
        failure = GatewayFailure('Compte clôturé', gateway_code='account_closed')

        with mock.patch.object(stripe_gateway, 'transfer', side_effect=failure):
            payout = PayoutService.process_payout(payout, processed_by=staff_user)

        assert payout.status == Payout.FAILED
        assert payout.error_code == 'account_closed'
        assert balance(payee) == {
            'available': Decimal('100.00'), 'reserved': Decimal('0.00'), 'total': Decimal('100.00')}
        delivered_contract.refresh_from_db()
        assert delivered_contract.printer_paid is False

        # Un nouveau versement peut être demandé
        assert PayoutService.request_payout(payee, '100').status == Payout.PENDING

    def test_payout_is_processed_once(self, payee, staff_user):
        payout = PayoutService.request_payout(payee, '100')
        PayoutService.process_payout(payout, processed_by=staff_user)
        with pytest.raises(InvalidStateTransition):
            PayoutService.process_payout(payout, processed_by=staff_user)
        assert balance(payee)['total'] == Decimal('0.00')


class TestPayoutCancellation:

    def test_cancel_releases_the_reservation(self, payee):
        payout = PayoutService.request_payout(payee, '60')
        payout = PayoutService.cancel_payout(payout, payee)
        assert payout.status == Payout.CANCELLED
        assert balance(payee)['available'] == Decimal('100.00')

    def test_processed_payout_cannot_be_cancelled(self, payee, staff_user):
        payout = PayoutService.request_payout(payee, '60')
        PayoutService.process_payout(payout, processed_by=staff_user)
        with pytest.raises(InvalidStateTransition):
            PayoutService.cancel_payout(payout, payee)

    def test_other_users_cannot_cancel(self, payee, other_printer):
        payout = PayoutService.request_payout(payee, '60')
        with pytest.raises(Forbidden):
            PayoutService.cancel_payout(payout, other_printer)
