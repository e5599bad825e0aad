import json
from decimal import Decimal
from unittest import mock

import pytest
from django.urls import reverse

from accounts.models import Profile
from contracts.models import Transaction
from contracts.services import PaymentService
from payments.models import PaymentWebhookLog
from .conftest import QUOTE


def post_json(client, url, data=None):
    return client.post(url, data=json.dumps(data or {}), content_type='application/json')


class TestErrorEnvelope:

    def test_anonymous_users_are_redirected(self, client, contract):
        response = client.get(reverse('contracts:contract-detail', args=[contract.id]))
        assert response.status_code == 302

    def test_unknown_contract_is_404(self, client, client_user):
        client.force_login(client_user)
        response = client.get(reverse('contracts:contract-detail', args=[999]))
        assert response.status_code == 404
        assert response.json() == {'success': False, 'error': 'Contrat introuvable', 'code': 'not_found'}

    def test_non_party_is_forbidden(self, client, outsider, contract):
        client.force_login(outsider)
        response = client.get(reverse('contracts:contract-detail', args=[contract.id]))
        assert response.status_code == 403
        assert response.json()['code'] == 'forbidden'

    def test_invalid_json_is_400(self, client, printer, conversation):
        client.force_login(printer)
        response = client.post(reverse('negotiations:send-quote', args=[conversation.id]),
                               data='{not json', content_type='application/json')
        assert response.status_code == 400
        assert response.json()['code'] == 'validation_failed'

    def test_counter_offer_limit_is_409(self, client, quoted_conversation, client_user, printer):
        for index, user in enumerate([client_user, printer, client_user]):
            client.force_login(user)
            response = post_json(client, reverse('negotiations:counter-quote', args=[quoted_conversation.id]),
                                 dict(QUOTE, unit_price=str(95 - index)))
            assert response.status_code == 200

        client.force_login(printer)
        response = post_json(client, reverse('negotiations:counter-quote', args=[quoted_conversation.id]),
                             dict(QUOTE, unit_price='90'))
        assert response.status_code == 409
        body = response.json()
        assert body['code'] == 'limit_exceeded'
        assert body['max_counter_offers'] == 3

    def test_compliance_block_carries_the_usage(self, client, contract, client_user, printer):
        Profile.objects.filter(user=printer).update(
            yearly_revenue=Decimal('2950.00'), revenue_year=contract.created_at.year)
        client.force_login(client_user)
        response = post_json(client, reverse('contracts:sign-and-pay', args=[contract.id]))
        assert response.status_code == 403
        body = response.json()
        assert body['code'] == 'compliance_blocked'
        assert body['upgrade_required'] is True
        assert body['usage']['max_revenue'] == '3000.00'

    def test_unexpected_errors_are_hidden(self, client, client_user):
        client.force_login(client_user)
        with mock.patch('contracts.views.ContractService.list_for_user', side_effect=RuntimeError('boom')):
            response = client.get(reverse('contracts:contract-list'))
        assert response.status_code == 500
        assert response.json() == {'success': False, 'error': 'Une erreur interne est survenue'}

    def test_staff_endpoints_redirect_other_users(self, client, client_user):
        client.force_login(client_user)
        response = client.get(reverse('contracts:platform-revenue'))
        assert response.status_code == 302


class TestNegotiationFlow:

    def test_start_is_idempotent(self, client, project, printer):
        client.force_login(printer)
        url = reverse('negotiations:conversations')
        first = post_json(client, url, {'project_id': project.id})
        second = post_json(client, url, {'project_id': project.id})
        assert first.status_code == 201
        assert second.status_code == 200
        assert first.json()['conversation']['id'] == second.json()['conversation']['id']

    def test_sign_and_pay_over_http(self, client, accepted_conversation, client_user, printer):
        client.force_login(client_user)
        post_json(client, reverse('negotiations:sign', args=[accepted_conversation.id]))
        client.force_login(printer)
        response = post_json(client, reverse('negotiations:sign', args=[accepted_conversation.id]))
        contract_id = response.json()['contract_id']
        assert response.json()['conversation']['status'] == 'signed'

        client.force_login(client_user)
        response = post_json(client, reverse('contracts:sign-and-pay', args=[contract_id]))
        assert response.status_code == 200
        body = response.json()
        assert body['transaction']['total_amount'] == '110.00'
        assert body['client_secret'].startswith('pi_test_')

    def test_client_cannot_confirm_a_card_payment(self, client, contract, client_user, printer):
        payment, _ = PaymentService.authorize_payment(contract, client_user)
        client.force_login(client_user)
        response = post_json(client, reverse('contracts:confirm-payment', args=[payment.id]))
        assert response.status_code == 302
        payment.refresh_from_db()
        assert payment.status == Transaction.PENDING
        assert Profile.objects.get(user=printer).balance_pending == Decimal('0.00')

    def test_staff_confirms_a_payment_manually(self, client, contract, client_user, staff_user):
        payment, _ = PaymentService.authorize_payment(contract, client_user)
        client.force_login(staff_user)
        response = post_json(client, reverse('contracts:confirm-payment', args=[payment.id]))
        assert response.status_code == 200
        assert response.json()['transaction']['status'] == Transaction.PROCESSING

    def test_mutual_cancel_request_is_visible(self, client, quoted_conversation, client_user, printer):
        client.force_login(printer)
        url = reverse('negotiations:cancel', args=[quoted_conversation.id])
        response = post_json(client, url, {'mutual': True})
        conversation = response.json()['conversation']
        assert conversation['status'] == 'quote_sent'
        assert conversation['mutual_cancel_requested_by'] == 'printer'

        client.force_login(client_user)
        response = post_json(client, url, {'mutual': True})
        assert response.json()['conversation']['status'] == 'cancelled_mutual'


class TestStripeWebhook:

    def send(self, client, payload):
        return client.post(reverse('payments:stripe-webhook'), data=payload, content_type='application/json')

    def event(self, payment, event_type='payment_intent.succeeded'):
        return json.dumps({'id': 'evt_1', 'type': event_type, 'data': {'object': {'id': payment.gateway_payment_id}}})

    def test_success_confirms_the_payment(self, client, contract, client_user):
        payment, _ = PaymentService.authorize_payment(contract, client_user)

        response = self.send(client, self.event(payment))

        assert response.status_code == 200
        payment.refresh_from_db()
        assert payment.status == Transaction.PROCESSING
        log = PaymentWebhookLog.objects.get()
        assert log.processed is True
        assert log.transaction == payment

    def test_replay_is_acknowledged_without_effect(self, client, contract, client_user, printer):
        payment, _ = PaymentService.authorize_payment(contract, client_user)
        self.send(client, self.event(payment))

        response = self.send(client, self.event(payment))

        assert response.status_code == 200
        assert Profile.objects.get(user=printer).balance_pending == Decimal('100.00')
        replay = PaymentWebhookLog.objects.order_by('-id').first()
        assert replay.processed is False
        assert replay.error_message

    def test_failure_event(self, client, contract, client_user):
        payment, _ = PaymentService.authorize_payment(contract, client_user)
        self.send(client, self.event(payment, 'payment_intent.payment_failed'))
        payment.refresh_from_db()
        assert payment.status == Transaction.FAILED

    @pytest.mark.parametrize('payload', ['{oops', '[1, 2]'])
    def test_unreadable_payload(self, db, client, payload):
        assert self.send(client, payload).status_code == 400
        assert not PaymentWebhookLog.objects.exists()
