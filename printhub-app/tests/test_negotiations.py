from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from contracts.models import Contract
from core.exceptions import Forbidden, InvalidStateTransition, LimitExceeded, ValidationFailed
from negotiations.models import Conversation, QuoteRevision
from negotiations.services import PAUSE_EXPIRED_REASON, ConversationService
from projects.models import Project
from .conftest import QUOTE


def counter(price):
    return dict(QUOTE, unit_price=price)


class TestStart:

    def test_start_is_idempotent(self, project, printer):
        first, created = ConversationService.start(project, printer, printer)
        second, created_again = ConversationService.start(project, printer, printer)
        assert created is True
        assert created_again is False
        assert first.pk == second.pk
        assert first.status == Conversation.PENDING
        assert first.initiated_by == Conversation.PRINTER

    def test_client_invitation_records_the_printer(self, project, client_user, printer):
        conversation, _ = ConversationService.start(project, printer, client_user)
        assert conversation.initiated_by == Conversation.CLIENT
        assert project.invited_printers.filter(pk=printer.pk).exists()

    def test_only_printers_can_be_counterparts(self, project, client_user, outsider):
        with pytest.raises(ValidationFailed):
            ConversationService.start(project, outsider, client_user)

    def test_outsiders_cannot_open_a_conversation(self, project, printer, other_printer):
        with pytest.raises(Forbidden):
            ConversationService.start(project, printer, other_printer)

    def test_first_message_activates(self, conversation, printer, client_user):
        conversation = ConversationService.post_message(conversation, printer)
        assert conversation.status == Conversation.ACTIVE
        assert conversation.unread_count_client == 1
        assert conversation.last_message_by == Conversation.PRINTER

        conversation = ConversationService.mark_read(conversation, client_user)
        conversation.refresh_from_db()
        assert conversation.unread_count_client == 0


class TestQuotes:

    def test_send_quote(self, quoted_conversation, project):
        quote = quoted_conversation.current_quote
        assert quoted_conversation.status == Conversation.QUOTE_SENT
        assert quote['total_price'] == '100.00'
        assert quote['sent_by'] == Conversation.PRINTER
        assert quote['version'] == 1
        project.refresh_from_db()
        assert project.status == Project.QUOTED

    def test_only_printer_sends_the_first_quote(self, conversation, client_user):
        with pytest.raises(Forbidden):
            ConversationService.send_quote(conversation, client_user, QUOTE)

    def test_second_quote_must_be_a_counter(self, quoted_conversation, printer):
        with pytest.raises(InvalidStateTransition):
            ConversationService.send_quote(quoted_conversation, printer, QUOTE)

    def test_total_price_is_recomputed(self, conversation, printer):
        payload = dict(QUOTE, quantity=3, shipping_cost='7.50', total_price='1.00')
        conversation = ConversationService.send_quote(conversation, printer, payload)
        assert conversation.current_quote['total_price'] == '307.50'

    def test_invalid_quote_payload(self, conversation, printer):
        with pytest.raises(ValidationFailed):
            ConversationService.send_quote(conversation, printer, dict(QUOTE, unit_price='-3'))
        with pytest.raises(ValidationFailed):
            ConversationService.send_quote(conversation, printer, dict(QUOTE, quantity=-2))

    def test_zero_quantity_is_rejected(self, conversation, printer):
        with pytest.raises(ValidationFailed):
            ConversationService.send_quote(conversation, printer, dict(QUOTE, quantity=0))
        conversation.refresh_from_db()
        assert conversation.current_quote is None

    def test_missing_quantity_defaults_to_one(self, conversation, printer):
        payload = {k: v for k, v in QUOTE.items() if k != 'quantity'}
        conversation = ConversationService.send_quote(conversation, printer, payload)
        assert conversation.current_quote['quantity'] == 1
        assert conversation.current_quote['total_price'] == '100.00'

    def test_counter_offers_are_capped_at_three(self, quoted_conversation, client_user, printer):
        conversation = quoted_conversation
        for user, price in [(client_user, '80'), (printer, '95'), (client_user, '85')]:
            conversation = ConversationService.counter_quote(conversation, user, counter(price))
        assert conversation.counter_offer_count == 3
        assert conversation.status == Conversation.NEGOTIATING

        for user in (printer, client_user):
            with pytest.raises(LimitExceeded) as excinfo:
                ConversationService.counter_quote(conversation, user, counter('90'))
            assert excinfo.value.details['counter_offer_count'] == 3
            assert excinfo.value.details['max_counter_offers'] == 3

        conversation.refresh_from_db()
        assert conversation.current_quote['unit_price'] == '85.00'
        assert conversation.current_quote['version'] == 4

    def test_history_is_append_only(self, quoted_conversation, client_user):
        conversation = ConversationService.counter_quote(quoted_conversation, client_user, counter('80'))
        history = list(conversation.quote_history.all())
        assert [(r.version, r.outcome) for r in history] == [(1, QuoteRevision.SUPERSEDED)]
        assert history[0].snapshot['unit_price'] == '100.00'

        history[0].note = 'edited'
        with pytest.raises(InvalidStateTransition):
            history[0].save()

    def test_accepting_your_own_quote_is_forbidden(self, quoted_conversation, printer):
        with pytest.raises(Forbidden):
            ConversationService.accept_quote(quoted_conversation, printer)

    def test_reject_archives_the_quote(self, quoted_conversation, client_user, printer):
        conversation = ConversationService.reject_quote(quoted_conversation, client_user, 'Trop cher')
        assert conversation.current_quote is None
        assert conversation.status == Conversation.NEGOTIATING
        revision = conversation.quote_history.get()
        assert revision.outcome == QuoteRevision.REJECTED
        assert revision.note == 'Trop cher'

        conversation = ConversationService.send_quote(conversation, printer, counter('90'))
        assert conversation.current_quote['version'] == 2


class TestSignature:

    def test_sign_requires_an_accepted_quote(self, quoted_conversation, client_user):
        with pytest.raises(InvalidStateTransition):
            ConversationService.sign(quoted_conversation, client_user)

    def test_bilateral_signature(self, accepted_conversation, client_user, printer):
        conversation = ConversationService.sign(accepted_conversation, client_user)
        assert conversation.status == Conversation.QUOTE_ACCEPTED
        first_signature = conversation.client_signed_at

        conversation = ConversationService.sign(conversation, client_user)
        assert conversation.client_signed_at == first_signature
        assert conversation.status == Conversation.QUOTE_ACCEPTED
        assert not Contract.objects.exists()

        conversation = ConversationService.sign(conversation, printer)
        assert conversation.status == Conversation.SIGNED
        assert conversation.signed_at is not None

    def test_agreement_creates_one_contract_and_closes_the_project(self, signed_conversation, printer):
        contract = Contract.objects.get(conversation=signed_conversation)
        assert contract.status == Contract.PENDING_SIGNATURE
        assert contract.printer_id == printer.pk
        assert str(contract.agreed_price) == '100.00'
        assert str(contract.total_paid) == '110.00'

        ConversationService.sign(signed_conversation, printer)
        assert Contract.objects.filter(conversation=signed_conversation).count() == 1

        project = signed_conversation.project
        project.refresh_from_db()
        assert project.printer_found is True
        assert project.selected_printer_id == printer.pk

    def test_other_printers_are_shut_out_once_signed(self, project, other_printer, accepted_conversation,
                                                     client_user, printer):
        other, _ = ConversationService.start(project, other_printer, other_printer)
        ConversationService.sign(accepted_conversation, client_user)
        ConversationService.sign(accepted_conversation, printer)
        with pytest.raises(InvalidStateTransition):
            ConversationService.send_quote(other, other_printer, QUOTE)

    def test_pause_voids_a_pending_signature(self, accepted_conversation, client_user, printer):
        conversation = ConversationService.sign(accepted_conversation, client_user)
        conversation = ConversationService.pause(conversation, printer)
        conversation = ConversationService.resume(conversation, printer)
        assert conversation.client_signed_at is None
        assert conversation.status == Conversation.ACTIVE

        conversation = ConversationService.counter_quote(conversation, printer, counter('500.00'))
        conversation = ConversationService.accept_quote(conversation, client_user)
        conversation = ConversationService.sign(conversation, printer)
        assert conversation.status == Conversation.QUOTE_ACCEPTED
        assert conversation.signed_at is None
        assert not Contract.objects.filter(conversation=conversation).exists()

        conversation = ConversationService.sign(conversation, client_user)
        assert conversation.status == Conversation.SIGNED
        assert str(Contract.objects.get(conversation=conversation).agreed_price) == '500.00'

    def test_new_quote_voids_signatures(self, quoted_conversation, client_user, printer):
        conversation = ConversationService.counter_quote(quoted_conversation, client_user, counter('80'))
        conversation.printer_signed_at = timezone.now()
        conversation.save()

        conversation = ConversationService.counter_quote(conversation, printer, counter('90'))
        assert conversation.printer_signed_at is None
        conversation = ConversationService.reject_quote(conversation, client_user)
        conversation.refresh_from_db()
        assert conversation.client_signed_at is None
        assert conversation.printer_signed_at is None


class TestCancellation:

    def test_cancel_by_client(self, quoted_conversation, client_user):
        conversation = ConversationService.cancel(quoted_conversation, client_user, 'Plus besoin')
        assert conversation.status == Conversation.CANCELLED_BY_CLIENT
        assert conversation.cancelled_by == Conversation.CLIENT
        assert conversation.is_archived is True
        with pytest.raises(InvalidStateTransition):
            ConversationService.post_message(conversation, client_user)

    def test_mutual_cancel_needs_both_parties(self, quoted_conversation, printer, client_user):
        conversation = ConversationService.cancel(quoted_conversation, printer, mutual=True)
        assert conversation.status == Conversation.QUOTE_SENT
        assert conversation.mutual_cancel_requested_by == Conversation.PRINTER
        assert conversation.is_archived is False
        with pytest.raises(InvalidStateTransition):
            ConversationService.cancel(conversation, printer, mutual=True)

        conversation = ConversationService.cancel(conversation, client_user, 'Projet abandonné', mutual=True)
        assert conversation.status == Conversation.CANCELLED_MUTUAL
        assert conversation.cancelled_by == Conversation.MUTUAL
        assert conversation.is_archived is True

    def test_unilateral_cancel_is_still_possible_after_a_mutual_request(self, quoted_conversation, printer,
                                                                         client_user):
        conversation = ConversationService.cancel(quoted_conversation, printer, mutual=True)
        conversation = ConversationService.cancel(conversation, client_user)
        assert conversation.status == Conversation.CANCELLED_BY_CLIENT

    def test_signed_conversation_needs_mediation(self, signed_conversation, client_user):
        with pytest.raises(InvalidStateTransition):
            ConversationService.cancel(signed_conversation, client_user)

    def test_withdraw(self, quoted_conversation, project, printer):
        conversation = ConversationService.withdraw(quoted_conversation, printer, 'Machine en panne')
        assert conversation.status == Conversation.CANCELLED_BY_PRINTER
        assert conversation.current_quote is None
        assert conversation.counter_offer_count == 0
        assert conversation.withdrawn_at is not None
        assert conversation.quote_history.get().outcome == QuoteRevision.WITHDRAWN

        fresh, created = ConversationService.start(project, printer, printer)
        assert created is True
        assert fresh.pk != conversation.pk

    def test_withdraw_is_printer_only(self, quoted_conversation, client_user):
        with pytest.raises(Forbidden):
            ConversationService.withdraw(quoted_conversation, client_user)

    def test_refuse_blocks_the_printer(self, quoted_conversation, project, client_user, printer):
        conversation = ConversationService.refuse(quoted_conversation, client_user)
        assert conversation.status == Conversation.CANCELLED_BY_CLIENT
        project.refresh_from_db()
        assert project.refusal_count == 1
        assert project.refused_printers.filter(pk=printer.pk).exists()
        with pytest.raises(Forbidden):
            ConversationService.start(project, printer, printer)

    def test_outsider_cannot_act(self, quoted_conversation, outsider):
        with pytest.raises(Forbidden):
            ConversationService.cancel(quoted_conversation, outsider)


class TestPauseAndMediation:

    def test_pause_and_resume(self, quoted_conversation, client_user):
        conversation = ConversationService.pause(quoted_conversation, client_user)
        assert conversation.status == Conversation.PAUSED
        assert conversation.pause_expires_at - conversation.paused_at == timedelta(days=30)
        with pytest.raises(InvalidStateTransition):
            ConversationService.pause(conversation, client_user)

        conversation = ConversationService.resume(conversation, client_user)
        assert conversation.status == Conversation.ACTIVE
        assert conversation.paused_at is None
        assert conversation.current_quote['version'] == 1

    def test_quote_can_be_accepted_after_resume(self, quoted_conversation, client_user, printer):
        conversation = ConversationService.pause(quoted_conversation, printer)
        conversation = ConversationService.resume(conversation, client_user)
        conversation = ConversationService.accept_quote(conversation, client_user)
        assert conversation.status == Conversation.QUOTE_ACCEPTED

    def test_quote_can_be_rejected_after_resume(self, quoted_conversation, client_user):
        conversation = ConversationService.pause(quoted_conversation, client_user)
        conversation = ConversationService.resume(conversation, client_user)
        conversation = ConversationService.reject_quote(conversation, client_user, 'Délai trop long')
        assert conversation.status == Conversation.NEGOTIATING
        assert conversation.current_quote is None

    def test_expired_pauses_are_swept_once(self, quoted_conversation, client_user):
        long_ago = timezone.now() - timedelta(days=31)
        ConversationService.pause(quoted_conversation, client_user, now=long_ago)

        assert ConversationService.expire_paused() == 1
        assert ConversationService.expire_paused() == 0

        conversation = Conversation.objects.get(pk=quoted_conversation.pk)
        assert conversation.status == Conversation.CANCELLED_MUTUAL
        assert conversation.cancellation_reason == PAUSE_EXPIRED_REASON
        assert conversation.is_archived is True
        assert conversation.pause_expires_at is None

    def test_recent_pause_is_kept(self, quoted_conversation, client_user):
        ConversationService.pause(quoted_conversation, client_user)
        assert ConversationService.expire_paused() == 0

    def test_request_mediation_keeps_the_status(self, quoted_conversation, printer):
        conversation = ConversationService.request_mediation(quoted_conversation, printer, 'Pas de réponse')
        assert conversation.mediation_requested is True
        assert conversation.mediation_requested_by == Conversation.PRINTER
        assert conversation.status == Conversation.QUOTE_SENT
        with pytest.raises(ValidationFailed):
            ConversationService.request_mediation(conversation, printer, '  ')

    def test_mediation_cancel_requires_staff(self, quoted_conversation, client_user, staff_user):
        with pytest.raises(Forbidden):
            ConversationService.cancel_by_mediation(quoted_conversation, client_user, 'Litige')
        conversation = ConversationService.cancel_by_mediation(quoted_conversation, staff_user, 'Litige')
        assert conversation.status == Conversation.CANCELLED_MEDIATION
        assert conversation.cancelled_by == Conversation.MEDIATOR

    def test_report_and_favorite(self, quoted_conversation, client_user):
        conversation = ConversationService.report(quoted_conversation, client_user, 'Propos déplacés')
        assert conversation.reported is True
        assert conversation.reported_by == Conversation.CLIENT

        conversation = ConversationService.set_favorite(conversation, client_user)
        conversation.refresh_from_db()
        assert conversation.is_favorite_for_client is True
        assert conversation.is_favorite_for_printer is False


class TestInactivityReminders:

    def test_one_reminder_per_silence(self, conversation, printer, client_user):
        ConversationService.post_message(conversation, printer, now=timezone.now() - timedelta(hours=49))

        with mock.patch('negotiations.services.notifications.notify') as notify:
            assert ConversationService.send_inactivity_reminders() == 1
            assert ConversationService.send_inactivity_reminders() == 0
        recipient, kind = notify.call_args[0][:2]
        assert recipient == client_user
        assert kind == 'inactivity_reminder'

    def test_recent_activity_is_not_reminded(self, conversation, printer):
        ConversationService.post_message(conversation, printer)
        assert ConversationService.send_inactivity_reminders() == 0

    def test_new_message_reopens_the_window(self, conversation, printer, client_user):
        ConversationService.post_message(conversation, printer, now=timezone.now() - timedelta(hours=100))
        assert ConversationService.send_inactivity_reminders() == 1
        ConversationService.post_message(conversation, client_user, now=timezone.now() - timedelta(hours=50))
        assert ConversationService.send_inactivity_reminders() == 1
