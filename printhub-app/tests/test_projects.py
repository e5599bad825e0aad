from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from core.exceptions import Forbidden, InvalidStateTransition, ValidationFailed
from projects.models import Project, Quote
from projects.services import ProjectService, QuoteService


class TestProjects:

    def test_create_project(self, client_user):
        project = ProjectService.create_project(client_user, '  Figurine  ', quantity='3')
        assert project.title == 'Figurine'
        assert project.quantity == 3
        assert project.status == Project.OPEN
        assert project.is_open_for_offers()

    def test_printers_cannot_publish(self, printer):
        with pytest.raises(Forbidden):
            ProjectService.create_project(printer, 'Figurine')

    @pytest.mark.parametrize('title, quantity', [('', 1), ('Figurine', 'abc'), ('Figurine', -1)])
    def test_invalid_project(self, client_user, title, quantity):
        with pytest.raises(ValidationFailed):
            ProjectService.create_project(client_user, title, quantity=quantity)


class TestQuotes:

    def test_create_quote_marks_project_quoted(self, project, printer):
        quote = QuoteService.create_quote(project, printer, '45.5', 'PETG, 2 jours',
                                          breakdown={'materials': '10', 'labor': '35.50'})
        assert quote.price == Decimal('45.50')
        assert quote.labor_cost == Decimal('35.50')
        project.refresh_from_db()
        assert project.status == Project.QUOTED

    def test_one_pending_quote_per_printer(self, project, printer):
        QuoteService.create_quote(project, printer, '40', 'Offre')
        with pytest.raises(InvalidStateTransition):
            QuoteService.create_quote(project, printer, '35', 'Nouvelle offre')

    def test_clients_cannot_quote(self, project, client_user):
        with pytest.raises(Forbidden):
            QuoteService.create_quote(project, client_user, '40', 'Offre')

    @pytest.mark.parametrize('price, message', [('-1', 'Offre'), ('abc', 'Offre'), ('40', '  ')])
    def test_invalid_quote(self, project, printer, price, message):
        with pytest.raises(ValidationFailed):
            QuoteService.create_quote(project, printer, price, message)

    def test_accept_rejects_the_other_quotes(self, project, client_user, printer, other_printer):
        chosen = QuoteService.create_quote(project, printer, '40', 'Offre A')
        other = QuoteService.create_quote(project, other_printer, '38', 'Offre B')

        QuoteService.accept_quote(chosen, client_user)

        other.refresh_from_db()
        assert other.status == Quote.REJECTED
        project.refresh_from_db()
        assert project.printer_found is True
        assert project.selected_printer == printer
        with pytest.raises(InvalidStateTransition):
            QuoteService.create_quote(project, other_printer, '30', 'Offre C')

    def test_only_the_project_owner_accepts(self, project, printer, outsider):
        quote = QuoteService.create_quote(project, printer, '40', 'Offre')
        with pytest.raises(Forbidden):
            QuoteService.accept_quote(quote, outsider)

    def test_expired_quote_cannot_be_accepted(self, project, client_user, printer):
        quote = QuoteService.create_quote(project, printer, '40', 'Offre')
        Quote.objects.filter(pk=quote.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        with pytest.raises(InvalidStateTransition):
            QuoteService.accept_quote(quote, client_user)

    def test_reject_quote(self, project, client_user, printer):
        quote = QuoteService.create_quote(project, printer, '40', 'Offre')
        quote = QuoteService.reject_quote(quote, client_user, 'Trop cher')
        assert quote.status == Quote.REJECTED
        assert quote.rejection_reason == 'Trop cher'
        with pytest.raises(InvalidStateTransition):
            QuoteService.accept_quote(quote, client_user)

    def test_reopen_after_cancellation(self, project, printer):
        ProjectService.close_for_offers(project, printer)
        assert not project.is_open_for_offers()
        ProjectService.reopen(project)
        project.refresh_from_db()
        assert project.status == Project.OPEN
        assert project.selected_printer is None
