"""
Services pour les projets et les devis simples
"""
import logging
from datetime import date

from django.db import transaction
from django.utils import timezone

from accounts.permissions import require_client, require_printer
from core import notifications
from core.exceptions import Forbidden, InvalidStateTransition, ValidationFailed
from payments.ledger import to_money
from .models import Project, Quote

logger = logging.getLogger(__name__)


class ProjectService:
    """Service pour gérer les projets d'impression"""

    @staticmethod
    def create_project(client, title, description='', model_file_url=None, model_file_size=None, quantity=1):
        require_client(client, "Seul un client peut publier un projet")
        if not (title or '').strip():
            raise ValidationFailed("Le titre est obligatoire")
        try:
            quantity = int(quantity or 1)
        except (TypeError, ValueError):
            raise ValidationFailed("Quantité invalide")
        if quantity < 1:
            raise ValidationFailed("Quantité invalide")

        project = Project.objects.create(
            client=client,
            title=title.strip(),
            description=description or '',
            model_file_url=model_file_url or None,
            model_file_size=model_file_size or None,
            quantity=quantity,
        )
        logger.info(f"Projet #{project.id} créé par {client.username}")
        return project

    @staticmethod
    def close_for_offers(project: Project, printer):
        """Le client a trouvé son imprimeur : plus aucune nouvelle offre"""
        if project.printer_found and project.selected_printer_id == printer.id:
            return project
        project.mark_printer_found(printer)
        logger.info(f"Projet #{project.id} : imprimeur {printer.username} retenu")
        return project

    @staticmethod
    def reopen(project: Project):
        """Contrat annulé : le client peut chercher un autre imprimeur"""
        project.printer_found = False
        project.printer_found_at = None
        project.selected_printer = None
        project.status = Project.OPEN
        project.save(update_fields=['printer_found', 'printer_found_at', 'selected_printer', 'status', 'updated_at'])
        logger.info(f"Projet #{project.id} rouvert aux offres")
        return project


class QuoteService:
    """Service pour les devis simples"""

    @staticmethod
    @transaction.atomic
    def create_quote(project: Project, printer, price, message, estimated_duration=1,
                     duration_unit=Quote.DAYS, delivery_date=None, breakdown=None):
        require_printer(printer, "Seul un imprimeur peut envoyer un devis")
        project = Project.objects.select_for_update().get(pk=project.pk)

        if not project.is_open_for_offers():
            raise InvalidStateTransition("Ce projet n'accepte plus de devis")
        if project.refused_printers.filter(pk=printer.pk).exists():
            raise Forbidden("Le client a décliné votre offre sur ce projet")
        if Quote.objects.filter(project=project, printer=printer, status=Quote.PENDING).exists():
            raise InvalidStateTransition("Vous avez déjà un devis en attente sur ce projet")

        try:
            price = to_money(price)
        except ValueError:
            raise ValidationFailed("Prix invalide")
        if price < 0:
            raise ValidationFailed("Le prix ne peut pas être négatif")
        if not (message or '').strip():
            raise ValidationFailed("Le message du devis est obligatoire")
        if duration_unit not in dict(Quote.DURATION_UNIT_CHOICES):
            raise ValidationFailed("Unité de durée invalide")
        if isinstance(delivery_date, str) and delivery_date:
            try:
                delivery_date = date.fromisoformat(delivery_date)
            except ValueError:
                raise ValidationFailed("Date de livraison invalide")

        breakdown = breakdown or {}
        try:
            quote = Quote.objects.create(
                project=project,
                printer=printer,
                price=price,
                message=message.strip(),
                estimated_duration=int(estimated_duration or 1),
                duration_unit=duration_unit,
                delivery_date=delivery_date or None,
                materials_cost=to_money(breakdown.get('materials', 0)),
                labor_cost=to_money(breakdown.get('labor', 0)),
                shipping_cost=to_money(breakdown.get('shipping', 0)),
                other_cost=to_money(breakdown.get('other', 0)),
            )
        except (TypeError, ValueError):
            raise ValidationFailed("Détail du devis invalide")

        if project.status == Project.OPEN:
            project.status = Project.QUOTED
            project.save(update_fields=['status', 'updated_at'])

        notifications.notify(project.client, notifications.QUOTE_RECEIVED,
                             {'project_id': project.id, 'quote_id': quote.id, 'price': quote.price})
        logger.info(f"Devis #{quote.id} envoyé par {printer.username} sur le projet #{project.id}")
        return quote

    @staticmethod
    @transaction.atomic
    def accept_quote(quote: Quote, client):
        quote = Quote.objects.select_for_update().select_related('project').get(pk=quote.pk)
        project = quote.project
        if project.client_id != client.id:
            raise Forbidden("Seul le client du projet peut accepter un devis")
        if quote.status != Quote.PENDING:
            raise InvalidStateTransition(f"Ce devis n'est plus en attente (statut : {quote.status})")
        if quote.is_expired():
            raise InvalidStateTransition("Ce devis a expiré")
        if not project.is_open_for_offers():
            raise InvalidStateTransition("Ce projet n'accepte plus de devis")

        now = timezone.now()
        quote.status = Quote.ACCEPTED
        quote.accepted_at = now
        quote.save(update_fields=['status', 'accepted_at', 'updated_at'])

        # Les autres devis en attente sont refusés
        Quote.objects.filter(project=project, status=Quote.PENDING).exclude(pk=quote.pk).update(
            status=Quote.REJECTED, rejected_at=now,
            rejection_reason="Un autre devis a été accepté", updated_at=now)

        ProjectService.close_for_offers(project, quote.printer)
        notifications.notify(quote.printer, notifications.QUOTE_ACCEPTED,
                             {'project_id': project.id, 'quote_id': quote.id})
        logger.info(f"Devis #{quote.id} accepté par {client.username}")
        return quote

    @staticmethod
    @transaction.atomic
    def reject_quote(quote: Quote, client, reason=None):
        quote = Quote.objects.select_for_update().select_related('project').get(pk=quote.pk)
        if quote.project.client_id != client.id:
            raise Forbidden("Seul le client du projet peut refuser un devis")
        if quote.status != Quote.PENDING:
            raise InvalidStateTransition(f"Ce devis n'est plus en attente (statut : {quote.status})")

        quote.status = Quote.REJECTED
        quote.rejected_at = timezone.now()
        quote.rejection_reason = reason or None
        quote.save(update_fields=['status', 'rejected_at', 'rejection_reason', 'updated_at'])
        notifications.notify(quote.printer, notifications.QUOTE_REJECTED,
                             {'project_id': quote.project_id, 'quote_id': quote.id, 'reason': reason or ''})
        return quote
