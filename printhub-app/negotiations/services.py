"""
Services pour le module Négociations
Machine à états des conversations : devis, contre-propositions, signature,
annulation, pause, médiation et étapes de production
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from accounts.models import Profile
from accounts.permissions import role_of
from contracts.models import Contract
from contracts.services import ContractService
from core import notifications
from core.exceptions import Forbidden, InvalidStateTransition, LimitExceeded, ValidationFailed
from projects.models import Project
from projects.services import ProjectService
from .models import Conversation, QuoteRevision, max_counter_offers, pause_duration
from .quotes import QuoteSnapshot
from .signals import agreement_reached

logger = logging.getLogger(__name__)

PAUSE_EXPIRED_REASON = 'pause expired'


class ConversationService:
    """Service pour gérer les négociations client / imprimeur"""

    # Utilitaires

    @staticmethod
    def _lock(conversation: Conversation) -> Conversation:
        return Conversation.objects.select_for_update().get(pk=conversation.pk)

    @staticmethod
    def _party(conversation: Conversation, user) -> str:
        party = conversation.party_of(user)
        if party is None:
            raise Forbidden("Vous ne participez pas à cette conversation")
        return party

    @staticmethod
    def _ensure_open(conversation: Conversation):
        if conversation.is_terminal():
            raise InvalidStateTransition(
                "Cette conversation est terminée et ne peut plus être modifiée",
                status=conversation.status)

    @staticmethod
    def _ensure_status(conversation: Conversation, allowed, message):
        if conversation.status not in allowed:
            raise InvalidStateTransition(message, status=conversation.status)

    @staticmethod
    def _ensure_open_project(conversation: Conversation):
        if conversation.project.printer_found:
            raise InvalidStateTransition("Le client a déjà trouvé son imprimeur pour ce projet")

    @staticmethod
    def _next_version(conversation: Conversation) -> int:
        """Version du prochain devis : taille de l'historique (après archivage) + 1"""
        archived = conversation.quote_history.count()
        if conversation.current_quote:
            archived += 1
        return archived + 1

    @staticmethod
    def _archive_current_quote(conversation: Conversation, outcome=QuoteRevision.SUPERSEDED, note=None, now=None):
        if not conversation.current_quote:
            return None
        snapshot = conversation.current_quote
        revision = QuoteRevision.objects.create(
            conversation=conversation,
            version=snapshot.get('version') or conversation.quote_history.count() + 1,
            sent_by=snapshot.get('sent_by') or '',
            snapshot=snapshot,
            outcome=outcome,
            note=note or None,
            archived_at=now or timezone.now(),
        )
        conversation.current_quote = None
        conversation.clear_signatures()
        return revision

    # Ouverture et messages

    @staticmethod
    @transaction.atomic
    def start(project: Project, printer, initiated_by):
        """
        Démarre (ou retrouve) la conversation entre un projet et un imprimeur.
        Retourne (conversation, created).
        """
        if role_of(printer) != Profile.PRINTER:
            raise ValidationFailed("L'interlocuteur doit être un imprimeur")
        if initiated_by.pk == project.client_id:
            party = Conversation.CLIENT
        elif initiated_by.pk == printer.pk:
            party = Conversation.PRINTER
        else:
            raise Forbidden("Seuls le client du projet et l'imprimeur peuvent ouvrir cette conversation")

        existing = Conversation.objects.filter(project=project, printer=printer, is_archived=False).first()
        if existing:
            return existing, False

        if project.refused_printers.filter(pk=printer.pk).exists():
            raise Forbidden("Le client a décliné cet imprimeur pour ce projet")
        if not project.is_open_for_offers():
            raise InvalidStateTransition("Ce projet n'accepte plus de nouvelles offres")

        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    project=project,
                    client=project.client,
                    printer=printer,
                    initiated_by=party,
                )
        except IntegrityError:
            # Création concurrente
            return Conversation.objects.get(project=project, printer=printer, is_archived=False), False

        if party == Conversation.CLIENT:
            project.invited_printers.add(printer)

        logger.info(f"Conversation #{conversation.id} ouverte sur le projet #{project.id} par {party}")
        return conversation, True

    @staticmethod
    @transaction.atomic
    def post_message(conversation: Conversation, sender, now=None):
        """
        Enregistre l'activité d'un nouveau message (le transport du message
        est externe). Le premier message active la conversation.
        """
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, sender)
        ConversationService._ensure_open(conversation)

        conversation.last_message_at = now or timezone.now()
        conversation.last_message_by = party
        conversation.reminder_sent_at = None
        if party == Conversation.CLIENT:
            conversation.unread_count_printer += 1
        else:
            conversation.unread_count_client += 1
        if conversation.status == Conversation.PENDING:
            conversation.status = Conversation.ACTIVE
        conversation.save()
        return conversation

    @staticmethod
    def mark_read(conversation: Conversation, user):
        party = ConversationService._party(conversation, user)
        field = 'unread_count_client' if party == Conversation.CLIENT else 'unread_count_printer'
        Conversation.objects.filter(pk=conversation.pk).update(**{field: 0})
        setattr(conversation, field, 0)
        return conversation

    # Devis

    @staticmethod
    @transaction.atomic
    def send_quote(conversation: Conversation, user, quote_data, now=None):
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        if party != Conversation.PRINTER:
            raise Forbidden("Seul l'imprimeur peut envoyer un devis")
        ConversationService._ensure_open(conversation)
        ConversationService._ensure_status(
            conversation, [Conversation.PENDING, Conversation.ACTIVE, Conversation.NEGOTIATING],
            "Un devis ne peut pas être envoyé à ce stade")
        ConversationService._ensure_open_project(conversation)
        if conversation.current_quote:
            raise InvalidStateTransition("Un devis est déjà en cours : utilisez la contre-proposition")

        now = now or timezone.now()
        snapshot = QuoteSnapshot.from_payload(
            quote_data, party, ConversationService._next_version(conversation), now)
        conversation.current_quote = snapshot.to_dict()
        conversation.status = Conversation.QUOTE_SENT
        conversation.save()

        project = conversation.project
        if project.status == Project.OPEN:
            project.status = Project.QUOTED
            project.save(update_fields=['status', 'updated_at'])

        notifications.notify(conversation.client, notifications.QUOTE_RECEIVED, {
            'conversation_id': conversation.id, 'total_price': snapshot.total_price})
        logger.info(f"Devis v{snapshot.version} envoyé sur la conversation #{conversation.id}")
        return conversation

    @staticmethod
    @transaction.atomic
    def counter_quote(conversation: Conversation, user, quote_data, now=None):
        """Contre-proposition, limitée à 3 par négociation quel que soit l'auteur"""
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        ConversationService._ensure_open(conversation)
        ConversationService._ensure_status(
            conversation, [Conversation.ACTIVE, Conversation.QUOTE_SENT, Conversation.NEGOTIATING],
            "Une contre-proposition n'est pas possible à ce stade")
        ConversationService._ensure_open_project(conversation)

        limit = max_counter_offers()
        if conversation.counter_offer_count >= limit:
            raise LimitExceeded(
                f"Maximum de {limit} contre-propositions atteint : acceptez, annulez ou demandez une médiation",
                counter_offer_count=conversation.counter_offer_count,
                max_counter_offers=limit)

        now = now or timezone.now()
        snapshot = QuoteSnapshot.from_payload(
            quote_data, party, ConversationService._next_version(conversation), now)
        ConversationService._archive_current_quote(conversation, now=now)
        conversation.current_quote = snapshot.to_dict()
        conversation.counter_offer_count += 1
        conversation.status = Conversation.NEGOTIATING
        conversation.save()

        notifications.notify(conversation.user_for(conversation.counterpart(party)), notifications.COUNTER_OFFER, {
            'conversation_id': conversation.id,
            'total_price': snapshot.total_price,
            'counter_offer_count': conversation.counter_offer_count,
        })
        logger.info(
            f"Contre-proposition {conversation.counter_offer_count}/{limit} ({party}) "
            f"sur la conversation #{conversation.id}")
        return conversation

    @staticmethod
    @transaction.atomic
    def accept_quote(conversation: Conversation, user):
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        ConversationService._ensure_open(conversation)
        ConversationService._ensure_status(
            conversation, [Conversation.ACTIVE, Conversation.QUOTE_SENT, Conversation.NEGOTIATING],
            "Aucun devis en attente d'acceptation")
        if not conversation.current_quote:
            raise InvalidStateTransition("Aucun devis à accepter")
        if conversation.current_quote.get('sent_by') == party:
            raise Forbidden("Vous ne pouvez pas accepter votre propre proposition")

        conversation.status = Conversation.QUOTE_ACCEPTED
        conversation.save()
        notifications.notify(conversation.user_for(conversation.counterpart(party)), notifications.QUOTE_ACCEPTED, {
            'conversation_id': conversation.id,
            'total_price': conversation.current_quote.get('total_price'),
        })
        logger.info(f"Devis accepté ({party}) sur la conversation #{conversation.id}")
        return conversation

    @staticmethod
    @transaction.atomic
    def reject_quote(conversation: Conversation, user, reason=None):
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        ConversationService._ensure_open(conversation)
        ConversationService._ensure_status(
            conversation, [Conversation.ACTIVE, Conversation.QUOTE_SENT, Conversation.NEGOTIATING],
            "Aucun devis à refuser")
        if not conversation.current_quote:
            raise InvalidStateTransition("Aucun devis à refuser")
        if conversation.current_quote.get('sent_by') == party:
            raise Forbidden("Vous ne pouvez pas refuser votre propre proposition")

        ConversationService._archive_current_quote(conversation, QuoteRevision.REJECTED, note=reason)
        conversation.status = Conversation.NEGOTIATING
        conversation.save()
        notifications.notify(conversation.user_for(conversation.counterpart(party)), notifications.QUOTE_REJECTED, {
            'conversation_id': conversation.id, 'reason': reason or ''})
        return conversation

    # Signature

    @staticmethod
    @transaction.atomic
    def sign(conversation: Conversation, user, now=None):
        """
        Signature d'une partie. Une seconde signature de la même partie est
        sans effet. Quand les deux parties ont signé, la conversation passe
        à 'signed' et agreement_reached est émis.
        """
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        field = 'client_signed_at' if party == Conversation.CLIENT else 'printer_signed_at'
        if getattr(conversation, field):
            return conversation

        ConversationService._ensure_open(conversation)
        ConversationService._ensure_status(
            conversation, [Conversation.QUOTE_ACCEPTED],
            "Le devis doit être accepté avant la signature")
        if not conversation.current_quote:
            raise InvalidStateTransition("Aucun devis à signer")

        now = now or timezone.now()
        setattr(conversation, field, now)

        if not conversation.both_signed():
            conversation.save()
            notifications.notify(
                conversation.user_for(conversation.counterpart(party)), notifications.CONVERSATION_SIGNED,
                {'conversation_id': conversation.id, 'signed_by': party, 'both_signed': False})
            logger.info(f"Signature {party} enregistrée sur la conversation #{conversation.id}")
            return conversation

        project = Project.objects.select_for_update().get(pk=conversation.project_id)
        if project.printer_found and project.selected_printer_id != conversation.printer_id:
            raise InvalidStateTransition("Ce projet a déjà été attribué à un autre imprimeur")

        conversation.signed_at = now
        conversation.status = Conversation.SIGNED
        conversation.save()
        ProjectService.close_for_offers(project, conversation.printer)

        agreement_reached.send(sender=Conversation, conversation=conversation)

        for recipient in (conversation.client, conversation.printer):
            notifications.notify(recipient, notifications.CONVERSATION_SIGNED, {
                'conversation_id': conversation.id, 'both_signed': True})
        logger.info(f"Conversation #{conversation.id} signée par les deux parties")
        return conversation

    # Annulation, retrait, refus

    @staticmethod
    @transaction.atomic
    def cancel(conversation: Conversation, user, reason=None, mutual=False, now=None):
        """
        Annulation avant signature. `mutual` enregistre une demande
        d'annulation commune ; la conversation n'est annulée d'un commun
        accord que lorsque l'autre partie la confirme.
        """
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        ConversationService._ensure_open(conversation)
        if conversation.both_signed():
            raise InvalidStateTransition(
                "Le contrat est signé : l'annulation doit passer par une médiation",
                status=conversation.status)

        if mutual and conversation.mutual_cancel_requested_by != conversation.counterpart(party):
            # Première demande : l'annulation n'est commune qu'une fois confirmée par l'autre partie
            if conversation.mutual_cancel_requested_by == party:
                raise InvalidStateTransition("Une annulation d'un commun accord est déjà demandée")
            conversation.mutual_cancel_requested_by = party
            conversation.mutual_cancel_requested_at = now or timezone.now()
            conversation.save()
            notifications.notify(conversation.user_for(conversation.counterpart(party)),
                                 notifications.CONVERSATION_CANCELLED,
                                 {'conversation_id': conversation.id, 'mutual_requested': True,
                                  'reason': reason or ''})
            logger.info(f"Annulation commune demandée par {party} sur la conversation #{conversation.id}")
            return conversation

        if mutual:
            status, actor = Conversation.CANCELLED_MUTUAL, Conversation.MUTUAL
        elif party == Conversation.CLIENT:
            status, actor = Conversation.CANCELLED_BY_CLIENT, party
        else:
            status, actor = Conversation.CANCELLED_BY_PRINTER, party

        conversation.terminate(status, actor, reason, now)
        conversation.save()
        notifications.notify(conversation.user_for(conversation.counterpart(party)),
                             notifications.CONVERSATION_CANCELLED,
                             {'conversation_id': conversation.id, 'reason': reason or ''})
        logger.info(f"Conversation #{conversation.id} annulée ({status})")
        return conversation

    @staticmethod
    @transaction.atomic
    def withdraw(conversation: Conversation, user, reason=None, now=None):
        """
        Retrait de l'offre par l'imprimeur avant signature : le devis est
        effacé et la conversation annulée. L'imprimeur pourra repartir d'une
        nouvelle conversation sur le projet.
        """
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        if party != Conversation.PRINTER:
            raise Forbidden("Seul l'imprimeur peut retirer son offre")
        ConversationService._ensure_open(conversation)
        if conversation.both_signed():
            raise InvalidStateTransition("Impossible de retirer une offre après signature")

        now = now or timezone.now()
        ConversationService._archive_current_quote(conversation, QuoteRevision.WITHDRAWN, note=reason, now=now)
        conversation.counter_offer_count = 0
        conversation.withdrawn_at = now
        conversation.terminate(
            Conversation.CANCELLED_BY_PRINTER, party, reason or "Offre retirée par l'imprimeur", now)
        conversation.save()
        notifications.notify(conversation.client, notifications.CONVERSATION_CANCELLED,
                             {'conversation_id': conversation.id, 'withdrawn': True})
        logger.info(f"Offre retirée sur la conversation #{conversation.id}")
        return conversation

    @staticmethod
    @transaction.atomic
    def refuse(conversation: Conversation, user, reason=None, now=None):
        """Le client décline cet imprimeur : il ne sera plus réinvité sur le projet"""
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        if party != Conversation.CLIENT:
            raise Forbidden("Seul le client peut décliner un imprimeur")
        ConversationService._ensure_open(conversation)
        if conversation.both_signed():
            raise InvalidStateTransition("Le contrat est signé : l'annulation doit passer par une médiation")

        conversation.terminate(
            Conversation.CANCELLED_BY_CLIENT, party, reason or "Offre déclinée par le client", now)
        conversation.save()

        project = conversation.project
        project.refused_printers.add(conversation.printer)
        Project.objects.filter(pk=project.pk).update(refusal_count=F('refusal_count') + 1)

        notifications.notify(conversation.printer, notifications.PRINTER_REFUSED,
                             {'conversation_id': conversation.id, 'project_id': project.id})
        logger.info(f"Imprimeur {conversation.printer_id} décliné sur le projet #{project.id}")
        return conversation

    # Pause et médiation

    @staticmethod
    @transaction.atomic
    def pause(conversation: Conversation, user, now=None):
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        ConversationService._ensure_open(conversation)
        if conversation.status == Conversation.PAUSED:
            raise InvalidStateTransition("La conversation est déjà en pause")
        if conversation.both_signed():
            raise InvalidStateTransition("Impossible de mettre en pause un contrat signé")

        now = now or timezone.now()
        conversation.paused_at = now
        conversation.pause_expires_at = now + pause_duration()
        conversation.paused_by = party
        # Le devis devra être de nouveau accepté et signé à la reprise
        conversation.clear_signatures()
        conversation.status = Conversation.PAUSED
        conversation.save()
        logger.info(f"Conversation #{conversation.id} en pause jusqu'au {conversation.pause_expires_at}")
        return conversation

    @staticmethod
    @transaction.atomic
    def resume(conversation: Conversation, user):
        conversation = ConversationService._lock(conversation)
        ConversationService._party(conversation, user)
        ConversationService._ensure_open(conversation)
        if conversation.status != Conversation.PAUSED:
            raise InvalidStateTransition("La conversation n'est pas en pause", status=conversation.status)

        conversation.clear_pause()
        # Le devis en cours reste acceptable depuis active
        conversation.status = Conversation.ACTIVE
        conversation.save()
        return conversation

    @staticmethod
    @transaction.atomic
    def request_mediation(conversation: Conversation, user, reason, now=None):
        """Escalade consultative : le statut de la conversation ne change pas"""
        conversation = ConversationService._lock(conversation)
        party = ConversationService._party(conversation, user)
        ConversationService._ensure_open(conversation)
        if not (reason or '').strip():
            raise ValidationFailed("Merci d'indiquer la raison de la médiation")
        if conversation.mediation_requested:
            raise InvalidStateTransition("Une médiation est déjà demandée")

        conversation.mediation_requested = True
        conversation.mediation_requested_by = party
        conversation.mediation_requested_at = now or timezone.now()
        conversation.mediation_reason = reason.strip()
        conversation.save()
        notifications.notify(conversation.user_for(conversation.counterpart(party)),
                             notifications.MEDIATION_REQUESTED,
                             {'conversation_id': conversation.id, 'reason': conversation.mediation_reason})
        logger.warning(f"Médiation demandée par {party} sur la conversation #{conversation.id}")
        return conversation

    @staticmethod
    @transaction.atomic
    def cancel_by_mediation(conversation: Conversation, staff_user, reason, now=None):
        """
        Décision de médiation (action réservée à l'équipe) : annule la
        conversation et, le cas échéant, le contrat avec remboursement.
        """
        if not staff_user.is_staff:
            raise Forbidden("Action réservée à l'équipe de médiation")
        conversation = ConversationService._lock(conversation)
        ConversationService._ensure_open(conversation)

        contract = Contract.objects.filter(conversation=conversation).exclude(status=Contract.CANCELLED).first()
        if contract:
            # Le contrat annule et archive aussi la conversation
            ContractService.cancel_contract(contract, staff_user, reason)
            conversation.refresh_from_db()
        else:
            conversation.terminate(Conversation.CANCELLED_MEDIATION, Conversation.MEDIATOR, reason, now)
            conversation.save()
        for recipient in (conversation.client, conversation.printer):
            notifications.notify(recipient, notifications.CONVERSATION_CANCELLED,
                                 {'conversation_id': conversation.id, 'mediation': True})
        logger.info(f"Conversation #{conversation.id} annulée par médiation ({staff_user.username})")
        return conversation

    # Signalement et favoris

    @staticmethod
    def report(conversation: Conversation, user, reason):
        party = ConversationService._party(conversation, user)
        if not (reason or '').strip():
            raise ValidationFailed("Merci d'indiquer la raison du signalement")
        conversation.reported = True
        conversation.reported_by = party
        conversation.reported_at = timezone.now()
        conversation.report_reason = reason.strip()
        conversation.save(update_fields=['reported', 'reported_by', 'reported_at', 'report_reason', 'updated_at'])
        logger.warning(f"Conversation #{conversation.id} signalée par {party}")
        return conversation

    @staticmethod
    def set_favorite(conversation: Conversation, user, favorite=True):
        party = ConversationService._party(conversation, user)
        field = 'is_favorite_for_client' if party == Conversation.CLIENT else 'is_favorite_for_printer'
        setattr(conversation, field, bool(favorite))
        conversation.save(update_fields=[field, 'updated_at'])
        return conversation

    # Production (pilotée par le contrat)

    @staticmethod
    def _production_contract(conversation: Conversation, user) -> Contract:
        party = ConversationService._party(conversation, user)
        if party != Conversation.PRINTER:
            raise Forbidden("Seul l'imprimeur peut mettre à jour la production")
        ConversationService._ensure_open(conversation)
        contract = Contract.objects.filter(conversation=conversation).exclude(status=Contract.CANCELLED).first()
        if contract is None:
            raise InvalidStateTransition("Aucun contrat associé à cette conversation")
        return contract

    @staticmethod
    def start_printing(conversation: Conversation, user):
        contract = ConversationService._production_contract(conversation, user)
        ContractService.start_printing(contract, user)
        conversation.refresh_from_db()
        return conversation

    @staticmethod
    def complete_printing(conversation: Conversation, user):
        contract = ConversationService._production_contract(conversation, user)
        ContractService.complete_printing(contract, user)
        conversation.refresh_from_db()
        return conversation

    @staticmethod
    def share_photos(conversation: Conversation, user, photos):
        contract = ConversationService._production_contract(conversation, user)
        ContractService.send_photos(contract, user, photos)
        conversation.refresh_from_db()
        return conversation

    @staticmethod
    def ship_order(conversation: Conversation, user, tracking_number=None, shipping_method=None):
        contract = ConversationService._production_contract(conversation, user)
        ContractService.mark_as_shipped(contract, user, tracking_number, shipping_method)
        conversation.refresh_from_db()
        return conversation

    # Tâches planifiées

    @staticmethod
    def expire_paused(now=None) -> int:
        """Annule les conversations dont la pause a expiré. Idempotent."""
        now = now or timezone.now()
        expired_ids = list(Conversation.objects.filter(
            status=Conversation.PAUSED, pause_expires_at__lt=now).values_list('id', flat=True))

        count = 0
        for conversation_id in expired_ids:
            with transaction.atomic():
                conversation = Conversation.objects.select_for_update().get(pk=conversation_id)
                if conversation.status != Conversation.PAUSED or not conversation.is_pause_expired(now):
                    continue
                conversation.terminate(
                    Conversation.CANCELLED_MUTUAL, Conversation.MUTUAL, PAUSE_EXPIRED_REASON, now)
                conversation.save()
                for recipient in (conversation.client, conversation.printer):
                    notifications.notify(recipient, notifications.CONVERSATION_CANCELLED,
                                         {'conversation_id': conversation.id, 'reason': PAUSE_EXPIRED_REASON})
                count += 1
        logger.info(f"{count} conversation(s) en pause expirée(s) annulée(s)")
        return count

    @staticmethod
    def send_inactivity_reminders(now=None) -> int:
        """
        Relance la partie qui n'a pas répondu depuis plus de 48h.
        Une seule relance par période d'inactivité.
        """
        now = now or timezone.now()
        hours = int(getattr(settings, 'NEGOTIATION_INACTIVITY_HOURS', 48))
        inactive = Conversation.objects.filter(
            status__in=[Conversation.ACTIVE, Conversation.QUOTE_SENT, Conversation.NEGOTIATING],
            last_message_at__lt=now - timedelta(hours=hours),
            last_message_by__isnull=False,
        ).filter(
            Q(reminder_sent_at__isnull=True) | Q(reminder_sent_at__lt=F('last_message_at'))
        ).select_related('client', 'printer', 'project')

        count = 0
        for conversation in inactive:
            recipient = conversation.user_for(conversation.counterpart(conversation.last_message_by))
            notifications.notify(recipient, notifications.INACTIVITY_REMINDER, {
                'conversation_id': conversation.id,
                'project_title': conversation.project.title,
                'last_message_at': conversation.last_message_at,
            })
            Conversation.objects.filter(pk=conversation.pk).update(reminder_sent_at=now)
            count += 1
        logger.info(f"{count} relance(s) d'inactivité envoyée(s)")
        return count
