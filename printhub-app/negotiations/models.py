"""
Modèles de négociation entre un client et un imprimeur
Une conversation par couple (projet, imprimeur) : devis, contre-propositions,
signature bilatérale et suivi de production
"""
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import User
from django.core.validators import MaxValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.exceptions import InvalidStateTransition


def max_counter_offers():
    return int(getattr(settings, 'NEGOTIATION_MAX_COUNTER_OFFERS', 3))


def pause_duration():
    return timedelta(days=int(getattr(settings, 'NEGOTIATION_PAUSE_DAYS', 30)))


class Conversation(models.Model):
    """
    Négociation d'un projet entre son client et un imprimeur
    """
    PENDING = 'pending'
    ACTIVE = 'active'
    QUOTE_SENT = 'quote_sent'
    NEGOTIATING = 'negotiating'
    QUOTE_ACCEPTED = 'quote_accepted'
    SIGNED = 'signed'
    IN_PRODUCTION = 'in_production'
    READY = 'ready'
    COMPLETED = 'completed'
    CANCELLED_BY_CLIENT = 'cancelled_by_client'
    CANCELLED_BY_PRINTER = 'cancelled_by_printer'
    CANCELLED_MUTUAL = 'cancelled_mutual'
    CANCELLED_MEDIATION = 'cancelled_mediation'
    PAUSED = 'paused'

    STATUS_CHOICES = [
        (PENDING, _('En attente')),
        (ACTIVE, _('Active')),
        (QUOTE_SENT, _('Devis envoyé')),
        (NEGOTIATING, _('En négociation')),
        (QUOTE_ACCEPTED, _('Devis accepté')),
        (SIGNED, _('Contrat signé')),
        (IN_PRODUCTION, _('En production')),
        (READY, _('Prêt / expédié')),
        (COMPLETED, _('Terminée')),
        (CANCELLED_BY_CLIENT, _('Annulée par le client')),
        (CANCELLED_BY_PRINTER, _("Annulée par l'imprimeur")),
        (CANCELLED_MUTUAL, _('Annulée d\'un commun accord')),
        (CANCELLED_MEDIATION, _('Annulée par médiation')),
        (PAUSED, _('En pause')),
    ]

    CANCELLED_STATUSES = [CANCELLED_BY_CLIENT, CANCELLED_BY_PRINTER, CANCELLED_MUTUAL, CANCELLED_MEDIATION]
    TERMINAL_STATUSES = [COMPLETED] + CANCELLED_STATUSES
    PRE_SIGNATURE_STATUSES = [PENDING, ACTIVE, QUOTE_SENT, NEGOTIATING, QUOTE_ACCEPTED]
    PRODUCTION_STATUSES = [SIGNED, IN_PRODUCTION, READY]

    # Acteurs
    CLIENT = 'client'
    PRINTER = 'printer'
    MUTUAL = 'mutual'
    MEDIATOR = 'mediator'

    PARTY_CHOICES = [
        (CLIENT, _('Client')),
        (PRINTER, _('Imprimeur')),
    ]
    ACTOR_CHOICES = PARTY_CHOICES + [
        (MUTUAL, _('Commun accord')),
        (MEDIATOR, _('Médiateur')),
    ]

    # Étapes de production, dans l'ordre
    PRINTING_STARTED = 'printing_started'
    PRINTING_COMPLETED = 'printing_completed'
    PHOTOS_SHARED = 'photos_shared'
    ORDER_SHIPPED = 'order_shipped'
    PRODUCTION_STEPS = [PRINTING_STARTED, PRINTING_COMPLETED, PHOTOS_SHARED, ORDER_SHIPPED]

    # Relations
    project = models.ForeignKey(
        'projects.Project', on_delete=models.CASCADE, related_name='conversations',
        verbose_name=_("Projet"))
    client = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='client_conversations',
        verbose_name=_("Client"))
    printer = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='printer_conversations',
        verbose_name=_("Imprimeur"))
    initiated_by = models.CharField(
        max_length=10, choices=PARTY_CHOICES, default=PRINTER, verbose_name=_("Initiée par"))

    status = models.CharField(
        max_length=25, choices=STATUS_CHOICES, default=PENDING, verbose_name=_("Statut"))

    # Devis courant (voir negotiations.quotes.QuoteSnapshot)
    current_quote = models.JSONField(blank=True, null=True, verbose_name=_("Devis courant"))
    counter_offer_count = models.PositiveSmallIntegerField(
        default=0, validators=[MaxValueValidator(3)], verbose_name=_("Contre-propositions"))

    # Signatures
    client_signed_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Signé par le client le"))
    printer_signed_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Signé par l'imprimeur le"))
    signed_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Signé le"))

    # Production
    printing_started = models.BooleanField(default=False)
    printing_started_at = models.DateTimeField(blank=True, null=True)
    printing_completed = models.BooleanField(default=False)
    printing_completed_at = models.DateTimeField(blank=True, null=True)
    photos_shared = models.BooleanField(default=False)
    photos_shared_at = models.DateTimeField(blank=True, null=True)
    photo_urls = models.JSONField(default=list, blank=True)
    order_shipped = models.BooleanField(default=False)
    order_shipped_at = models.DateTimeField(blank=True, null=True)
    tracking_number = models.CharField(max_length=100, blank=True, null=True)
    shipping_method = models.CharField(max_length=100, blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    # Activité
    last_message_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Dernier message"))
    last_message_by = models.CharField(max_length=10, choices=PARTY_CHOICES, blank=True, null=True)
    unread_count_client = models.PositiveIntegerField(default=0)
    unread_count_printer = models.PositiveIntegerField(default=0)
    reminder_sent_at = models.DateTimeField(blank=True, null=True)

    # Annulation
    cancellation_reason = models.TextField(blank=True, null=True, verbose_name=_("Raison de l'annulation"))
    cancelled_by = models.CharField(max_length=10, choices=ACTOR_CHOICES, blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    withdrawn_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Offre retirée le"))
    mutual_cancel_requested_by = models.CharField(
        max_length=10, choices=PARTY_CHOICES, blank=True, null=True,
        verbose_name=_("Annulation commune demandée par"))
    mutual_cancel_requested_at = models.DateTimeField(blank=True, null=True)

    # Médiation
    mediation_requested = models.BooleanField(default=False)
    mediation_requested_by = models.CharField(max_length=10, choices=PARTY_CHOICES, blank=True, null=True)
    mediation_requested_at = models.DateTimeField(blank=True, null=True)
    mediation_reason = models.TextField(blank=True, null=True)

    # Pause
    paused_at = models.DateTimeField(blank=True, null=True)
    pause_expires_at = models.DateTimeField(blank=True, null=True)
    paused_by = models.CharField(max_length=10, choices=PARTY_CHOICES, blank=True, null=True)

    # Favoris et signalement
    is_favorite_for_client = models.BooleanField(default=False)
    is_favorite_for_printer = models.BooleanField(default=False)
    reported = models.BooleanField(default=False)
    reported_by = models.CharField(max_length=10, choices=PARTY_CHOICES, blank=True, null=True)
    reported_at = models.DateTimeField(blank=True, null=True)
    report_reason = models.TextField(blank=True, null=True)

    # Archivage (états terminaux)
    is_archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Date de création"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Date de mise à jour"))

    class Meta:
        ordering = ('-updated_at',)
        verbose_name = _("Conversation")
        verbose_name_plural = _("Conversations")
        constraints = [
            # Une seule conversation vivante par couple projet / imprimeur
            models.UniqueConstraint(
                fields=['project', 'printer'],
                condition=Q(is_archived=False),
                name='unique_live_conversation_per_printer',
            ),
        ]
        indexes = [
            models.Index(fields=['client', 'status'], name='negotiatio_client__4d2a1b_idx'),
            models.Index(fields=['printer', 'status'], name='negotiatio_printer_9e7c30_idx'),
            models.Index(fields=['status', 'pause_expires_at'], name='negotiatio_status_1f6b88_idx'),
            models.Index(fields=['status', 'last_message_at'], name='negotiatio_status_b3c5e2_idx'),
        ]

    def __str__(self):
        return f"Conversation #{self.id} - {self.project_id} / {self.printer.username} ({self.status})"

    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def can_be_modified(self) -> bool:
        return not self.is_terminal()

    def both_signed(self) -> bool:
        return bool(self.client_signed_at and self.printer_signed_at)

    def is_pause_expired(self, now=None) -> bool:
        if not self.pause_expires_at:
            return False
        return (now or timezone.now()) > self.pause_expires_at

    def party_of(self, user):
        """Retourne 'client', 'printer' ou None"""
        if user is None:
            return None
        if user.pk == self.client_id:
            return self.CLIENT
        if user.pk == self.printer_id:
            return self.PRINTER
        return None

    def counterpart(self, party):
        return self.PRINTER if party == self.CLIENT else self.CLIENT

    def user_for(self, party):
        return self.client if party == self.CLIENT else self.printer

    def clear_pause(self):
        self.paused_at = None
        self.pause_expires_at = None
        self.paused_by = None

    def clear_signatures(self):
        """Une signature ne vaut que pour le devis sur lequel elle a été posée"""
        self.client_signed_at = None
        self.printer_signed_at = None

    def terminate(self, status, actor, reason=None, now=None):
        """Passe la conversation dans un état terminal et l'archive"""
        if status not in self.TERMINAL_STATUSES:
            raise ValueError(f"{status} n'est pas un état terminal")
        if self.is_terminal():
            raise InvalidStateTransition("La conversation est terminée", status=self.status)
        now = now or timezone.now()
        self.status = status
        if status != self.COMPLETED:
            self.cancelled_by = actor
            self.cancellation_reason = reason or None
            self.cancelled_at = now
        else:
            self.completed_at = now
        self.clear_pause()
        self.is_archived = True
        self.archived_at = now

    def step_done(self, step) -> bool:
        return bool(getattr(self, step))

    def record_production_step(self, step, now=None, **data):
        """
        Enregistre une étape de production ; l'étape précédente doit être faite.
        """
        if step not in self.PRODUCTION_STEPS:
            raise ValueError(f"Étape inconnue : {step}")
        if self.status not in self.PRODUCTION_STATUSES:
            raise InvalidStateTransition(
                "La production n'est possible qu'après la signature du contrat", status=self.status)
        index = self.PRODUCTION_STEPS.index(step)
        if self.step_done(step):
            raise InvalidStateTransition("Cette étape est déjà enregistrée", step=step)
        if index > 0 and not self.step_done(self.PRODUCTION_STEPS[index - 1]):
            raise InvalidStateTransition(
                "L'étape précédente n'est pas terminée",
                step=step, required=self.PRODUCTION_STEPS[index - 1])

        now = now or timezone.now()
        setattr(self, step, True)
        setattr(self, f"{step}_at", now)
        if step == self.PRINTING_STARTED:
            self.status = self.IN_PRODUCTION
        elif step == self.PHOTOS_SHARED:
            self.photo_urls = list(data.get('photos') or [])
        elif step == self.ORDER_SHIPPED:
            self.tracking_number = data.get('tracking_number') or None
            self.shipping_method = data.get('shipping_method') or None
            self.status = self.READY


class QuoteRevision(models.Model):
    """
    Historique des devis remplacés (ajout uniquement)
    """
    SUPERSEDED = 'superseded'
    REJECTED = 'rejected'
    WITHDRAWN = 'withdrawn'

    OUTCOME_CHOICES = [
        (SUPERSEDED, _('Remplacé')),
        (REJECTED, _('Refusé')),
        (WITHDRAWN, _('Retiré')),
    ]

    conversation = models.ForeignKey(
        Conversation, on_delete=models.CASCADE, related_name='quote_history',
        verbose_name=_("Conversation"))
    version = models.PositiveIntegerField(verbose_name=_("Version"))
    sent_by = models.CharField(max_length=10, choices=Conversation.PARTY_CHOICES, verbose_name=_("Envoyé par"))
    snapshot = models.JSONField(verbose_name=_("Devis"))
    outcome = models.CharField(
        max_length=20, choices=OUTCOME_CHOICES, default=SUPERSEDED, verbose_name=_("Issue"))
    note = models.TextField(blank=True, null=True, verbose_name=_("Annotation"))
    archived_at = models.DateTimeField(default=timezone.now, verbose_name=_("Archivé le"))

    class Meta:
        ordering = ('archived_at', 'id')
        verbose_name = _("Version de devis")
        verbose_name_plural = _("Historique des devis")
        indexes = [
            models.Index(fields=['conversation', 'version'], name='negotiatio_convers_77a0d4_idx'),
        ]

    def __str__(self):
        return f"Devis v{self.version} - conversation #{self.conversation_id} ({self.outcome})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidStateTransition("L'historique des devis ne peut pas être modifié")
        super().save(*args, **kwargs)
