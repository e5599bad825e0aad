"""
Modèles pour les versements aux imprimeurs et le suivi des webhooks Stripe
"""
from django.contrib.auth.models import User
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.exceptions import InvalidStateTransition


class Payout(models.Model):
    """
    Demande de versement du solde disponible d'un imprimeur vers son compte
    bancaire. Un seul versement en attente ou en cours par imprimeur.
    """
    PENDING = 'pending'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (PENDING, _('En attente')),
        (PROCESSING, _('En cours')),
        (COMPLETED, _('Effectué')),
        (FAILED, _('Échoué')),
        (CANCELLED, _('Annulé')),
    ]

    IN_FLIGHT_STATUSES = [PENDING, PROCESSING]

    printer = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='payouts',
        verbose_name=_("Imprimeur"))
    amount = models.DecimalField(
        max_digits=12, decimal_places=2, verbose_name=_("Montant"))
    currency = models.CharField(max_length=3, default='EUR', verbose_name=_("Devise"))
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=PENDING, verbose_name=_("Statut"))

    # Coordonnées bancaires figées au moment de la demande
    bank_details = models.JSONField(default=dict, blank=True, verbose_name=_("Coordonnées bancaires"))
    contracts = models.ManyToManyField(
        'contracts.Contract', blank=True, related_name='payout_requests',
        verbose_name=_("Contrats réglés"))

    gateway_transfer_id = models.CharField(
        max_length=100, blank=True, null=True, verbose_name=_("ID virement passerelle"))
    error_message = models.TextField(blank=True, null=True, verbose_name=_("Message d'erreur"))
    error_code = models.CharField(max_length=50, blank=True, null=True, verbose_name=_("Code d'erreur"))
    admin_notes = models.TextField(blank=True, null=True, verbose_name=_("Notes administrateur"))
    printer_notes = models.TextField(blank=True, null=True, verbose_name=_("Notes imprimeur"))
    processed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, blank=True, null=True,
        related_name='processed_payouts', verbose_name=_("Traité par"))

    requested_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Date de demande"))
    processing_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Début du traitement"))
    completed_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Date du versement"))
    failed_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Date d'échec"))
    cancelled_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Date d'annulation"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Date de mise à jour"))

    class Meta:
        ordering = ('-requested_at',)
        verbose_name = _("Versement imprimeur")
        verbose_name_plural = _("Versements imprimeurs")
        constraints = [
            models.UniqueConstraint(
                fields=['printer'],
                condition=Q(status__in=['pending', 'processing']),
                name='unique_inflight_payout_per_printer',
            ),
        ]
        indexes = [
            models.Index(fields=['printer', 'status'], name='payments_pa_printer_3f8c21_idx'),
            models.Index(fields=['status', 'requested_at'], name='payments_pa_status_a71d0e_idx'),
        ]

    def __str__(self):
        return f"Versement #{self.id} - {self.printer} - {self.amount} {self.currency} - {self.get_status_display()}"

    def can_process(self) -> bool:
        return self.status == self.PENDING

    def can_be_cancelled(self) -> bool:
        """Un versement en cours ou effectué ne peut plus être annulé"""
        return self.status == self.PENDING

    def start_processing(self, processed_by=None):
        if not self.can_process():
            raise InvalidStateTransition(
                f"Le versement ne peut pas être traité (statut : {self.status})", status=self.status)
        self.status = self.PROCESSING
        self.processing_at = timezone.now()
        self.processed_by = processed_by
        self.save(update_fields=['status', 'processing_at', 'processed_by', 'updated_at'])

    def complete(self, transfer_id: str):
        if self.status != self.PROCESSING:
            raise InvalidStateTransition(
                f"Le versement n'est pas en cours (statut : {self.status})", status=self.status)
        self.status = self.COMPLETED
        self.gateway_transfer_id = transfer_id
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'gateway_transfer_id', 'completed_at', 'updated_at'])

    def fail(self, error_message: str, error_code: str = ''):
        if self.status != self.PROCESSING:
            raise InvalidStateTransition(
                f"Le versement n'est pas en cours (statut : {self.status})", status=self.status)
        self.status = self.FAILED
        self.error_message = error_message
        self.error_code = error_code or None
        self.failed_at = timezone.now()
        self.save(update_fields=['status', 'error_message', 'error_code', 'failed_at', 'updated_at'])

    def cancel(self):
        if not self.can_be_cancelled():
            raise InvalidStateTransition(
                f"Impossible d'annuler un versement au statut {self.status}", status=self.status)
        self.status = self.CANCELLED
        self.cancelled_at = timezone.now()
        self.save(update_fields=['status', 'cancelled_at', 'updated_at'])


class PaymentWebhookLog(models.Model):
    """
    Log des webhooks Stripe pour le débogage
    """
    event_id = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("ID événement"))
    event_type = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Type d'événement"))
    transaction = models.ForeignKey(
        'contracts.Transaction', on_delete=models.SET_NULL, blank=True, null=True,
        related_name='webhook_logs', verbose_name=_("Transaction"))
    payload = models.JSONField(default=dict, blank=True, verbose_name=_("Payload reçu"))
    signature = models.CharField(max_length=500, blank=True, null=True, verbose_name=_("Signature"))
    is_valid = models.BooleanField(default=False, verbose_name=_("Signature valide"))
    processed = models.BooleanField(default=False, verbose_name=_("Traité"))
    error_message = models.TextField(blank=True, null=True, verbose_name=_("Message d'erreur"))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Date de réception"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Log Webhook Stripe")
        verbose_name_plural = _("Logs Webhooks Stripe")

    def __str__(self):
        return f"Webhook {self.event_type or '-'} - {self.created_at}"
