"""
Contrats d'impression et transactions de paiement (séquestre)
"""
from decimal import Decimal

from django.contrib.auth.models import User
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.exceptions import InvalidStateTransition
from payments import ledger


class Contract(models.Model):
    """
    Contrat entre un client et un imprimeur, créé une seule fois par accord
    (devis simple accepté ou conversation signée)
    """
    PENDING_SIGNATURE = 'pending_signature'
    SIGNED = 'signed'
    PRINTING_STARTED = 'printing_started'
    PRINTING_COMPLETED = 'printing_completed'
    PHOTOS_SENT = 'photos_sent'
    SHIPPED = 'shipped'
    DELIVERED_CONFIRMED = 'delivered_confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (PENDING_SIGNATURE, _('En attente de signature')),
        (SIGNED, _('Signé et payé')),
        (PRINTING_STARTED, _('Impression lancée')),
        (PRINTING_COMPLETED, _('Impression terminée')),
        (PHOTOS_SENT, _('Photos envoyées')),
        (SHIPPED, _('Expédié')),
        (DELIVERED_CONFIRMED, _('Livraison confirmée')),
        (COMPLETED, _('Terminé')),
        (CANCELLED, _('Annulé')),
    ]

    # Statut -> statut requis pour y arriver
    PREDECESSORS = {
        SIGNED: PENDING_SIGNATURE,
        PRINTING_STARTED: SIGNED,
        PRINTING_COMPLETED: PRINTING_STARTED,
        PHOTOS_SENT: PRINTING_COMPLETED,
        SHIPPED: PHOTOS_SENT,
        DELIVERED_CONFIRMED: SHIPPED,
        COMPLETED: DELIVERED_CONFIRMED,
    }
    PAID_STATUSES = [SIGNED, PRINTING_STARTED, PRINTING_COMPLETED, PHOTOS_SENT, SHIPPED]

    project = models.ForeignKey(
        'projects.Project', on_delete=models.CASCADE, related_name='contracts',
        verbose_name=_("Projet"))
    quote = models.ForeignKey(
        'projects.Quote', on_delete=models.SET_NULL, blank=True, null=True,
        related_name='contracts', verbose_name=_("Devis"))
    conversation = models.OneToOneField(
        'negotiations.Conversation', on_delete=models.SET_NULL, blank=True, null=True,
        related_name='contract', verbose_name=_("Conversation"))
    client = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='client_contracts', verbose_name=_("Client"))
    printer = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='printer_contracts', verbose_name=_("Imprimeur"))
    quote_snapshot = models.JSONField(default=dict, blank=True, verbose_name=_("Devis figé"))

    # Montants calculés une seule fois à la création
    agreed_price = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Prix convenu"))
    platform_commission = models.DecimalField(
        max_digits=12, decimal_places=2, verbose_name=_("Commission plateforme"))
    total_paid = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Total payé"))
    printer_earnings = models.DecimalField(
        max_digits=12, decimal_places=2, verbose_name=_("Gains de l'imprimeur"))
    currency = models.CharField(max_length=3, default='EUR', verbose_name=_("Devise"))

    status = models.CharField(
        max_length=25, choices=STATUS_CHOICES, default=PENDING_SIGNATURE, verbose_name=_("Statut"))

    signed_at = models.DateTimeField(blank=True, null=True)
    printing_started_at = models.DateTimeField(blank=True, null=True)
    printing_completed_at = models.DateTimeField(blank=True, null=True)
    photos_sent_at = models.DateTimeField(blank=True, null=True)
    shipped_at = models.DateTimeField(blank=True, null=True)
    delivered_confirmed_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    print_photos = models.JSONField(default=list, blank=True, verbose_name=_("Photos de l'impression"))
    tracking_number = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Numéro de suivi"))
    shipping_carrier = models.CharField(max_length=100, blank=True, null=True, verbose_name=_("Transporteur"))

    cancellation_reason = models.TextField(blank=True, null=True, verbose_name=_("Raison de l'annulation"))
    client_notes = models.TextField(blank=True, null=True)
    printer_notes = models.TextField(blank=True, null=True)

    # Paiement de l'imprimeur (renseigné une seule fois par le versement)
    printer_paid = models.BooleanField(default=False, verbose_name=_("Imprimeur payé"))
    printer_paid_at = models.DateTimeField(blank=True, null=True)
    payout = models.ForeignKey(
        'payments.Payout', on_delete=models.SET_NULL, blank=True, null=True,
        related_name='paid_contracts', verbose_name=_("Versement"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Date de création"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Date de mise à jour"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Contrat")
        verbose_name_plural = _("Contrats")
        indexes = [
            models.Index(fields=['client', 'status'], name='contracts_c_client__7a3e15_idx'),
            models.Index(fields=['printer', 'status'], name='contracts_c_printer_c2d904_idx'),
            models.Index(fields=['printer', 'printer_paid'], name='contracts_c_printer_5b18fe_idx'),
        ]

    def __str__(self):
        return f"Contrat #{self.id} - {self.project_id} - {self.agreed_price} {self.currency} ({self.status})"

    @classmethod
    def amounts_for(cls, agreed_price):
        return ledger.contract_breakdown(agreed_price)

    def party_of(self, user):
        if user is None:
            return None
        if user.pk == self.client_id:
            return 'client'
        if user.pk == self.printer_id:
            return 'printer'
        return None

    def is_paid(self) -> bool:
        return self.status in self.PAID_STATUSES

    def can_confirm_delivery(self) -> bool:
        return self.status == self.SHIPPED

    def can_credit_printer(self) -> bool:
        return self.status == self.DELIVERED_CONFIRMED and not self.printer_paid

    def _advance(self, status, now=None):
        required = self.PREDECESSORS[status]
        if self.status != required:
            raise InvalidStateTransition(
                f"Transition impossible : {self.status} -> {status}",
                status=self.status, required=required)
        now = now or timezone.now()
        self.status = status
        setattr(self, f"{status}_at", now)
        return now

    def sign(self, now=None):
        self._advance(self.SIGNED, now)

    def start_printing(self, now=None):
        self._advance(self.PRINTING_STARTED, now)

    def complete_printing(self, now=None):
        self._advance(self.PRINTING_COMPLETED, now)

    def send_photos(self, photos, now=None):
        if not photos:
            raise InvalidStateTransition("Au moins une photo est requise")
        uploaded_at = self._advance(self.PHOTOS_SENT, now)
        self.print_photos = [{'url': url, 'uploaded_at': uploaded_at.isoformat()} for url in photos]

    def mark_as_shipped(self, tracking_number=None, carrier=None, now=None):
        self._advance(self.SHIPPED, now)
        self.tracking_number = tracking_number or None
        self.shipping_carrier = carrier or None

    def confirm_delivery(self, now=None):
        self._advance(self.DELIVERED_CONFIRMED, now)

    def mark_printer_paid(self, payout, now=None):
        if self.printer_paid:
            raise InvalidStateTransition("L'imprimeur a déjà été payé pour ce contrat")
        now = self._advance(self.COMPLETED, now)
        self.printer_paid = True
        self.printer_paid_at = now
        self.payout = payout

    def cancel(self, reason=None, now=None):
        if self.status in [self.DELIVERED_CONFIRMED, self.COMPLETED, self.CANCELLED]:
            raise InvalidStateTransition(
                f"Impossible d'annuler un contrat au statut {self.status}", status=self.status)
        self.status = self.CANCELLED
        self.cancelled_at = now or timezone.now()
        self.cancellation_reason = reason or None


class Transaction(models.Model):
    """
    Exécution monétaire d'un contrat : part solde + part passerelle
    """
    PENDING = 'pending'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'
    REFUNDED = 'refunded'

    STATUS_CHOICES = [
        (PENDING, _('En attente')),
        (PROCESSING, _('En cours (séquestre)')),
        (COMPLETED, _('Terminée')),
        (FAILED, _('Échouée')),
        (REFUNDED, _('Remboursée')),
    ]

    LIVE_STATUSES = [PENDING, PROCESSING, COMPLETED]

    PAYMENT_METHOD_CHOICES = [
        (ledger.CARD, _('Carte')),
        (ledger.BALANCE, _('Solde')),
        (ledger.MIXED, _('Mixte (solde + carte)')),
        (ledger.OTHER, _('Autre')),
    ]

    contract = models.ForeignKey(
        Contract, on_delete=models.CASCADE, related_name='transactions', verbose_name=_("Contrat"))
    client = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='client_transactions', verbose_name=_("Client"))
    printer = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='printer_transactions', verbose_name=_("Imprimeur"))

    # Montants figés à la création
    amount = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Montant (prix convenu)"))
    commission = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Commission"))
    printer_payout = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Part imprimeur"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Total à payer"))
    currency = models.CharField(max_length=3, default='EUR', verbose_name=_("Devise"))

    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=PENDING, verbose_name=_("Statut"))
    payment_method = models.CharField(
        max_length=10, choices=PAYMENT_METHOD_CHOICES, default=ledger.CARD, verbose_name=_("Mode de paiement"))
    balance_used = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'), verbose_name=_("Part payée par solde"))
    gateway_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'), verbose_name=_("Part payée par carte"))

    gateway_payment_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    client_secret = models.CharField(max_length=255, blank=True, null=True)
    gateway_transfer_id = models.CharField(max_length=100, blank=True, null=True)
    gateway_refund_id = models.CharField(max_length=100, blank=True, null=True)
    error_message = models.TextField(blank=True, null=True, verbose_name=_("Message d'erreur"))
    metadata = models.JSONField(default=dict, blank=True)

    processed_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)
    failed_at = models.DateTimeField(blank=True, null=True)
    refunded_at = models.DateTimeField(blank=True, null=True)
    refund_reason = models.TextField(blank=True, null=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Date de création"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Date de mise à jour"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Transaction")
        verbose_name_plural = _("Transactions")
        constraints = [
            # Un seul paiement vivant par contrat
            models.UniqueConstraint(
                fields=['contract'],
                condition=Q(status__in=['pending', 'processing', 'completed']),
                name='unique_live_transaction_per_contract',
            ),
        ]
        indexes = [
            models.Index(fields=['client', 'created_at'], name='contracts_t_client__e61c2b_idx'),
            models.Index(fields=['printer', 'created_at'], name='contracts_t_printer_0f4a97_idx'),
            models.Index(fields=['status', 'created_at'], name='contracts_t_status_93b7d1_idx'),
        ]

    def __str__(self):
        return f"Transaction #{self.id} - {self.total_amount} {self.currency} ({self.status})"

    @property
    def net_amount(self):
        return self.amount - self.commission

    def mark_processing(self, now=None):
        if self.status != self.PENDING:
            raise InvalidStateTransition(
                f"Transaction déjà traitée (statut : {self.status})", status=self.status)
        self.status = self.PROCESSING
        self.processed_at = now or timezone.now()

    def complete(self, now=None):
        if self.status != self.PROCESSING:
            raise InvalidStateTransition(
                f"La transaction n'est pas en séquestre (statut : {self.status})", status=self.status)
        self.status = self.COMPLETED
        self.completed_at = now or timezone.now()

    def fail(self, error_message, now=None):
        if self.status != self.PENDING:
            raise InvalidStateTransition(
                f"Seule une transaction en attente peut échouer (statut : {self.status})", status=self.status)
        self.status = self.FAILED
        self.error_message = error_message
        self.failed_at = now or timezone.now()

    def refund(self, reason=None, refund_id=None, now=None):
        if self.status not in [self.PROCESSING, self.COMPLETED]:
            raise InvalidStateTransition(
                f"Transaction non remboursable (statut : {self.status})", status=self.status)
        self.status = self.REFUNDED
        self.refunded_at = now or timezone.now()
        self.refund_reason = reason or None
        self.refund_amount = self.total_amount
        self.gateway_refund_id = refund_id or None
