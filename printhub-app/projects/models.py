"""
Projets d'impression 3D et devis simples (ancien parcours sans conversation)
"""
from datetime import timedelta

from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from decimal import Decimal


def default_quote_expiry():
    return timezone.now() + timedelta(days=7)


class Project(models.Model):
    """
    Demande d'impression publiée par un client
    """
    OPEN = 'open'
    QUOTED = 'quoted'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (OPEN, _('Ouvert')),
        (QUOTED, _('Devis reçus')),
        (IN_PROGRESS, _('En cours')),
        (COMPLETED, _('Terminé')),
        (CANCELLED, _('Annulé')),
    ]

    client = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='print_projects',
        verbose_name=_("Client"))
    title = models.CharField(max_length=200, verbose_name=_("Titre"))
    description = models.TextField(blank=True, default='', verbose_name=_("Description"))
    # Fichier 3D stocké chez le fournisseur de stockage objet
    model_file_url = models.URLField(max_length=500, blank=True, null=True, verbose_name=_("Fichier 3D"))
    model_file_size = models.PositiveBigIntegerField(blank=True, null=True, verbose_name=_("Taille du fichier (octets)"))
    quantity = models.PositiveIntegerField(default=1, verbose_name=_("Quantité"))
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=OPEN, verbose_name=_("Statut"))

    # Clôture : le client a trouvé son imprimeur
    printer_found = models.BooleanField(default=False, verbose_name=_("Imprimeur trouvé"))
    printer_found_at = models.DateTimeField(blank=True, null=True)
    selected_printer = models.ForeignKey(
        User, on_delete=models.SET_NULL, blank=True, null=True,
        related_name='selected_projects', verbose_name=_("Imprimeur retenu"))
    invited_printers = models.ManyToManyField(
        User, blank=True, related_name='project_invitations', verbose_name=_("Imprimeurs invités"))
    refused_printers = models.ManyToManyField(
        User, blank=True, related_name='project_refusals', verbose_name=_("Imprimeurs refusés"))
    refusal_count = models.PositiveIntegerField(default=0, verbose_name=_("Nombre de refus"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Date de création"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Date de mise à jour"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Projet d'impression")
        verbose_name_plural = _("Projets d'impression")
        indexes = [
            models.Index(fields=['client', 'status'], name='projects_pr_client_2b7e4f_idx'),
            models.Index(fields=['status', 'printer_found'], name='projects_pr_status_c40a19_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.client.username})"

    def is_open_for_offers(self) -> bool:
        return not self.printer_found and self.status in [self.OPEN, self.QUOTED]

    def mark_printer_found(self, printer):
        self.printer_found = True
        self.printer_found_at = timezone.now()
        self.selected_printer = printer
        self.status = self.IN_PROGRESS
        self.save(update_fields=['printer_found', 'printer_found_at', 'selected_printer', 'status', 'updated_at'])


class Quote(models.Model):
    """
    Devis simple envoyé par un imprimeur sur un projet
    """
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    EXPIRED = 'expired'

    STATUS_CHOICES = [
        (PENDING, _('En attente')),
        (ACCEPTED, _('Accepté')),
        (REJECTED, _('Refusé')),
        (EXPIRED, _('Expiré')),
    ]

    HOURS = 'hours'
    DAYS = 'days'
    WEEKS = 'weeks'

    DURATION_UNIT_CHOICES = [
        (HOURS, _('Heures')),
        (DAYS, _('Jours')),
        (WEEKS, _('Semaines')),
    ]

    project = models.ForeignKey(
        Project, on_delete=models.CASCADE, related_name='quotes', verbose_name=_("Projet"))
    printer = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name='print_quotes', verbose_name=_("Imprimeur"))
    price = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_("Prix"))
    estimated_duration = models.PositiveIntegerField(default=1, verbose_name=_("Durée estimée"))
    duration_unit = models.CharField(
        max_length=10, choices=DURATION_UNIT_CHOICES, default=DAYS, verbose_name=_("Unité"))
    delivery_date = models.DateField(blank=True, null=True, verbose_name=_("Date de livraison"))
    message = models.TextField(max_length=1000, verbose_name=_("Message"))

    # Détail du prix
    materials_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    labor_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    other_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=PENDING, verbose_name=_("Statut"))
    expires_at = models.DateTimeField(default=default_quote_expiry, verbose_name=_("Date d'expiration"))
    accepted_at = models.DateTimeField(blank=True, null=True)
    rejected_at = models.DateTimeField(blank=True, null=True)
    rejection_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Date de création"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Date de mise à jour"))

    class Meta:
        ordering = ('-created_at',)
        verbose_name = _("Devis")
        verbose_name_plural = _("Devis")
        indexes = [
            models.Index(fields=['project', 'status'], name='projects_qu_project_8e51d3_idx'),
            models.Index(fields=['printer', 'status'], name='projects_qu_printer_61fa0c_idx'),
        ]

    def __str__(self):
        return f"Devis #{self.id} - {self.printer.username} - {self.price}"

    def is_expired(self) -> bool:
        return timezone.now() > self.expires_at

    def snapshot(self):
        """Copie figée du devis pour le contrat"""
        return {
            'quote_id': self.id,
            'price': str(self.price),
            'estimated_duration': self.estimated_duration,
            'duration_unit': self.duration_unit,
            'delivery_date': self.delivery_date.isoformat() if self.delivery_date else None,
            'message': self.message,
            'breakdown': {
                'materials': str(self.materials_cost),
                'labor': str(self.labor_cost),
                'shipping': str(self.shipping_cost),
                'other': str(self.other_cost),
            },
        }
