"""
Profils utilisateurs : rôle, solde vendeur, compteurs de conformité et
coordonnées bancaires
"""
from decimal import Decimal

from django.contrib.auth.models import User
from django.db import models
from django.db.models.signals import post_save
from django.utils.translation import gettext_lazy as _


class Profile(models.Model):
    # Rôles
    CLIENT = 'client'
    PRINTER = 'printer'
    ADMIN = 'admin'

    ROLE_CHOICES = [
        (CLIENT, _('Client')),
        (PRINTER, _('Imprimeur')),
        (ADMIN, _('Administrateur')),
    ]

    # Statuts juridiques
    PARTICULIER = 'particulier'
    MICRO_ENTREPRENEUR = 'micro-entrepreneur'
    PROFESSIONNEL = 'professionnel'

    BUSINESS_STATUS_CHOICES = [
        (PARTICULIER, _('Particulier')),
        (MICRO_ENTREPRENEUR, _('Micro-entrepreneur')),
        (PROFESSIONNEL, _('Professionnel')),
    ]

    user = models.OneToOneField(
        User, on_delete=models.CASCADE, related_name='profile')
    role = models.CharField(
        max_length=10, choices=ROLE_CHOICES, default=CLIENT,
        verbose_name=_("Rôle"))
    display_name = models.CharField(max_length=100, blank=True, null=True)
    mobile_number = models.CharField(max_length=100, blank=True, null=True)
    address = models.CharField(max_length=200, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    post_code = models.CharField(max_length=20, blank=True, null=True)
    country = models.CharField(max_length=100, blank=True, null=True)
    birth_date = models.DateField(blank=True, null=True, verbose_name=_("Date de naissance"))
    birth_place = models.CharField(
        max_length=200, blank=True, null=True, verbose_name=_("Lieu de naissance"))

    # Statut juridique et conformité
    business_status = models.CharField(
        max_length=20, choices=BUSINESS_STATUS_CHOICES, default=PARTICULIER,
        verbose_name=_("Statut juridique"))
    siret = models.CharField(max_length=14, blank=True, null=True, verbose_name=_("SIRET"))
    tva_number = models.CharField(
        max_length=20, blank=True, null=True, verbose_name=_("Numéro de TVA"))
    yearly_revenue = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        verbose_name=_("Chiffre d'affaires annuel"))
    yearly_transaction_count = models.PositiveIntegerField(
        default=0, verbose_name=_("Nombre de transactions annuelles"))
    revenue_year = models.PositiveIntegerField(
        blank=True, null=True, verbose_name=_("Année des compteurs"))
    # Autorisations accordées mais pas encore réglées
    reserved_revenue = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        verbose_name=_("Chiffre d'affaires réservé"))
    reserved_transaction_count = models.PositiveIntegerField(
        default=0, verbose_name=_("Transactions réservées"))
    account_blocked = models.BooleanField(default=False, verbose_name=_("Compte bloqué"))
    block_reason = models.CharField(
        max_length=255, blank=True, null=True, verbose_name=_("Raison du blocage"))
    blocked_at = models.DateTimeField(blank=True, null=True, verbose_name=_("Bloqué le"))
    threshold_warning_sent_at = models.DateTimeField(
        blank=True, null=True, verbose_name=_("Dernier avertissement de seuil"))

    # Solde (toujours modifié par deltas, voir payments.balances)
    balance_available = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        verbose_name=_("Solde disponible"))
    balance_pending = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        verbose_name=_("Solde en attente"))
    balance_reserved = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        verbose_name=_("Solde réservé (versement en cours)"))
    balance_total = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        verbose_name=_("Solde total"))

    # Coordonnées bancaires
    bank_account_holder = models.CharField(
        max_length=200, blank=True, null=True, verbose_name=_("Titulaire du compte"))
    bank_iban = models.CharField(max_length=34, blank=True, null=True, verbose_name=_("IBAN"))
    bank_bic = models.CharField(max_length=11, blank=True, null=True, verbose_name=_("BIC"))
    bank_name = models.CharField(max_length=200, blank=True, null=True, verbose_name=_("Banque"))
    bank_details_updated_at = models.DateTimeField(blank=True, null=True)
    payee_account_id = models.CharField(
        max_length=100, blank=True, null=True,
        verbose_name=_("Compte bénéficiaire (passerelle)"))

    date = models.DateTimeField(auto_now_add=True)
    date_update = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Profil")
        verbose_name_plural = _("Profils")
        indexes = [
            models.Index(fields=['role', 'business_status'], name='accounts_pr_role_5c1e2a_idx'),
            models.Index(fields=['account_blocked'], name='accounts_pr_account_9d4b71_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} ({self.role})"

    @property
    def is_printer(self):
        return self.role == self.PRINTER

    @property
    def is_client(self):
        return self.role == self.CLIENT

    def has_bank_details(self):
        """Le versement nécessite au minimum un titulaire et un IBAN"""
        return bool(self.bank_account_holder and self.bank_iban)

    def bank_details_snapshot(self):
        return {
            'account_holder_name': self.bank_account_holder or '',
            'iban': self.bank_iban or '',
            'bic': self.bank_bic or '',
            'bank_name': self.bank_name or '',
        }

    def masked_iban(self):
        if not self.bank_iban:
            return ''
        return f"{self.bank_iban[:4]}{'*' * max(len(self.bank_iban) - 8, 0)}{self.bank_iban[-4:]}"


def create_profile(sender, **kwargs):
    if kwargs['created']:
        Profile.objects.create(user=kwargs['instance'])


post_save.connect(create_profile, sender=User)
