"""
Contrôle du seuil légal des vendeurs particuliers

Un particulier ne peut pas dépasser un chiffre d'affaires annuel ni un
nombre de transactions annuelles. Chaque autorisation de paiement passe par
ComplianceGuard.authorize, qui réserve le montant sous verrou de ligne :
la décision et la réservation sont atomiques. Les compteurs annuels ne
progressent qu'au règlement effectif (record_settlement).
"""
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.contrib.auth.models import User
from django.db import transaction
from django.utils import timezone

from accounts.models import Profile
from core import notifications
from core.exceptions import ComplianceBlocked, Forbidden, ValidationFailed
from payments.ledger import to_money

logger = logging.getLogger(__name__)

BLOCK_REASON = 'Seuil légal dépassé - création micro-entreprise obligatoire'


def max_revenue() -> Decimal:
    return to_money(getattr(settings, 'COMPLIANCE_MAX_REVENUE', Decimal('3000')))


def max_transactions() -> int:
    return int(getattr(settings, 'COMPLIANCE_MAX_TRANSACTIONS', 20))


def warning_ratio() -> Decimal:
    return Decimal(str(getattr(settings, 'COMPLIANCE_WARNING_RATIO', Decimal('0.8'))))


def _percentage(value, ceiling) -> Decimal:
    if not ceiling:
        return Decimal('0.00')
    return to_money(Decimal(value) * 100 / Decimal(ceiling))


@dataclass
class ComplianceDecision:
    """Résultat d'une autorisation acceptée"""
    allowed: bool
    warning: bool = False
    exempt: bool = False
    usage: Dict[str, Any] = field(default_factory=dict)


class ComplianceGuard:
    """Service de contrôle des seuils légaux"""

    @staticmethod
    def rollover_if_new_year(profile: Profile, now=None) -> bool:
        """
        Remet les compteurs à zéro au changement d'année civile.
        Idempotent ; ne touche ni au blocage ni aux réservations en cours.
        """
        year = (now or timezone.now()).year
        if profile.revenue_year == year:
            return False
        profile.yearly_revenue = Decimal('0.00')
        profile.yearly_transaction_count = 0
        profile.revenue_year = year
        profile.save(update_fields=['yearly_revenue', 'yearly_transaction_count', 'revenue_year', 'date_update'])
        logger.info(f"Compteurs annuels réinitialisés pour le profil {profile.pk} ({year})")
        return True

    @staticmethod
    def usage(profile: Profile, extra_amount=Decimal('0'), extra_count=0) -> Dict[str, Any]:
        """Usage courant (réglé + réservé) rapporté aux plafonds"""
        revenue = profile.yearly_revenue + profile.reserved_revenue + to_money(extra_amount)
        count = profile.yearly_transaction_count + profile.reserved_transaction_count + extra_count
        ceiling_revenue = max_revenue()
        ceiling_count = max_transactions()
        return {
            'business_status': profile.business_status,
            'year': profile.revenue_year,
            'yearly_revenue': str(profile.yearly_revenue),
            'yearly_transaction_count': profile.yearly_transaction_count,
            'reserved_revenue': str(profile.reserved_revenue),
            'reserved_transaction_count': profile.reserved_transaction_count,
            'max_revenue': str(ceiling_revenue),
            'max_transactions': ceiling_count,
            'remaining_revenue': str(max(ceiling_revenue - revenue, Decimal('0.00'))),
            'remaining_transactions': max(ceiling_count - count, 0),
            'revenue_percentage': str(_percentage(revenue, ceiling_revenue)),
            'transaction_percentage': str(_percentage(count, ceiling_count)),
            'account_blocked': profile.account_blocked,
            'block_reason': profile.block_reason or '',
        }

    @staticmethod
    def _blocked_error(profile: Profile, amount) -> ComplianceBlocked:
        return ComplianceBlocked(
            profile.block_reason or BLOCK_REASON,
            upgrade_required=True,
            requested_amount=str(to_money(amount)),
            usage=ComplianceGuard.usage(profile),
        )

    @staticmethod
    def authorize(seller: User, amount, now=None) -> ComplianceDecision:
        """
        Autorise une transaction de `amount` pour le vendeur et la réserve.

        Lève ComplianceBlocked si le compte est bloqué ou si la transaction
        ferait dépasser un plafond ; dans ce dernier cas le compte est bloqué
        et ce blocage est enregistré avant la levée de l'erreur.
        """
        amount = to_money(amount)
        now = now or timezone.now()
        rejected = False

        with transaction.atomic():
            profile = Profile.objects.select_for_update().get(user=seller)
            ComplianceGuard.rollover_if_new_year(profile, now)

            if profile.account_blocked:
                rejected = True
            elif profile.business_status != Profile.PARTICULIER:
                decision = ComplianceDecision(allowed=True, exempt=True)
            else:
                potential_revenue = profile.yearly_revenue + profile.reserved_revenue + amount
                potential_count = profile.yearly_transaction_count + profile.reserved_transaction_count + 1

                if potential_revenue > max_revenue() or potential_count > max_transactions():
                    profile.account_blocked = True
                    profile.block_reason = BLOCK_REASON
                    profile.blocked_at = now
                    profile.save(update_fields=['account_blocked', 'block_reason', 'blocked_at', 'date_update'])
                    logger.warning(
                        f"Compte du vendeur {seller.pk} bloqué : CA potentiel {potential_revenue}, "
                        f"{potential_count} transactions")
                    notifications.notify(seller, notifications.ACCOUNT_BLOCKED, ComplianceGuard.usage(profile))
                    rejected = True
                else:
                    ratio = warning_ratio()
                    warning = (potential_revenue >= max_revenue() * ratio
                               or potential_count >= max_transactions() * ratio)
                    decision = ComplianceDecision(allowed=True, warning=warning)

            if not rejected:
                profile.reserved_revenue += amount
                profile.reserved_transaction_count += 1
                profile.save(update_fields=['reserved_revenue', 'reserved_transaction_count', 'date_update'])
                decision.usage = ComplianceGuard.usage(profile)

        if rejected:
            raise ComplianceGuard._blocked_error(profile, amount)
        return decision

    @staticmethod
    @transaction.atomic
    def release(seller: User, amount) -> None:
        """Libère la réservation d'une autorisation qui n'aboutira pas"""
        amount = to_money(amount)
        profile = Profile.objects.select_for_update().get(user=seller)
        profile.reserved_revenue = max(profile.reserved_revenue - amount, Decimal('0.00'))
        profile.reserved_transaction_count = max(profile.reserved_transaction_count - 1, 0)
        profile.save(update_fields=['reserved_revenue', 'reserved_transaction_count', 'date_update'])
        logger.info(f"Réservation de conformité {amount} libérée pour le vendeur {seller.pk}")

    @staticmethod
    @transaction.atomic
    def record_settlement(seller: User, amount, now=None) -> bool:
        """
        Transaction réglée : la réservation devient du chiffre d'affaires.
        Retourne True si un avertissement de seuil a été émis.
        """
        amount = to_money(amount)
        now = now or timezone.now()
        profile = Profile.objects.select_for_update().get(user=seller)
        ComplianceGuard.rollover_if_new_year(profile, now)

        profile.reserved_revenue = max(profile.reserved_revenue - amount, Decimal('0.00'))
        profile.reserved_transaction_count = max(profile.reserved_transaction_count - 1, 0)
        profile.yearly_revenue += amount
        profile.yearly_transaction_count += 1
        update_fields = ['reserved_revenue', 'reserved_transaction_count',
                         'yearly_revenue', 'yearly_transaction_count', 'date_update']

        warning = False
        if profile.business_status == Profile.PARTICULIER:
            ratio = warning_ratio()
            warning = (profile.yearly_revenue >= max_revenue() * ratio
                       or profile.yearly_transaction_count >= max_transactions() * ratio)
            if warning:
                profile.threshold_warning_sent_at = now
                update_fields.append('threshold_warning_sent_at')

        profile.save(update_fields=update_fields)
        logger.info(
            f"Règlement enregistré pour le vendeur {seller.pk} : +{amount} "
            f"(CA {profile.yearly_revenue}, {profile.yearly_transaction_count} transactions)")
        if warning:
            notifications.notify(seller, notifications.THRESHOLD_WARNING, ComplianceGuard.usage(profile))
        return warning

    @staticmethod
    def get_threshold_status(user: User, now=None) -> Dict[str, Any]:
        with transaction.atomic():
            profile = Profile.objects.select_for_update().get(user=user)
            ComplianceGuard.rollover_if_new_year(profile, now)
        status = ComplianceGuard.usage(profile)
        status['subject_to_threshold'] = profile.business_status == Profile.PARTICULIER
        status['siret'] = profile.siret or ''
        return status

    @staticmethod
    @transaction.atomic
    def upgrade_to_business(user: User, siret: str, business_status: str,
                            tva_number: Optional[str] = None) -> Profile:
        """
        Passage en micro-entreprise ou professionnel.
        Seule action qui lève le blocage de conformité.
        """
        profile = Profile.objects.select_for_update().get(user=user)
        if profile.role != Profile.PRINTER:
            raise Forbidden("Seuls les imprimeurs peuvent changer de statut juridique")

        siret = re.sub(r'\s+', '', siret or '')
        if not re.fullmatch(r'\d{14}', siret):
            raise ValidationFailed("Le SIRET doit comporter 14 chiffres")
        if business_status not in (Profile.MICRO_ENTREPRENEUR, Profile.PROFESSIONNEL):
            raise ValidationFailed("Statut juridique invalide")

        profile.siret = siret
        profile.business_status = business_status
        profile.tva_number = (tva_number or '').strip() or None
        profile.account_blocked = False
        profile.block_reason = None
        profile.blocked_at = None
        profile.save(update_fields=['siret', 'business_status', 'tva_number', 'account_blocked',
                                    'block_reason', 'blocked_at', 'date_update'])
        logger.info(f"Profil {profile.pk} passé au statut {business_status}, blocage levé")
        return profile
