"""
Mouvements de solde des profils

Tous les mouvements sont des deltas appliqués par UPDATE ... SET x = x + d,
jamais une réécriture du solde lu en mémoire. Les débits sont conditionnels
(WHERE solde >= montant) pour ne jamais passer en négatif.

Le versement suit une réservation en deux temps :
reserve -> commit_reservation (virement réussi)
reserve -> release_reservation (échec ou annulation)
"""
import logging
from decimal import Decimal

from django.db.models import F

from accounts.models import Profile
from core.exceptions import InsufficientFunds, InvalidStateTransition
from .ledger import to_money

logger = logging.getLogger(__name__)

BALANCE_FIELDS = ['balance_available', 'balance_pending', 'balance_reserved', 'balance_total']


class BalanceService:
    """Service de mouvements de solde"""

    @staticmethod
    def _apply(profile: Profile, guard=None, **deltas) -> bool:
        """
        Applique les deltas au profil. `guard` est un filtre supplémentaire
        (ex: balance_available__gte) rendant la mise à jour conditionnelle.
        """
        queryset = Profile.objects.filter(pk=profile.pk)
        if guard:
            queryset = queryset.filter(**guard)
        updated = queryset.update(**{field: F(field) + delta for field, delta in deltas.items()})
        profile.refresh_from_db(fields=BALANCE_FIELDS)
        return updated == 1

    @staticmethod
    def _positive(amount) -> Decimal:
        amount = to_money(amount)
        if amount < 0:
            raise ValueError("Un mouvement de solde doit être positif")
        return amount

    @staticmethod
    def credit_pending(profile: Profile, amount) -> None:
        """Fonds payés mais non retirables (livraison non confirmée)"""
        amount = BalanceService._positive(amount)
        BalanceService._apply(profile, balance_pending=amount, balance_total=amount)
        logger.info(f"Solde en attente +{amount} pour le profil {profile.pk}")

    @staticmethod
    def release_pending(profile: Profile, amount) -> None:
        """Livraison confirmée : en attente -> disponible"""
        amount = BalanceService._positive(amount)
        if not BalanceService._apply(
                profile, guard={'balance_pending__gte': amount},
                balance_pending=-amount, balance_available=amount):
            raise InvalidStateTransition(
                "Fonds en attente insuffisants pour la libération",
                pending=str(profile.balance_pending), requested=str(amount))
        logger.info(f"Solde libéré {amount} pour le profil {profile.pk}")

    @staticmethod
    def reverse_pending(profile: Profile, amount) -> None:
        """Annulation d'un contrat payé : retire les fonds en attente"""
        amount = BalanceService._positive(amount)
        if not BalanceService._apply(
                profile, guard={'balance_pending__gte': amount},
                balance_pending=-amount, balance_total=-amount):
            raise InvalidStateTransition(
                "Fonds en attente insuffisants pour l'annulation",
                pending=str(profile.balance_pending), requested=str(amount))

    @staticmethod
    def credit_available(profile: Profile, amount) -> None:
        amount = BalanceService._positive(amount)
        BalanceService._apply(profile, balance_available=amount, balance_total=amount)

    @staticmethod
    def debit_available(profile: Profile, amount) -> None:
        """Débit immédiat du solde disponible (paiement par solde)"""
        amount = BalanceService._positive(amount)
        if not BalanceService._apply(
                profile, guard={'balance_available__gte': amount},
                balance_available=-amount, balance_total=-amount):
            raise InsufficientFunds(
                requested=str(amount), available=str(profile.balance_available))
        logger.info(f"Solde disponible -{amount} pour le profil {profile.pk}")

    @staticmethod
    def reserve(profile: Profile, amount) -> None:
        """Réserve un montant pour un versement : disponible -> réservé"""
        amount = BalanceService._positive(amount)
        if not BalanceService._apply(
                profile, guard={'balance_available__gte': amount},
                balance_available=-amount, balance_reserved=amount):
            raise InsufficientFunds(
                requested=str(amount), available=str(profile.balance_available))

    @staticmethod
    def commit_reservation(profile: Profile, amount) -> None:
        """Virement effectué : le montant réservé quitte le solde"""
        amount = BalanceService._positive(amount)
        if not BalanceService._apply(
                profile, guard={'balance_reserved__gte': amount},
                balance_reserved=-amount, balance_total=-amount):
            raise InvalidStateTransition("Aucune réservation correspondante")

    @staticmethod
    def release_reservation(profile: Profile, amount) -> None:
        """Versement échoué ou annulé : le montant réservé redevient disponible"""
        amount = BalanceService._positive(amount)
        if not BalanceService._apply(
                profile, guard={'balance_reserved__gte': amount},
                balance_reserved=-amount, balance_available=amount):
            raise InvalidStateTransition("Aucune réservation correspondante")
        logger.info(f"Réservation {amount} restituée au profil {profile.pk}")
