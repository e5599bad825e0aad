"""
Primitives comptables : arrondi monétaire et calcul des commissions

Fonctions pures, sans accès à la base. La commission est toujours calculée
une seule fois sur le prix de base, puis stockée.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Dict, Tuple

from django.conf import settings

TWO_PLACES = Decimal('0.01')

# Modes de paiement
CARD = 'card'
BALANCE = 'balance'
MIXED = 'mixed'
OTHER = 'other'


def to_money(value) -> Decimal:
    """Convertit en Decimal arrondi au centime (arrondi commercial)"""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Montant invalide : {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Montant invalide : {value!r}")
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def currency() -> str:
    return getattr(settings, 'PLATFORM_CURRENCY', 'EUR')


def commission_rate() -> Decimal:
    return Decimal(str(getattr(settings, 'PLATFORM_COMMISSION_RATE', Decimal('0.10'))))


def platform_commission(price) -> Decimal:
    return to_money(to_money(price) * commission_rate())


def total_with_commission(price) -> Decimal:
    """Montant payé par le client : prix convenu + commission plateforme"""
    return to_money(to_money(price) * (Decimal('1') + commission_rate()))


def contract_breakdown(agreed_price) -> Dict[str, Decimal]:
    """
    Calcule les montants d'un contrat pour un prix convenu.
    L'imprimeur perçoit le prix convenu, la commission est à la charge du client.
    """
    price = to_money(agreed_price)
    if price < 0:
        raise ValueError("Le prix convenu ne peut pas être négatif")
    return {
        'agreed_price': price,
        'platform_commission': platform_commission(price),
        'total_paid': total_with_commission(price),
        'printer_earnings': price,
    }


def split_payment(total, balance_used=0) -> Tuple[str, Decimal, Decimal]:
    """
    Répartit un paiement entre le solde du client et la passerelle.

    Retourne (mode de paiement, part solde, part passerelle) avec
    part solde + part passerelle == total.
    """
    total = to_money(total)
    balance_used = to_money(balance_used or 0)
    if balance_used < 0:
        raise ValueError("L'utilisation du solde ne peut pas être négative")
    if balance_used > total:
        raise ValueError("L'utilisation du solde dépasse le montant à payer")

    gateway_amount = total - balance_used
    if balance_used == total:
        method = BALANCE
    elif balance_used > 0:
        method = MIXED
    else:
        method = CARD
    return method, balance_used, gateway_amount


def to_cents(amount) -> int:
    """Montant en centimes pour la passerelle"""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))
