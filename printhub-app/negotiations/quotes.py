"""
Devis de négociation : structure de valeur immuable stockée en JSON sur la
conversation et dans son historique
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.exceptions import ValidationFailed
from payments.ledger import to_money


@dataclass(frozen=True)
class QuoteSnapshot:
    unit_price: Decimal
    quantity: int
    total_price: Decimal
    delivery_days: int
    shipping_cost: Decimal = Decimal('0.00')
    materials: Tuple[str, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict)
    sent_by: str = ''
    version: int = 1
    sent_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any], sent_by: str, version: int, now=None) -> 'QuoteSnapshot':
        """
        Construit un devis à partir des données reçues.
        Le total est toujours recalculé : prix unitaire x quantité + livraison.
        """
        data = data or {}
        try:
            unit_price = to_money(data.get('unit_price', data.get('price_per_unit')))
            shipping_cost = to_money(data.get('shipping_cost') or 0)
        except ValueError:
            raise ValidationFailed("Prix invalide")
        try:
            quantity = data.get('quantity')
            quantity = 1 if quantity in (None, '') else int(quantity)
            delivery_days = int(data.get('delivery_days') or 0)
        except (TypeError, ValueError):
            raise ValidationFailed("Quantité ou délai invalide")

        if unit_price < 0 or shipping_cost < 0:
            raise ValidationFailed("Les prix ne peuvent pas être négatifs")
        if quantity < 1:
            raise ValidationFailed("La quantité doit être au moins de 1")
        if delivery_days < 0:
            raise ValidationFailed("Le délai de livraison ne peut pas être négatif")

        materials = data.get('materials') or []
        if isinstance(materials, str):
            materials = [m.strip() for m in materials.split(',')]
        options = data.get('options') or {}
        if not isinstance(options, dict):
            raise ValidationFailed("Options invalides")

        return cls(
            unit_price=unit_price,
            quantity=quantity,
            total_price=to_money(unit_price * quantity + shipping_cost),
            delivery_days=delivery_days,
            shipping_cost=shipping_cost,
            materials=tuple(str(m) for m in materials if m),
            options=options,
            sent_by=sent_by,
            version=version,
            sent_at=now or timezone.now(),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuoteSnapshot':
        sent_at = data.get('sent_at')
        return cls(
            unit_price=Decimal(data['unit_price']),
            quantity=int(data['quantity']),
            total_price=Decimal(data['total_price']),
            delivery_days=int(data.get('delivery_days') or 0),
            shipping_cost=Decimal(data.get('shipping_cost') or '0.00'),
            materials=tuple(data.get('materials') or ()),
            options=dict(data.get('options') or {}),
            sent_by=data.get('sent_by', ''),
            version=int(data.get('version') or 1),
            sent_at=parse_datetime(sent_at) if sent_at else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'unit_price': str(self.unit_price),
            'quantity': self.quantity,
            'total_price': str(self.total_price),
            'delivery_days': self.delivery_days,
            'shipping_cost': str(self.shipping_cost),
            'materials': list(self.materials),
            'options': self.options,
            'sent_by': self.sent_by,
            'version': self.version,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
        }
