"""
Envoi des notifications (email/push) via un webhook externe

Les notifications sont déclenchées après le commit de la transaction et
ne doivent jamais annuler une transition d'état : toute erreur d'envoi est
journalisée puis ignorée.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)

QUOTE_RECEIVED = 'quote_received'
COUNTER_OFFER = 'counter_offer'
QUOTE_ACCEPTED = 'quote_accepted'
QUOTE_REJECTED = 'quote_rejected'
CONVERSATION_SIGNED = 'conversation_signed'
CONVERSATION_CANCELLED = 'conversation_cancelled'
PRINTER_REFUSED = 'printer_refused'
MEDIATION_REQUESTED = 'mediation_requested'
PRODUCTION_UPDATE = 'production_update'
PAYMENT_CONFIRMED = 'payment_confirmed'
CONTRACT_CANCELLED = 'contract_cancelled'
DELIVERY_CONFIRMED = 'delivery_confirmed'
PAYOUT_COMPLETED = 'payout_completed'
PAYOUT_FAILED = 'payout_failed'
THRESHOLD_WARNING = 'threshold_warning'
ACCOUNT_BLOCKED = 'account_blocked'
INACTIVITY_REMINDER = 'inactivity_reminder'
THRESHOLD_REMINDER = 'threshold_reminder'


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


def deliver(user_id: int, email: str, kind: str, payload: Dict[str, Any]) -> bool:
    """Envoie immédiatement la notification. Retourne True si elle est partie."""
    url = getattr(settings, 'NOTIFICATION_WEBHOOK_URL', '')
    if not url:
        logger.info(f"Notification {kind} pour l'utilisateur {user_id} (aucun webhook configuré)")
        return False

    data = {
        'user_id': user_id,
        'email': email,
        'kind': kind,
        'payload': payload,
    }
    try:
        response = requests.post(url, json=data, timeout=getattr(settings, 'NOTIFICATION_TIMEOUT', 10))
        response.raise_for_status()
        return True
    except requests.exceptions.RequestException as e:
        logger.warning(f"Échec de l'envoi de la notification {kind} à {user_id}: {e}")
        return False


def notify(user, kind: str, payload: Optional[Dict[str, Any]] = None) -> None:
    """
    Programme une notification après le commit de la transaction courante.
    """
    if user is None:
        return
    user_id = user.pk
    email = user.email or ''
    data = _jsonable(payload or {})
    transaction.on_commit(lambda: deliver(user_id, email, kind, data))
