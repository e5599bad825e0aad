"""
Service d'intégration Stripe
Autorisation de paiement, virement vers l'imprimeur, création de compte
bénéficiaire et remboursement
"""
import json
import logging
import uuid
from typing import Any, Callable, Dict, Optional, Tuple

import stripe
from django.conf import settings

from core.exceptions import GatewayFailure
from ..ledger import to_cents

logger = logging.getLogger(__name__)


class StripeGateway:
    """
    Service pour interagir avec l'API Stripe
    Documentation: https://stripe.com/docs/api
    """

    def __init__(self):
        """Initialise le service Stripe avec les credentials"""
        self.secret_key = getattr(settings, 'STRIPE_SECRET_KEY', '')
        self.public_key = getattr(settings, 'STRIPE_PUBLIC_KEY', '')
        self.webhook_secret = getattr(settings, 'STRIPE_WEBHOOK_SECRET', '')
        self.currency = getattr(settings, 'PLATFORM_CURRENCY', 'EUR')
        self.bypass_api = getattr(settings, 'STRIPE_BYPASS_API', True)  # Mode test : bypass l'API

        if not self.secret_key and not self.bypass_api:
            logger.warning("Stripe credentials not fully configured")

    def _simulate(self, operation: str, params: Dict) -> Dict[str, Any]:
        """Réponses simulées en mode bypass"""
        token = uuid.uuid4().hex[:16]
        logger.info(f"Stripe API BYPASS MODE - {operation}")
        if operation == 'authorize':
            return {'id': f"pi_test_{token}", 'client_secret': f"pi_test_{token}_secret_{token[:8]}"}
        if operation == 'transfer':
            return {'id': f"tr_test_{token}"}
        if operation == 'create_payee':
            return {'id': f"acct_test_{token}"}
        if operation == 'refund':
            return {'id': f"re_test_{token}"}
        return {'id': token}

    def _call(self, operation: str, func: Callable, **params) -> Tuple[bool, Dict]:
        """
        Effectue un appel à l'API Stripe

        Returns:
            Tuple (success, response_data)
        """
        if self.bypass_api:
            return True, self._simulate(operation, params)

        try:
            result = func(api_key=self.secret_key, **params)
            logger.info(f"Stripe API {operation} - Success ({result.get('id')})")
            return True, dict(result)
        except stripe.StripeError as e:
            logger.error(f"Stripe API {operation} - Error: {e.user_message or str(e)}")
            return False, {
                'error': e.user_message or str(e),
                'code': getattr(e, 'code', None) or 'stripe_error',
                'status_code': getattr(e, 'http_status', None),
            }

    def _raise(self, operation: str, response: Dict) -> None:
        raise GatewayFailure(
            f"Échec de l'opération {operation} auprès de la passerelle",
            gateway_code=response.get('code') or 'gateway_error',
            gateway_error=response.get('error', ''),
        )

    def authorize(self, amount, currency: Optional[str] = None, metadata: Optional[Dict] = None) -> Dict[str, str]:
        """
        Crée une autorisation de paiement (PaymentIntent)

        Returns:
            {'id': ..., 'client_secret': ...}
        """
        success, response = self._call(
            'authorize', stripe.PaymentIntent.create,
            amount=to_cents(amount),
            currency=(currency or self.currency).lower(),
            metadata={k: str(v) for k, v in (metadata or {}).items()},
            automatic_payment_methods={'enabled': True},
        )
        if not success:
            self._raise('authorize', response)
        return {'id': response['id'], 'client_secret': response.get('client_secret', '')}

    def transfer(self, amount, destination_account: str, metadata: Optional[Dict] = None) -> Dict[str, str]:
        """Virement vers le compte bénéficiaire de l'imprimeur"""
        success, response = self._call(
            'transfer', stripe.Transfer.create,
            amount=to_cents(amount),
            currency=self.currency.lower(),
            destination=destination_account,
            metadata={k: str(v) for k, v in (metadata or {}).items()},
        )
        if not success:
            self._raise('transfer', response)
        return {'id': response['id']}

    def create_payee(self, email: str, country: str = 'FR') -> Dict[str, str]:
        """Crée un compte bénéficiaire (compte connecté Stripe)"""
        success, response = self._call(
            'create_payee', stripe.Account.create,
            type='express',
            country=country,
            email=email,
            capabilities={'transfers': {'requested': True}},
        )
        if not success:
            self._raise('create_payee', response)
        return {'account_id': response['id']}

    def refund(self, payment_id: str, amount=None) -> Dict[str, str]:
        """Rembourse tout ou partie d'un paiement"""
        params = {'payment_intent': payment_id}
        if amount is not None:
            params['amount'] = to_cents(amount)
        success, response = self._call('refund', stripe.Refund.create, **params)
        if not success:
            self._raise('refund', response)
        return {'id': response['id']}

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Vérifie la signature d'un webhook et retourne l'événement.
        Sans secret configuré, le corps est accepté tel quel.
        """
        if not self.webhook_secret:
            return json.loads(payload)
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise GatewayFailure("Signature du webhook invalide", gateway_code='invalid_signature')
        return event.to_dict() if hasattr(event, 'to_dict') else dict(event)


# Instance globale du service
stripe_gateway = StripeGateway()
