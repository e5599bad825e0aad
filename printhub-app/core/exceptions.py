"""
Erreurs métier de la place de marché

Chaque erreur porte un code HTTP et un payload structuré, convertis en
JsonResponse par core.http.json_endpoint.
"""
from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Erreur de base de la place de marché"""
    status_code = 400
    code = 'error'
    default_message = "Requête invalide"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {'success': False, 'error': self.message, 'code': self.code}
        payload.update(self.details)
        return payload


class ValidationFailed(MarketplaceError):
    status_code = 400
    code = 'validation_failed'
    default_message = "Données invalides"


class NotFound(MarketplaceError):
    status_code = 404
    code = 'not_found'
    default_message = "Ressource introuvable"


class Forbidden(MarketplaceError):
    status_code = 403
    code = 'forbidden'
    default_message = "Accès non autorisé"


class InvalidStateTransition(MarketplaceError):
    """L'état courant ne permet pas l'action demandée"""
    status_code = 409
    code = 'invalid_state'
    default_message = "Action impossible dans l'état actuel"


class LimitExceeded(MarketplaceError):
    """Plafond atteint (contre-propositions, versement déjà en cours)"""
    status_code = 409
    code = 'limit_exceeded'
    default_message = "Limite atteinte"


class ComplianceBlocked(MarketplaceError):
    """
    Vendeur bloqué par le seuil légal des particuliers.
    Le payload contient l'usage courant et les plafonds pour rediriger
    l'utilisateur vers le passage en micro-entreprise.
    """
    status_code = 403
    code = 'compliance_blocked'
    default_message = "Seuil légal dépassé - création micro-entreprise obligatoire"


class InsufficientFunds(MarketplaceError):
    status_code = 400
    code = 'insufficient_funds'
    default_message = "Solde insuffisant"


class GatewayFailure(MarketplaceError):
    """Échec d'un appel à la passerelle de paiement"""
    status_code = 502
    code = 'gateway_failure'
    default_message = "Erreur de la passerelle de paiement"
