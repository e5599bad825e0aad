"""
Utilitaires HTTP communs aux vues JSON
"""
import json
import logging
from functools import wraps

from django.http import JsonResponse

from .exceptions import MarketplaceError, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Une erreur interne est survenue"


def json_endpoint(view):
    """
    Convertit les erreurs métier en réponse JSON structurée.
    Les erreurs inattendues sont journalisées et renvoyées sans détail.
    """
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except MarketplaceError as e:
            logger.info(f"{view.__name__}: {e.code} - {e.message}")
            return JsonResponse(e.to_dict(), status=e.status_code)
        except Exception:
            logger.exception(f"Erreur inattendue dans {view.__name__}")
            return JsonResponse({'success': False, 'error': GENERIC_ERROR_MESSAGE}, status=500)
    return wrapper


def parse_body(request) -> dict:
    """Lit le corps JSON de la requête (ou les données POST d'un formulaire)"""
    if request.content_type == 'application/json':
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationFailed("Corps JSON invalide")
        if not isinstance(data, dict):
            raise ValidationFailed("Corps JSON invalide")
        return data
    return request.POST.dict()


def get_or_not_found(queryset_or_model, message=None, **lookup):
    """Équivalent de get_object_or_404 qui lève NotFound"""
    manager = getattr(queryset_or_model, 'objects', queryset_or_model)
    try:
        return manager.get(**lookup)
    except manager.model.DoesNotExist:
        raise NotFound(message or f"{manager.model._meta.verbose_name} introuvable")
