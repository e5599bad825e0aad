"""
Contrôles de rôle communs aux services
"""
from core.exceptions import Forbidden
from .models import Profile


def role_of(user) -> str:
    profile = getattr(user, 'profile', None)
    return profile.role if profile else ''


def require_role(user, role: str, message: str = None):
    if role_of(user) != role:
        raise Forbidden(message or "Action réservée à un autre rôle")


def require_printer(user, message: str = None):
    require_role(user, Profile.PRINTER, message or "Action réservée aux imprimeurs")


def require_client(user, message: str = None):
    require_role(user, Profile.CLIENT, message or "Action réservée aux clients")
