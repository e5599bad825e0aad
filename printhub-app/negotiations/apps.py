from django.apps import AppConfig


class NegotiationsConfig(AppConfig):
    """Configuration de l'application Négociations"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'negotiations'
    verbose_name = 'Négociations client / imprimeur'
