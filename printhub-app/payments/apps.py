from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration de l'application Paiements"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'payments'
    verbose_name = 'Soldes et versements'
