from django.apps import AppConfig


class ContractsConfig(AppConfig):
    """Configuration de l'application Contrats"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'contracts'
    verbose_name = 'Contrats et séquestre'

    def ready(self):
        """Import des signaux lors du chargement de l'application"""
        import contracts.signals  # noqa
