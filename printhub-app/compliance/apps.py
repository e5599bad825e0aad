from django.apps import AppConfig


class ComplianceConfig(AppConfig):
    """Configuration de l'application de conformité (seuils légaux)"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'compliance'
    verbose_name = 'Conformité - Seuils légaux'
