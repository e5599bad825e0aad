from django.apps import AppConfig


class ProjectsConfig(AppConfig):
    """Configuration de l'application Projets d'impression"""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'projects'
    verbose_name = "Projets d'impression"
