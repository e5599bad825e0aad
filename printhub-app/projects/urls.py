"""
URLs pour les projets d'impression
"""
from django.urls import path
from . import views

app_name = 'projects'

urlpatterns = [
    path('', views.projects, name='projects'),
    path('<int:project_id>/', views.project_detail, name='project-detail'),

    # Devis simples
    path('<int:project_id>/quotes/', views.create_quote, name='create-quote'),
    path('quotes/<int:quote_id>/accept/', views.accept_quote, name='accept-quote'),
    path('quotes/<int:quote_id>/reject/', views.reject_quote, name='reject-quote'),
]
