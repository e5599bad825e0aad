"""project URL Configuration

Chaque application expose ses endpoints JSON sous son propre préfixe.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('projects/', include('projects.urls', namespace='projects')),
    path('conversations/', include('negotiations.urls', namespace='negotiations')),
    path('contracts/', include('contracts.urls', namespace='contracts')),
    path('payments/', include('payments.urls', namespace='payments')),
    path('compliance/', include('compliance.urls', namespace='compliance')),
]
