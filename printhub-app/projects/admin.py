"""
Interface d'administration pour les projets d'impression
"""
from django.contrib import admin

from .models import Project, Quote


class QuoteInline(admin.TabularInline):
    model = Quote
    extra = 0
    fields = ('printer', 'price', 'status', 'expires_at', 'created_at')
    readonly_fields = ('created_at',)


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'client', 'status', 'printer_found', 'selected_printer',
                    'refusal_count', 'created_at')
    list_filter = ('status', 'printer_found', 'created_at')
    search_fields = ('title', 'description', 'client__username')
    readonly_fields = ('printer_found_at', 'refusal_count', 'created_at', 'updated_at')
    filter_horizontal = ('invited_printers', 'refused_printers')
    inlines = [QuoteInline]


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ('id', 'project', 'printer', 'price', 'status', 'expires_at', 'created_at')
    list_filter = ('status', 'duration_unit', 'created_at')
    search_fields = ('project__title', 'printer__username', 'message')
    readonly_fields = ('accepted_at', 'rejected_at', 'created_at', 'updated_at')
