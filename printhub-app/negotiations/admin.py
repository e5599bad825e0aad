"""
Interface d'administration pour le module Négociations
"""
from django.contrib import admin

from .models import Conversation, QuoteRevision


class QuoteRevisionInline(admin.TabularInline):
    model = QuoteRevision
    extra = 0
    can_delete = False
    fields = ('version', 'sent_by', 'outcome', 'snapshot', 'note', 'archived_at')
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Administration des conversations"""
    list_display = ('id', 'project', 'client', 'printer', 'status', 'counter_offer_count',
                    'mediation_requested', 'reported', 'is_archived', 'updated_at')
    list_filter = ('status', 'mediation_requested', 'reported', 'is_archived', 'created_at')
    search_fields = ('project__title', 'client__username', 'printer__username')
    readonly_fields = ('current_quote', 'counter_offer_count', 'client_signed_at', 'printer_signed_at',
                       'signed_at', 'created_at', 'updated_at')
    inlines = [QuoteRevisionInline]

    fieldsets = (
        ('Parties', {
            'fields': ('project', 'client', 'printer', 'initiated_by', 'status')
        }),
        ('Devis et signature', {
            'fields': ('current_quote', 'counter_offer_count', 'client_signed_at',
                       'printer_signed_at', 'signed_at')
        }),
        ('Production', {
            'fields': ('printing_started_at', 'printing_completed_at', 'photos_shared_at',
                       'photo_urls', 'order_shipped_at', 'tracking_number', 'shipping_method',
                       'completed_at'),
            'classes': ('collapse',)
        }),
        ('Médiation et signalement', {
            'fields': ('mediation_requested', 'mediation_requested_by', 'mediation_reason',
                       'reported', 'reported_by', 'report_reason')
        }),
        ('Annulation et pause', {
            'fields': ('cancelled_by', 'cancellation_reason', 'cancelled_at', 'paused_by',
                       'pause_expires_at', 'is_archived', 'archived_at'),
            'classes': ('collapse',)
        }),
        ('Dates', {
            'fields': ('created_at', 'updated_at')
        }),
    )


@admin.register(QuoteRevision)
class QuoteRevisionAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'version', 'sent_by', 'outcome', 'archived_at')
    list_filter = ('outcome', 'sent_by')
    readonly_fields = ('conversation', 'version', 'sent_by', 'snapshot', 'outcome', 'note', 'archived_at')

    def has_change_permission(self, request, obj=None):
        return False
