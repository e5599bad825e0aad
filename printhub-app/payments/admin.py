"""
Interface d'administration des versements et webhooks
"""
from django.contrib import admin

from .models import Payout, PaymentWebhookLog


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ('id', 'printer', 'amount', 'currency', 'status', 'requested_at', 'completed_at')
    list_filter = ('status', 'requested_at')
    list_display_links = ('id', 'amount')
    list_per_page = 25
    search_fields = ('printer__username', 'printer__email', 'gateway_transfer_id')
    readonly_fields = ('printer', 'amount', 'bank_details', 'gateway_transfer_id', 'requested_at',
                       'processing_at', 'completed_at', 'failed_at', 'cancelled_at', 'updated_at',
                       'processed_by')
    filter_horizontal = ('contracts',)
    fieldsets = (
        ('Versement', {
            'fields': ('printer', 'amount', 'currency', 'status', 'bank_details', 'contracts')
        }),
        ('Passerelle', {
            'fields': ('gateway_transfer_id', 'error_code', 'error_message')
        }),
        ('Notes', {
            'fields': ('printer_notes', 'admin_notes', 'processed_by')
        }),
        ('Dates', {
            'fields': ('requested_at', 'processing_at', 'completed_at', 'failed_at', 'cancelled_at', 'updated_at')
        }),
    )


@admin.register(PaymentWebhookLog)
class PaymentWebhookLogAdmin(admin.ModelAdmin):
    list_display = ('id', 'event_type', 'event_id', 'transaction', 'is_valid', 'processed', 'created_at')
    list_filter = ('is_valid', 'processed', 'event_type', 'created_at')
    search_fields = ('event_id',)
    readonly_fields = ('event_id', 'event_type', 'transaction', 'payload', 'signature', 'is_valid',
                       'processed', 'error_message', 'created_at')

    def has_add_permission(self, request):
        return False
