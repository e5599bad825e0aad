"""
Interface d'administration pour le module Contrats
"""
from django.contrib import admin

from .models import Contract, Transaction


class TransactionInline(admin.TabularInline):
    model = Transaction
    extra = 0
    can_delete = False
    fields = ('status', 'payment_method', 'total_amount', 'balance_used', 'gateway_amount', 'created_at')
    readonly_fields = fields


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    """Administration des contrats"""
    list_display = ('id', 'project', 'client', 'printer', 'agreed_price', 'total_paid',
                    'status', 'printer_paid', 'created_at')
    list_filter = ('status', 'printer_paid', 'created_at')
    search_fields = ('project__title', 'client__username', 'printer__username', 'tracking_number')
    readonly_fields = ('agreed_price', 'platform_commission', 'total_paid', 'printer_earnings',
                       'quote_snapshot', 'printer_paid', 'printer_paid_at', 'payout',
                       'created_at', 'updated_at')
    date_hierarchy = 'created_at'
    inlines = [TransactionInline]

    fieldsets = (
        ('Parties', {
            'fields': ('project', 'quote', 'conversation', 'client', 'printer', 'status')
        }),
        ('Montants', {
            'fields': ('agreed_price', 'platform_commission', 'total_paid', 'printer_earnings',
                       'currency', 'quote_snapshot')
        }),
        ('Production et livraison', {
            'fields': ('signed_at', 'printing_started_at', 'printing_completed_at', 'photos_sent_at',
                       'print_photos', 'shipped_at', 'tracking_number', 'shipping_carrier',
                       'delivered_confirmed_at', 'completed_at')
        }),
        ('Paiement imprimeur', {
            'fields': ('printer_paid', 'printer_paid_at', 'payout')
        }),
        ('Annulation', {
            'fields': ('cancelled_at', 'cancellation_reason'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Administration des transactions"""
    list_display = ('id', 'contract', 'client', 'printer', 'total_amount', 'payment_method',
                    'status', 'created_at')
    list_filter = ('status', 'payment_method', 'created_at')
    search_fields = ('gateway_payment_id', 'client__username', 'printer__username')
    readonly_fields = ('amount', 'commission', 'printer_payout', 'total_amount', 'balance_used',
                       'gateway_amount', 'gateway_payment_id', 'gateway_transfer_id', 'gateway_refund_id',
                       'created_at', 'updated_at')
    date_hierarchy = 'created_at'

    def has_delete_permission(self, request, obj=None):
        """Les transactions ne se suppriment pas"""
        return False
