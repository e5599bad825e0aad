from django.contrib import admin
from .models import Profile
# Register your models here.


class ProfileAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'role', 'business_status', 'yearly_revenue',
                    'yearly_transaction_count', 'balance_available', 'balance_pending',
                    'account_blocked')
    list_filter = ('role', 'business_status', 'account_blocked')
    list_display_links = ('id', 'user', )
    list_per_page = 20
    search_fields = ('id', 'user__username', 'user__email', 'siret')
    # Les soldes et compteurs ne se modifient que par les services
    readonly_fields = ('balance_available', 'balance_pending', 'balance_reserved', 'balance_total',
                       'yearly_revenue', 'yearly_transaction_count', 'revenue_year',
                       'reserved_revenue', 'reserved_transaction_count',
                       'blocked_at', 'threshold_warning_sent_at', 'date', 'date_update')

    fieldsets = (
        ('Utilisateur', {
            'fields': ('user', 'role', 'display_name', 'mobile_number')
        }),
        ('Adresse', {
            'fields': ('address', 'post_code', 'city', 'country', 'birth_date', 'birth_place')
        }),
        ('Statut juridique', {
            'fields': ('business_status', 'siret', 'tva_number', 'account_blocked', 'block_reason', 'blocked_at')
        }),
        ('Compteurs annuels', {
            'fields': ('revenue_year', 'yearly_revenue', 'yearly_transaction_count',
                       'reserved_revenue', 'reserved_transaction_count', 'threshold_warning_sent_at')
        }),
        ('Solde', {
            'fields': ('balance_available', 'balance_pending', 'balance_reserved', 'balance_total')
        }),
        ('Coordonnées bancaires', {
            'fields': ('bank_account_holder', 'bank_iban', 'bank_bic', 'bank_name', 'payee_account_id')
        }),
        ('Dates', {
            'fields': ('date', 'date_update')
        }),
    )

admin.site.register(Profile, ProfileAdmin)
