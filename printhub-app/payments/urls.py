"""
URLs pour les soldes, versements et webhooks Stripe
"""
from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    # Solde et coordonnées bancaires
    path('balance/', views.balance, name='balance'),
    path('bank-details/', views.bank_details, name='bank-details'),

    # Versements
    path('payouts/', views.payout_list, name='payout-list'),
    path('payouts/request/', views.request_payout, name='request-payout'),
    path('payouts/<int:payout_id>/', views.payout_detail, name='payout-detail'),
    path('payouts/<int:payout_id>/cancel/', views.cancel_payout, name='cancel-payout'),
    path('payouts/<int:payout_id>/process/', views.process_payout, name='process-payout'),

    # Passerelle
    path('stripe/webhook/', views.stripe_webhook, name='stripe-webhook'),
]
