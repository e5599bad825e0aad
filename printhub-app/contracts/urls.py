"""
URLs pour le module Contrats
"""
from django.urls import path
from . import views

app_name = 'contracts'

urlpatterns = [
    path('', views.contract_list, name='contract-list'),
    path('create/', views.create_contract, name='create-contract'),
    path('<int:contract_id>/', views.contract_detail, name='contract-detail'),

    # Signature et paiement
    path('<int:contract_id>/sign-and-pay/', views.sign_and_pay, name='sign-and-pay'),
    path('payments/<int:transaction_id>/confirm/', views.confirm_payment, name='confirm-payment'),

    # Production
    path('<int:contract_id>/start-printing/', views.start_printing, name='start-printing'),
    path('<int:contract_id>/complete-printing/', views.complete_printing, name='complete-printing'),
    path('<int:contract_id>/send-photos/', views.send_photos, name='send-photos'),
    path('<int:contract_id>/ship/', views.mark_as_shipped, name='mark-as-shipped'),
    path('<int:contract_id>/confirm-delivery/', views.confirm_delivery, name='confirm-delivery'),
    path('<int:contract_id>/cancel/', views.cancel_contract, name='cancel-contract'),

    # Statistiques
    path('stats/earnings/', views.printer_earnings, name='printer-earnings'),
    path('stats/revenue/', views.platform_revenue, name='platform-revenue'),
]
