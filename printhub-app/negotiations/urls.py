"""
URLs pour le module Négociations
"""
from django.urls import path
from . import views

app_name = 'negotiations'

urlpatterns = [
    path('', views.conversations, name='conversations'),
    path('<int:conversation_id>/', views.conversation_detail, name='conversation-detail'),
    path('<int:conversation_id>/messages/', views.post_message, name='post-message'),
    path('<int:conversation_id>/read/', views.mark_read, name='mark-read'),

    # Devis et signature
    path('<int:conversation_id>/quote/', views.send_quote, name='send-quote'),
    path('<int:conversation_id>/counter-quote/', views.counter_quote, name='counter-quote'),
    path('<int:conversation_id>/accept-quote/', views.accept_quote, name='accept-quote'),
    path('<int:conversation_id>/reject-quote/', views.reject_quote, name='reject-quote'),
    path('<int:conversation_id>/sign/', views.sign, name='sign'),

    # Annulation
    path('<int:conversation_id>/cancel/', views.cancel, name='cancel'),
    path('<int:conversation_id>/withdraw/', views.withdraw, name='withdraw'),
    path('<int:conversation_id>/refuse/', views.refuse, name='refuse'),

    # Pause, médiation, signalement
    path('<int:conversation_id>/pause/', views.pause, name='pause'),
    path('<int:conversation_id>/resume/', views.resume, name='resume'),
    path('<int:conversation_id>/mediation/', views.request_mediation, name='request-mediation'),
    path('<int:conversation_id>/mediation/cancel/', views.cancel_by_mediation, name='cancel-by-mediation'),
    path('<int:conversation_id>/report/', views.report, name='report'),
    path('<int:conversation_id>/favorite/', views.favorite, name='favorite'),

    # Production
    path('<int:conversation_id>/start-printing/', views.start_printing, name='start-printing'),
    path('<int:conversation_id>/complete-printing/', views.complete_printing, name='complete-printing'),
    path('<int:conversation_id>/photos/', views.share_photos, name='share-photos'),
    path('<int:conversation_id>/ship/', views.ship_order, name='ship-order'),
]
