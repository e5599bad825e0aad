"""
Vues de conformité : statistiques de vente, passage en entreprise,
rapports de l'équipe
"""
import logging

from django.contrib.admin.views.decorators import staff_member_required
from django.contrib.auth.decorators import login_required
from django.contrib.auth.models import User
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from accounts.models import Profile
from core.exceptions import ValidationFailed
from core.http import get_or_not_found, json_endpoint, parse_body
from . import reports
from .guard import ComplianceGuard

logger = logging.getLogger(__name__)


@login_required
@require_GET
@json_endpoint
def sales_statistics(request):
    """Usage des plafonds légaux par le vendeur connecté"""
    return JsonResponse({'success': True, 'statistics': ComplianceGuard.get_threshold_status(request.user)})


@login_required
@require_POST
@json_endpoint
def upgrade_to_business(request):
    data = parse_body(request)
    profile = ComplianceGuard.upgrade_to_business(
        request.user,
        data.get('siret'),
        data.get('business_status'),
        data.get('tva_number'),
    )
    return JsonResponse({
        'success': True,
        'message': "Statut juridique mis à jour, votre compte est débloqué",
        'business_status': profile.business_status,
        'account_blocked': profile.account_blocked,
    })


@staff_member_required
@require_GET
@json_endpoint
def sellers_at_risk(request):
    sellers = reports.sellers_at_risk()
    return JsonResponse({'success': True, 'count': len(sellers), 'sellers': sellers})


@staff_member_required
@require_GET
@json_endpoint
def platform_statistics(request):
    return JsonResponse({'success': True, 'statistics': reports.platform_statistics()})


@staff_member_required
@require_GET
@json_endpoint
def dac7_report(request, year):
    content = reports.build_dac7_csv(year)
    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename=dac7-report-{year}.csv'
    return response


@staff_member_required
@require_POST
@json_endpoint
def send_threshold_reminder(request, user_id):
    seller = get_or_not_found(User, "Vendeur introuvable", pk=user_id)
    if not Profile.objects.filter(user=seller, role=Profile.PRINTER).exists():
        raise ValidationFailed("Cet utilisateur n'est pas un imprimeur")
    status = reports.send_threshold_reminder(seller)
    return JsonResponse({
        'success': True,
        'message': "Rappel de seuil envoyé",
        'seller': {'email': seller.email, 'name': seller.get_full_name() or seller.username},
        'statistics': status,
    })
