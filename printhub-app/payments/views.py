"""
Vues pour les soldes, versements et webhooks Stripe
"""
import json
import logging

from django.contrib.admin.views.decorators import staff_member_required
from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from contracts.services import PaymentService
from core.exceptions import GatewayFailure, MarketplaceError
from core.http import get_or_not_found, json_endpoint, parse_body
from .models import Payout, PaymentWebhookLog
from .payout_service import PayoutService
from .services.stripe_gateway import stripe_gateway

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = 'payment_intent.succeeded'
PAYMENT_FAILED = 'payment_intent.payment_failed'


def payout_data(payout: Payout):
    return {
        'id': payout.id,
        'amount': str(payout.amount),
        'currency': payout.currency,
        'status': payout.status,
        'status_display': payout.get_status_display(),
        'contract_ids': [c.id for c in payout.contracts.all()],
        'gateway_transfer_id': payout.gateway_transfer_id or '',
        'error_message': payout.error_message or '',
        'error_code': payout.error_code or '',
        'printer_notes': payout.printer_notes or '',
        'requested_at': payout.requested_at.isoformat() if payout.requested_at else None,
        'completed_at': payout.completed_at.isoformat() if payout.completed_at else None,
    }


@login_required
@require_GET
@json_endpoint
def balance(request):
    return JsonResponse({'success': True, 'balance': PayoutService.get_balance(request.user)})


@login_required
@require_http_methods(["GET", "POST"])
@json_endpoint
def bank_details(request):
    """
    GET : coordonnées bancaires (IBAN masqué)
    POST : enregistrement des coordonnées
    """
    if request.method == 'POST':
        data = parse_body(request)
        PayoutService.update_bank_details(
            request.user,
            data.get('account_holder_name'),
            data.get('iban'),
            data.get('bic'),
            data.get('bank_name'),
        )
    return JsonResponse({'success': True, 'bank_details': PayoutService.get_bank_details(request.user)})


@login_required
@require_GET
@json_endpoint
def payout_list(request):
    payouts = PayoutService.list_payouts(request.user, request.GET.get('status'))
    return JsonResponse({'success': True, 'payouts': [payout_data(p) for p in payouts]})


@login_required
@require_GET
@json_endpoint
def payout_detail(request, payout_id):
    payout = PayoutService.get_payout(payout_id, request.user)
    return JsonResponse({'success': True, 'payout': payout_data(payout)})


@login_required
@require_POST
@json_endpoint
def request_payout(request):
    data = parse_body(request)
    payout = PayoutService.request_payout(request.user, data.get('amount'), data.get('notes'))
    return JsonResponse({'success': True, 'payout': payout_data(payout)}, status=201)


@login_required
@require_POST
@json_endpoint
def cancel_payout(request, payout_id):
    payout = PayoutService.get_payout(payout_id, request.user)
    payout = PayoutService.cancel_payout(payout, request.user)
    return JsonResponse({'success': True, 'payout': payout_data(payout)})


@staff_member_required
@require_POST
@json_endpoint
def process_payout(request, payout_id):
    """Traitement d'un versement par l'équipe (virement Stripe)"""
    payout = get_or_not_found(Payout, "Versement introuvable", pk=payout_id)
    data = parse_body(request)
    if data.get('admin_notes'):
        Payout.objects.filter(pk=payout.pk).update(admin_notes=data['admin_notes'])
    payout = PayoutService.process_payout(payout, processed_by=request.user)
    return JsonResponse({
        'success': payout.status == Payout.COMPLETED,
        'payout': payout_data(payout),
    })


@csrf_exempt
@require_POST
def stripe_webhook(request):
    """
    Webhook Stripe : confirmation ou échec des autorisations de paiement
    """
    signature = request.headers.get('Stripe-Signature', '')
    try:
        payload_data = json.loads(request.body.decode('utf-8'))
    except (ValueError, UnicodeDecodeError):
        payload_data = None
    if not isinstance(payload_data, dict):
        logger.error("Payload de webhook Stripe illisible")
        return HttpResponse(status=400)

    webhook_log = PaymentWebhookLog.objects.create(
        event_id=payload_data.get('id'),
        event_type=payload_data.get('type'),
        payload=payload_data,
        signature=signature[:500] or None,
    )

    try:
        event = stripe_gateway.construct_event(request.body, signature)
    except GatewayFailure:
        logger.warning(f"Signature invalide pour le webhook {webhook_log.event_id}")
        webhook_log.error_message = "Signature invalide"
        webhook_log.save()
        return HttpResponse(status=401)
    webhook_log.is_valid = True

    event_type = event.get('type')
    intent = (event.get('data') or {}).get('object') or {}
    if event_type in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
        try:
            payment = PaymentService.find_by_gateway_id(intent.get('id'))
            webhook_log.transaction = payment
            if event_type == PAYMENT_SUCCEEDED:
                PaymentService.confirm_payment(payment)
            else:
                error = (intent.get('last_payment_error') or {}).get('message') or 'Paiement refusé'
                PaymentService.fail_payment(payment, error)
            webhook_log.processed = True
        except MarketplaceError as e:
            # Événement rejoué ou transaction inconnue : acquitté pour stopper les relances
            logger.warning(f"Webhook {event_type} non appliqué : {e.message}")
            webhook_log.error_message = e.message
    else:
        webhook_log.error_message = "Événement ignoré"

    webhook_log.save()
    return HttpResponse(status=200)
