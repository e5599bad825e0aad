"""
Vues pour le module Contrats
Endpoints JSON : création, signature et paiement, production, livraison
"""
import logging

from django.contrib.admin.views.decorators import staff_member_required
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from core.exceptions import ValidationFailed
from core.http import get_or_not_found, json_endpoint, parse_body
from projects.models import Quote
from .models import Contract, Transaction
from .services import ContractService, PaymentService

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


def contract_data(contract: Contract):
    return {
        'id': contract.id,
        'project_id': contract.project_id,
        'quote_id': contract.quote_id,
        'conversation_id': contract.conversation_id,
        'client_id': contract.client_id,
        'printer_id': contract.printer_id,
        'status': contract.status,
        'status_display': contract.get_status_display(),
        'agreed_price': str(contract.agreed_price),
        'platform_commission': str(contract.platform_commission),
        'total_paid': str(contract.total_paid),
        'printer_earnings': str(contract.printer_earnings),
        'currency': contract.currency,
        'quote_snapshot': contract.quote_snapshot,
        'print_photos': contract.print_photos,
        'tracking_number': contract.tracking_number or '',
        'shipping_carrier': contract.shipping_carrier or '',
        'printer_paid': contract.printer_paid,
        'signed_at': _iso(contract.signed_at),
        'shipped_at': _iso(contract.shipped_at),
        'delivered_confirmed_at': _iso(contract.delivered_confirmed_at),
        'completed_at': _iso(contract.completed_at),
        'cancelled_at': _iso(contract.cancelled_at),
        'created_at': _iso(contract.created_at),
    }


def transaction_data(payment: Transaction):
    return {
        'id': payment.id,
        'contract_id': payment.contract_id,
        'status': payment.status,
        'payment_method': payment.payment_method,
        'amount': str(payment.amount),
        'commission': str(payment.commission),
        'printer_payout': str(payment.printer_payout),
        'total_amount': str(payment.total_amount),
        'balance_used': str(payment.balance_used),
        'gateway_amount': str(payment.gateway_amount),
        'currency': payment.currency,
        'gateway_payment_id': payment.gateway_payment_id or '',
    }


@login_required
@require_POST
@json_endpoint
def create_contract(request):
    data = parse_body(request)
    quote = get_or_not_found(Quote, "Devis introuvable", pk=data.get('quote_id'))
    contract = ContractService.create_contract(quote, request.user)
    return JsonResponse({'success': True, 'contract': contract_data(contract)}, status=201)


@login_required
@require_GET
@json_endpoint
def contract_list(request):
    contracts = ContractService.list_for_user(request.user, request.GET.get('status'))
    return JsonResponse({'success': True, 'contracts': [contract_data(c) for c in contracts]})


@login_required
@require_GET
@json_endpoint
def contract_detail(request, contract_id):
    contract = ContractService.get_for_party(contract_id, request.user)
    payments = [transaction_data(t) for t in contract.transactions.all()]
    return JsonResponse({'success': True, 'contract': contract_data(contract), 'transactions': payments})


@login_required
@require_POST
@json_endpoint
def sign_and_pay(request, contract_id):
    """
    Signature et paiement du contrat par le client.
    `use_balance` : part à prélever sur le solde disponible du client.
    """
    data = parse_body(request)
    contract = ContractService.get_for_party(contract_id, request.user)
    payment, decision = PaymentService.authorize_payment(contract, request.user, data.get('use_balance') or 0)
    contract.refresh_from_db()
    return JsonResponse({
        'success': True,
        'contract': contract_data(contract),
        'transaction': transaction_data(payment),
        'client_secret': payment.client_secret or '',
        'compliance_warning': decision.warning,
    })


@staff_member_required
@require_POST
@json_endpoint
def confirm_payment(request, transaction_id):
    """
    Confirmation manuelle par l'équipe, après vérification auprès de la
    passerelle. Côté client, seul le webhook Stripe confirme un paiement carte.
    """
    payment = get_or_not_found(Transaction, "Transaction introuvable", pk=transaction_id)
    payment = PaymentService.confirm_payment(payment)
    return JsonResponse({
        'success': True,
        'transaction': transaction_data(payment),
        'contract': contract_data(payment.contract),
    })


@login_required
@require_POST
@json_endpoint
def start_printing(request, contract_id):
    contract = ContractService.get_for_party(contract_id, request.user)
    contract = ContractService.start_printing(contract, request.user)
    return JsonResponse({'success': True, 'contract': contract_data(contract)})


@login_required
@require_POST
@json_endpoint
def complete_printing(request, contract_id):
    contract = ContractService.get_for_party(contract_id, request.user)
    contract = ContractService.complete_printing(contract, request.user)
    return JsonResponse({'success': True, 'contract': contract_data(contract)})


@login_required
@require_POST
@json_endpoint
def send_photos(request, contract_id):
    data = parse_body(request)
    contract = ContractService.get_for_party(contract_id, request.user)
    contract = ContractService.send_photos(contract, request.user, data.get('photos'))
    return JsonResponse({'success': True, 'contract': contract_data(contract)})


@login_required
@require_POST
@json_endpoint
def mark_as_shipped(request, contract_id):
    data = parse_body(request)
    contract = ContractService.get_for_party(contract_id, request.user)
    contract = ContractService.mark_as_shipped(
        contract, request.user, data.get('tracking_number'), data.get('carrier'))
    return JsonResponse({'success': True, 'contract': contract_data(contract)})


@login_required
@require_POST
@json_endpoint
def confirm_delivery(request, contract_id):
    contract = ContractService.get_for_party(contract_id, request.user)
    contract = ContractService.confirm_delivery(contract, request.user)
    return JsonResponse({
        'success': True,
        'message': "Livraison confirmée. Les gains de l'imprimeur sont disponibles.",
        'contract': contract_data(contract),
    })


@login_required
@require_POST
@json_endpoint
def cancel_contract(request, contract_id):
    data = parse_body(request)
    contract = ContractService.get_for_party(contract_id, request.user)
    contract = ContractService.cancel_contract(contract, request.user, data.get('reason'))
    return JsonResponse({'success': True, 'contract': contract_data(contract)})


@login_required
@require_GET
@json_endpoint
def printer_earnings(request):
    start, end = _period(request)
    stats = ContractService.printer_earnings(request.user, start, end)
    return JsonResponse({'success': True, **{k: str(v) if k != 'contract_count' else v for k, v in stats.items()}})


@staff_member_required
@require_GET
@json_endpoint
def platform_revenue(request):
    start, end = _period(request)
    stats = ContractService.platform_revenue(start, end)
    return JsonResponse({'success': True, **{k: str(v) if k != 'transaction_count' else v for k, v in stats.items()}})


def _period(request):
    start = request.GET.get('start')
    end = request.GET.get('end')
    try:
        start = parse_date(start) if start else None
        end = parse_date(end) if end else None
    except ValueError:
        raise ValidationFailed("Période invalide")
    return start, end
