"""
Vues pour le module Négociations
Endpoints JSON : ouverture, devis, contre-propositions, signature,
annulation, pause, médiation et suivi de production
"""
import logging

from django.contrib.admin.views.decorators import staff_member_required
from django.contrib.auth.decorators import login_required
from django.contrib.auth.models import User
from django.db.models import Q
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from core.exceptions import Forbidden, ValidationFailed
from core.http import get_or_not_found, json_endpoint, parse_body
from projects.models import Project
from .models import Conversation
from .services import ConversationService

logger = logging.getLogger(__name__)

TRUE_VALUES = (True, 'true', 'True', '1', 1, 'on')


def _iso(value):
    return value.isoformat() if value else None


def conversation_data(conversation: Conversation, user=None):
    party = conversation.party_of(user) if user else None
    data = {
        'id': conversation.id,
        'project_id': conversation.project_id,
        'client_id': conversation.client_id,
        'printer_id': conversation.printer_id,
        'initiated_by': conversation.initiated_by,
        'status': conversation.status,
        'status_display': conversation.get_status_display(),
        'current_quote': conversation.current_quote,
        'counter_offer_count': conversation.counter_offer_count,
        'client_signed_at': _iso(conversation.client_signed_at),
        'printer_signed_at': _iso(conversation.printer_signed_at),
        'signed_at': _iso(conversation.signed_at),
        'production': {
            'printing_started': conversation.printing_started,
            'printing_completed': conversation.printing_completed,
            'photos_shared': conversation.photos_shared,
            'photo_urls': conversation.photo_urls,
            'order_shipped': conversation.order_shipped,
            'tracking_number': conversation.tracking_number or '',
            'shipping_method': conversation.shipping_method or '',
        },
        'last_message_at': _iso(conversation.last_message_at),
        'cancelled_by': conversation.cancelled_by or '',
        'cancellation_reason': conversation.cancellation_reason or '',
        'mutual_cancel_requested_by': conversation.mutual_cancel_requested_by or '',
        'mediation_requested': conversation.mediation_requested,
        'pause_expires_at': _iso(conversation.pause_expires_at),
        'is_archived': conversation.is_archived,
        'updated_at': _iso(conversation.updated_at),
    }
    if party == Conversation.CLIENT:
        data['unread_count'] = conversation.unread_count_client
        data['is_favorite'] = conversation.is_favorite_for_client
    elif party == Conversation.PRINTER:
        data['unread_count'] = conversation.unread_count_printer
        data['is_favorite'] = conversation.is_favorite_for_printer
    return data


def _conversation(request, conversation_id, allow_staff=False) -> Conversation:
    conversation = get_or_not_found(
        Conversation.objects.select_related('project', 'client', 'printer'),
        "Conversation introuvable", pk=conversation_id)
    if conversation.party_of(request.user) is None and not (allow_staff and request.user.is_staff):
        raise Forbidden("Vous ne participez pas à cette conversation")
    return conversation


def _respond(conversation: Conversation, user, status=200, **extra):
    payload = {'success': True, 'conversation': conversation_data(conversation, user)}
    payload.update(extra)
    return JsonResponse(payload, status=status)


@login_required
@require_http_methods(["GET", "POST"])
@json_endpoint
def conversations(request):
    """
    GET : conversations de l'utilisateur (archivées avec ?archived=true)
    POST : ouverture d'une conversation {project_id, printer_id}
    """
    if request.method == 'POST':
        data = parse_body(request)
        project = get_or_not_found(Project, "Projet introuvable", pk=data.get('project_id'))
        printer_id = data.get('printer_id') or request.user.pk
        printer = get_or_not_found(User, "Imprimeur introuvable", pk=printer_id)
        conversation, created = ConversationService.start(project, printer, request.user)
        return _respond(conversation, request.user, status=201 if created else 200, created=created)

    queryset = Conversation.objects.filter(Q(client=request.user) | Q(printer=request.user))
    queryset = queryset.filter(is_archived=request.GET.get('archived') in TRUE_VALUES)
    status = request.GET.get('status')
    if status:
        queryset = queryset.filter(status=status)
    return JsonResponse({
        'success': True,
        'conversations': [conversation_data(c, request.user) for c in queryset],
    })


@login_required
@require_GET
@json_endpoint
def conversation_detail(request, conversation_id):
    conversation = _conversation(request, conversation_id, allow_staff=True)
    history = [
        {
            'version': revision.version,
            'sent_by': revision.sent_by,
            'quote': revision.snapshot,
            'outcome': revision.outcome,
            'note': revision.note or '',
            'archived_at': _iso(revision.archived_at),
        }
        for revision in conversation.quote_history.all()
    ]
    return _respond(conversation, request.user, quote_history=history)


@login_required
@require_POST
@json_endpoint
def post_message(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.post_message(conversation, request.user)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def mark_read(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.mark_read(conversation, request.user)
    return _respond(conversation, request.user)


# Devis

@login_required
@require_POST
@json_endpoint
def send_quote(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.send_quote(conversation, request.user, parse_body(request))
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def counter_quote(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.counter_quote(conversation, request.user, parse_body(request))
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def accept_quote(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.accept_quote(conversation, request.user)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def reject_quote(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    conversation = ConversationService.reject_quote(conversation, request.user, data.get('reason'))
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def sign(request, conversation_id):
    """Signature d'une partie ; le contrat est créé quand les deux ont signé"""
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.sign(conversation, request.user)
    contract = getattr(conversation, 'contract', None) if conversation.both_signed() else None
    return _respond(conversation, request.user, contract_id=contract.id if contract else None)


# Annulation, retrait, refus

@login_required
@require_POST
@json_endpoint
def cancel(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    conversation = ConversationService.cancel(
        conversation, request.user, data.get('reason'), mutual=data.get('mutual') in TRUE_VALUES)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def withdraw(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    conversation = ConversationService.withdraw(conversation, request.user, data.get('reason'))
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def refuse(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    conversation = ConversationService.refuse(conversation, request.user, data.get('reason'))
    return _respond(conversation, request.user)


# Pause et médiation

@login_required
@require_POST
@json_endpoint
def pause(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.pause(conversation, request.user)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def resume(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.resume(conversation, request.user)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def request_mediation(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    conversation = ConversationService.request_mediation(conversation, request.user, data.get('reason'))
    return _respond(conversation, request.user)


@staff_member_required
@require_POST
@json_endpoint
def cancel_by_mediation(request, conversation_id):
    conversation = _conversation(request, conversation_id, allow_staff=True)
    data = parse_body(request)
    if not (data.get('reason') or '').strip():
        raise ValidationFailed("Merci d'indiquer la décision de médiation")
    conversation = ConversationService.cancel_by_mediation(conversation, request.user, data['reason'].strip())
    return _respond(conversation, request.user)


# Signalement et favoris

@login_required
@require_POST
@json_endpoint
def report(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    conversation = ConversationService.report(conversation, request.user, data.get('reason'))
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def favorite(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    value = data.get('favorite', True) in TRUE_VALUES
    conversation = ConversationService.set_favorite(conversation, request.user, value)
    return _respond(conversation, request.user)


# Production

@login_required
@require_POST
@json_endpoint
def start_printing(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.start_printing(conversation, request.user)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def complete_printing(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    conversation = ConversationService.complete_printing(conversation, request.user)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def share_photos(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    photos = data.get('photos') or []
    if isinstance(photos, str):
        photos = [photos]
    conversation = ConversationService.share_photos(conversation, request.user, photos)
    return _respond(conversation, request.user)


@login_required
@require_POST
@json_endpoint
def ship_order(request, conversation_id):
    conversation = _conversation(request, conversation_id)
    data = parse_body(request)
    conversation = ConversationService.ship_order(
        conversation, request.user, data.get('tracking_number'), data.get('shipping_method'))
    return _respond(conversation, request.user)
