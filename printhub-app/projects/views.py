"""
Vues pour les projets d'impression et les devis simples
"""
import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from accounts.models import Profile
from accounts.permissions import role_of
from core.exceptions import Forbidden
from core.http import get_or_not_found, json_endpoint, parse_body
from .models import Project, Quote
from .services import ProjectService, QuoteService

logger = logging.getLogger(__name__)


def project_data(project: Project):
    return {
        'id': project.id,
        'client_id': project.client_id,
        'title': project.title,
        'description': project.description,
        'model_file_url': project.model_file_url or '',
        'model_file_size': project.model_file_size,
        'quantity': project.quantity,
        'status': project.status,
        'status_display': project.get_status_display(),
        'printer_found': project.printer_found,
        'selected_printer_id': project.selected_printer_id,
        'refusal_count': project.refusal_count,
        'created_at': project.created_at.isoformat() if project.created_at else None,
    }


def quote_data(quote: Quote):
    data = quote.snapshot()
    data.update({
        'id': quote.id,
        'project_id': quote.project_id,
        'printer_id': quote.printer_id,
        'status': quote.status,
        'expires_at': quote.expires_at.isoformat() if quote.expires_at else None,
        'rejection_reason': quote.rejection_reason or '',
    })
    return data


def _visible_project(project_id, user) -> Project:
    """Le client propriétaire, les imprimeurs et l'équipe voient le projet"""
    project = get_or_not_found(Project, "Projet introuvable", pk=project_id)
    if project.client_id != user.pk and role_of(user) != Profile.PRINTER and not user.is_staff:
        raise Forbidden("Accès non autorisé à ce projet")
    return project


@login_required
@require_http_methods(["GET", "POST"])
@json_endpoint
def projects(request):
    """
    GET : projets du client, ou projets ouverts aux offres pour un imprimeur
    POST : publication d'un projet par un client
    """
    if request.method == 'POST':
        data = parse_body(request)
        project = ProjectService.create_project(
            request.user,
            data.get('title'),
            data.get('description', ''),
            data.get('model_file_url'),
            data.get('model_file_size'),
            data.get('quantity', 1),
        )
        return JsonResponse({'success': True, 'project': project_data(project)}, status=201)

    if role_of(request.user) == Profile.PRINTER:
        queryset = Project.objects.filter(
            printer_found=False, status__in=[Project.OPEN, Project.QUOTED],
        ).exclude(refused_printers=request.user)
    else:
        queryset = Project.objects.filter(client=request.user)
    status = request.GET.get('status')
    if status:
        queryset = queryset.filter(status=status)
    return JsonResponse({'success': True, 'projects': [project_data(p) for p in queryset]})


@login_required
@require_GET
@json_endpoint
def project_detail(request, project_id):
    project = _visible_project(project_id, request.user)
    quotes = project.quotes.all()
    if project.client_id != request.user.pk and not request.user.is_staff:
        quotes = quotes.filter(printer=request.user)
    return JsonResponse({
        'success': True,
        'project': project_data(project),
        'quotes': [quote_data(q) for q in quotes],
    })


@login_required
@require_POST
@json_endpoint
def create_quote(request, project_id):
    project = _visible_project(project_id, request.user)
    data = parse_body(request)
    quote = QuoteService.create_quote(
        project,
        request.user,
        data.get('price'),
        data.get('message'),
        estimated_duration=data.get('estimated_duration', 1),
        duration_unit=data.get('duration_unit', Quote.DAYS),
        delivery_date=data.get('delivery_date'),
        breakdown=data.get('breakdown'),
    )
    return JsonResponse({'success': True, 'quote': quote_data(quote)}, status=201)


@login_required
@require_POST
@json_endpoint
def accept_quote(request, quote_id):
    quote = get_or_not_found(Quote, "Devis introuvable", pk=quote_id)
    quote = QuoteService.accept_quote(quote, request.user)
    return JsonResponse({'success': True, 'quote': quote_data(quote)})


@login_required
@require_POST
@json_endpoint
def reject_quote(request, quote_id):
    quote = get_or_not_found(Quote, "Devis introuvable", pk=quote_id)
    data = parse_body(request)
    quote = QuoteService.reject_quote(quote, request.user, data.get('reason'))
    return JsonResponse({'success': True, 'quote': quote_data(quote)})
