"""
Rapports de conformité pour l'équipe : vendeurs proches du seuil,
statistiques de la plateforme, déclaration DAC7 annuelle
"""
import csv
import io
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from django.conf import settings
from django.contrib.auth.models import User
from django.db.models import Count, Q, Sum
from django.utils import timezone

from accounts.models import Profile
from contracts.models import Transaction
from core import notifications
from core.exceptions import ValidationFailed
from .guard import ComplianceGuard, _percentage, max_revenue, max_transactions

logger = logging.getLogger(__name__)

DAC7_FIRST_YEAR = 2020

DAC7_HEADERS = [
    'Prénom',
    'Nom',
    'Email',
    'Date de naissance',
    'Lieu de naissance',
    'Adresse - Rue',
    'Adresse - Code Postal',
    'Adresse - Ville',
    'Adresse - Pays',
    'Statut',
    'SIRET',
    'TVA',
    'CA Total (EUR)',
    'Nombre de transactions',
    'IBAN',
]


def at_risk_ratio() -> Decimal:
    return Decimal(str(getattr(settings, 'COMPLIANCE_AT_RISK_RATIO', Decimal('0.8'))))


def sellers_at_risk(now=None) -> List[Dict[str, Any]]:
    """
    Vendeurs particuliers ayant atteint le ratio d'alerte sur l'un des deux
    plafonds pour l'année en cours (bloqués compris)
    """
    year = (now or timezone.now()).year
    ratio = at_risk_ratio()
    revenue_floor = max_revenue() * ratio
    count_floor = max_transactions() * ratio

    profiles = Profile.objects.filter(
        role=Profile.PRINTER,
        business_status=Profile.PARTICULIER,
        revenue_year=year,
    ).filter(
        Q(yearly_revenue__gte=revenue_floor) | Q(yearly_transaction_count__gte=count_floor)
    ).select_related('user').order_by('-yearly_revenue')

    sellers = []
    for profile in profiles:
        user = profile.user
        sellers.append({
            'user_id': user.id,
            'name': f"{user.first_name} {user.last_name}".strip() or user.username,
            'email': user.email,
            'yearly_revenue': str(profile.yearly_revenue),
            'yearly_transaction_count': profile.yearly_transaction_count,
            'revenue_usage': str(_percentage(profile.yearly_revenue, max_revenue())),
            'transaction_usage': str(_percentage(profile.yearly_transaction_count, max_transactions())),
            'account_blocked': profile.account_blocked,
            'status': 'blocked' if profile.account_blocked else 'warning',
        })
    return sellers


def platform_statistics(now=None) -> Dict[str, Any]:
    """Chiffres clés : utilisateurs, imprimeurs par statut, transactions de l'année"""
    now = now or timezone.now()
    start_of_year = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)

    by_status = Profile.objects.filter(role=Profile.PRINTER).values('business_status').annotate(
        count=Count('id')).order_by('business_status')
    yearly = Transaction.objects.filter(
        status=Transaction.COMPLETED, created_at__gte=start_of_year,
    ).aggregate(count=Count('id'), revenue=Sum('amount'), commission=Sum('commission'))

    return {
        'users': {
            'total': User.objects.count(),
            'clients': Profile.objects.filter(role=Profile.CLIENT).count(),
            'printers': Profile.objects.filter(role=Profile.PRINTER).count(),
        },
        'printers': {
            'by_status': {row['business_status']: row['count'] for row in by_status},
            'blocked': Profile.objects.filter(role=Profile.PRINTER, account_blocked=True).count(),
        },
        'transactions': {
            'year': now.year,
            'count': yearly['count'],
            'revenue': str(yearly['revenue'] or Decimal('0.00')),
            'commission': str(yearly['commission'] or Decimal('0.00')),
        },
    }


def validate_report_year(year, now=None) -> int:
    current_year = (now or timezone.now()).year
    try:
        year = int(year)
    except (TypeError, ValueError):
        year = 0
    if year < DAC7_FIRST_YEAR or year > current_year:
        raise ValidationFailed(
            f"Année invalide : indiquez une année entre {DAC7_FIRST_YEAR} et {current_year}")
    return year


def dac7_rows(year: int) -> List[List[str]]:
    """Une ligne par vendeur ayant au moins une transaction réglée dans l'année"""
    tz = timezone.get_current_timezone()
    start = datetime(year, 1, 1, tzinfo=tz)
    end = datetime(year + 1, 1, 1, tzinfo=tz)

    totals = Transaction.objects.filter(
        status=Transaction.COMPLETED, created_at__gte=start, created_at__lt=end,
    ).values('printer').annotate(revenue=Sum('amount'), count=Count('id'))
    by_printer = {row['printer']: row for row in totals}

    rows = []
    profiles = Profile.objects.filter(user_id__in=by_printer.keys()).select_related('user').order_by('user_id')
    for profile in profiles:
        user = profile.user
        data = by_printer[user.id]
        rows.append([
            user.first_name or '',
            user.last_name or '',
            user.email or '',
            profile.birth_date.strftime('%d/%m/%Y') if profile.birth_date else '',
            profile.birth_place or '',
            profile.address or '',
            profile.post_code or '',
            profile.city or '',
            profile.country or '',
            profile.business_status or Profile.PARTICULIER,
            profile.siret or '',
            profile.tva_number or '',
            f"{data['revenue']:.2f}",
            str(data['count']),
            profile.bank_iban or '',
        ])
    return rows


def build_dac7_csv(year, now=None) -> str:
    """
    Rapport DAC7 : séparateur point-virgule, toutes les cellules entre
    guillemets, BOM UTF-8 pour l'ouverture dans un tableur
    """
    year = validate_report_year(year, now)
    output = io.StringIO()
    writer = csv.writer(output, delimiter=';', quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(DAC7_HEADERS)
    rows = dac7_rows(year)
    writer.writerows(rows)
    logger.info(f"Rapport DAC7 {year} généré : {len(rows)} vendeurs")
    return '\ufeff' + output.getvalue().rstrip('\n')


def send_threshold_reminder(user: User) -> Dict[str, Any]:
    """Rappel manuel des seuils envoyé à un vendeur"""
    status = ComplianceGuard.get_threshold_status(user)
    notifications.notify(user, notifications.THRESHOLD_REMINDER, status)
    logger.info(f"Rappel de seuil envoyé au vendeur {user.pk}")
    return status
