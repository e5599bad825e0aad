from decimal import Decimal
from unittest import mock

import pytest
from django.urls import reverse
from django.utils import timezone

from accounts.models import Profile
from compliance import reports
from core.exceptions import ValidationFailed


def seller_ids(sellers):
    return [seller['user_id'] for seller in sellers]


class TestSellersAtRisk:

    def test_sellers_near_a_ceiling(self, printer, other_printer):
        year = timezone.now().year
        Profile.objects.filter(user=printer).update(yearly_revenue=Decimal('2500.00'), revenue_year=year)
        Profile.objects.filter(user=other_printer).update(yearly_transaction_count=16, revenue_year=year)

        sellers = reports.sellers_at_risk()

        assert seller_ids(sellers) == [printer.id, other_printer.id]
        assert sellers[0]['name'] == 'Bob Martin'
        assert sellers[0]['status'] == 'warning'
        assert Decimal(sellers[0]['revenue_usage']) == Decimal('83.33')

    def test_blocked_and_exempt_sellers(self, printer, other_printer):
        year = timezone.now().year
        Profile.objects.filter(user=printer).update(
            yearly_revenue=Decimal('3000.00'), revenue_year=year, account_blocked=True)
        Profile.objects.filter(user=other_printer).update(
            yearly_revenue=Decimal('2900.00'), revenue_year=year, business_status=Profile.MICRO_ENTREPRENEUR)

        sellers = reports.sellers_at_risk()

        assert seller_ids(sellers) == [printer.id]
        assert sellers[0]['status'] == 'blocked'

    def test_last_year_revenue_is_ignored(self, printer):
        Profile.objects.filter(user=printer).update(
            yearly_revenue=Decimal('2900.00'), revenue_year=timezone.now().year - 1)
        assert reports.sellers_at_risk() == []


class TestPlatformStatistics:

    def test_yearly_figures(self, delivered_contract, other_printer):
        Profile.objects.filter(user=other_printer).update(account_blocked=True)

        statistics = reports.platform_statistics()

        assert statistics['users'] == {'total': 3, 'clients': 1, 'printers': 2}
        assert statistics['printers'] == {'by_status': {Profile.PARTICULIER: 2}, 'blocked': 1}
        assert statistics['transactions']['count'] == 1
        assert Decimal(statistics['transactions']['revenue']) == Decimal('100')
        assert Decimal(statistics['transactions']['commission']) == Decimal('10')


class TestDac7Report:

    @pytest.mark.parametrize('year', [2019, 'abc', None])
    def test_year_bounds(self, year):
        with pytest.raises(ValidationFailed):
            reports.validate_report_year(year)

    def test_next_year_is_refused(self):
        with pytest.raises(ValidationFailed):
            reports.validate_report_year(timezone.now().year + 1)

    def test_csv_rows(self, delivered_contract, printer):
        Profile.objects.filter(user=printer).update(
            birth_date='1990-04-12', city='Lyon', bank_iban='FR7630006000011234567890189')

        content = reports.build_dac7_csv(timezone.now().year)

        assert content.startswith('\ufeff"Prénom";"Nom";"Email"')
        lines = content.lstrip('\ufeff').split('\n')
        assert len(lines) == 2
        row = lines[1].split(';')
        assert row[:4] == ['"Bob"', '"Martin"', '"bob@example.com"', '"12/04/1990"']
        assert row[7] == '"Lyon"'
        assert row[12:] == ['"100.00"', '"1"', '"FR7630006000011234567890189"']

    def test_report_without_sales_has_only_headers(self, db):
        content = reports.build_dac7_csv(2021)
        assert content == '\ufeff' + ';'.join(f'"{header}"' for header in reports.DAC7_HEADERS)

    def test_download(self, client, staff_user, delivered_contract):
        year = timezone.now().year
        client.force_login(staff_user)
        response = client.get(reverse('compliance:dac7-report', args=[year]))
        assert response.status_code == 200
        assert response['Content-Type'] == 'text/csv; charset=utf-8'
        assert response['Content-Disposition'] == f'attachment; filename=dac7-report-{year}.csv'
        assert '"Bob";"Martin"' in response.content.decode('utf-8')

    def test_download_with_invalid_year(self, client, staff_user):
        client.force_login(staff_user)
        response = client.get(reverse('compliance:dac7-report', args=[2015]))
        assert response.status_code == 400
        assert response.json()['code'] == 'validation_failed'

    def test_download_is_staff_only(self, client, printer):
        client.force_login(printer)
        response = client.get(reverse('compliance:dac7-report', args=[2021]))
        assert response.status_code == 302


class TestThresholdReminder:

    def test_reminder_is_sent(self, client, staff_user, printer):
        client.force_login(staff_user)
        with mock.patch('compliance.reports.notifications.notify') as notify:
            response = client.post(reverse('compliance:send-threshold-reminder', args=[printer.id]))

        assert response.status_code == 200
        body = response.json()
        assert body['seller'] == {'email': 'bob@example.com', 'name': 'Bob Martin'}
        assert body['statistics']['subject_to_threshold'] is True
        notify.assert_called_once()
        assert notify.call_args[0][1] == 'threshold_reminder'

    def test_reminder_requires_a_printer(self, client, staff_user, client_user):
        client.force_login(staff_user)
        response = client.post(reverse('compliance:send-threshold-reminder', args=[client_user.id]))
        assert response.status_code == 400

    def test_unknown_seller(self, client, staff_user):
        client.force_login(staff_user)
        response = client.post(reverse('compliance:send-threshold-reminder', args=[999]))
        assert response.status_code == 404
