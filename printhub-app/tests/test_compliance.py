from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.utils import timezone

from accounts.models import Profile
from compliance.guard import BLOCK_REASON, ComplianceGuard
from core.exceptions import ComplianceBlocked, Forbidden, ValidationFailed


def set_counters(user, **fields):
    fields.setdefault('revenue_year', timezone.now().year)
    Profile.objects.filter(user=user).update(**fields)


def profile_of(user):
    return Profile.objects.get(user=user)


def test_transaction_over_revenue_ceiling_blocks_the_seller(printer):
    set_counters(printer, yearly_revenue=Decimal('2900.00'))

    with pytest.raises(ComplianceBlocked) as excinfo:
        ComplianceGuard.authorize(printer, Decimal('150'))

    profile = profile_of(printer)
    assert profile.account_blocked is True
    assert profile.block_reason == BLOCK_REASON
    assert profile.blocked_at is not None
    assert profile.yearly_revenue == Decimal('2900.00')
    assert profile.reserved_revenue == Decimal('0.00')
    assert excinfo.value.details['upgrade_required'] is True
    assert excinfo.value.status_code == 403


def test_transaction_count_ceiling_blocks_the_seller(printer):
    set_counters(printer, yearly_transaction_count=20)
    with pytest.raises(ComplianceBlocked):
        ComplianceGuard.authorize(printer, Decimal('5'))
    assert profile_of(printer).account_blocked is True


def test_authorization_reserves_until_settled(printer):
    decision = ComplianceGuard.authorize(printer, Decimal('100'))
    assert decision.allowed and not decision.warning and not decision.exempt

    profile = profile_of(printer)
    assert profile.reserved_revenue == Decimal('100.00')
    assert profile.reserved_transaction_count == 1

    ComplianceGuard.record_settlement(printer, Decimal('100'))
    profile = profile_of(printer)
    assert profile.reserved_revenue == Decimal('0.00')
    assert profile.reserved_transaction_count == 0
    assert profile.yearly_revenue == Decimal('100.00')
    assert profile.yearly_transaction_count == 1


def test_reservations_count_towards_the_ceiling(printer):
    set_counters(printer, yearly_revenue=Decimal('2000.00'))
    ComplianceGuard.authorize(printer, Decimal('900'))
    with pytest.raises(ComplianceBlocked):
        ComplianceGuard.authorize(printer, Decimal('150'))


def test_release_gives_back_the_reservation(printer):
    ComplianceGuard.authorize(printer, Decimal('100'))
    ComplianceGuard.release(printer, Decimal('100'))
    profile = profile_of(printer)
    assert profile.reserved_revenue == Decimal('0.00')
    assert profile.reserved_transaction_count == 0
    assert profile.yearly_revenue == Decimal('0.00')


def test_warning_near_the_ceiling(printer):
    set_counters(printer, yearly_revenue=Decimal('2300.00'))
    decision = ComplianceGuard.authorize(printer, Decimal('150'))
    assert decision.allowed is True
    assert decision.warning is True


def test_settlement_warning_is_notified(printer):
    set_counters(printer, yearly_revenue=Decimal('2350.00'), reserved_revenue=Decimal('100.00'),
                 reserved_transaction_count=1)
    with mock.patch('compliance.guard.notifications.notify') as notify:
        assert ComplianceGuard.record_settlement(printer, Decimal('100')) is True
    assert notify.call_args[0][1] == 'threshold_warning'
    assert profile_of(printer).threshold_warning_sent_at is not None


def test_business_sellers_are_exempt(printer):
    set_counters(printer, business_status=Profile.MICRO_ENTREPRENEUR, yearly_revenue=Decimal('50000.00'))
    decision = ComplianceGuard.authorize(printer, Decimal('1000'))
    assert decision.exempt is True
    assert profile_of(printer).account_blocked is False


def test_block_survives_a_new_year(printer):
    last_year = timezone.now().year - 1
    set_counters(printer, revenue_year=last_year, yearly_revenue=Decimal('2990.00'),
                 yearly_transaction_count=12, account_blocked=True, block_reason=BLOCK_REASON)

    with pytest.raises(ComplianceBlocked):
        ComplianceGuard.authorize(printer, Decimal('10'))

    profile = profile_of(printer)
    assert profile.revenue_year == timezone.now().year
    assert profile.yearly_revenue == Decimal('0.00')
    assert profile.yearly_transaction_count == 0
    assert profile.account_blocked is True


def test_rollover_is_idempotent(printer):
    set_counters(printer, revenue_year=timezone.now().year - 1, yearly_revenue=Decimal('500.00'))
    profile = profile_of(printer)
    now = timezone.now()
    assert ComplianceGuard.rollover_if_new_year(profile, now) is True
    assert ComplianceGuard.rollover_if_new_year(profile, now + timedelta(minutes=1)) is False
    assert profile_of(printer).yearly_revenue == Decimal('0.00')


def test_upgrade_to_business_lifts_the_block(printer):
    set_counters(printer, yearly_revenue=Decimal('2900.00'))
    with pytest.raises(ComplianceBlocked):
        ComplianceGuard.authorize(printer, Decimal('150'))

    profile = ComplianceGuard.upgrade_to_business(
        printer, '123 456 789 01234', Profile.MICRO_ENTREPRENEUR, 'FR12345678901')
    assert profile.account_blocked is False
    assert profile.block_reason is None
    assert profile.siret == '12345678901234'

    decision = ComplianceGuard.authorize(printer, Decimal('150'))
    assert decision.exempt is True


@pytest.mark.parametrize('siret, status', [
    ('1234', Profile.MICRO_ENTREPRENEUR),
    ('12345678901234', Profile.PARTICULIER),
    ('', Profile.PROFESSIONNEL),
])
def test_upgrade_validates_input(printer, siret, status):
    with pytest.raises(ValidationFailed):
        ComplianceGuard.upgrade_to_business(printer, siret, status)


def test_only_printers_can_upgrade(client_user):
    with pytest.raises(Forbidden):
        ComplianceGuard.upgrade_to_business(client_user, '12345678901234', Profile.PROFESSIONNEL)


def test_threshold_status(printer):
    set_counters(printer, yearly_revenue=Decimal('1500.00'), yearly_transaction_count=5)
    status = ComplianceGuard.get_threshold_status(printer)
    assert status['subject_to_threshold'] is True
    assert status['remaining_revenue'] == '1500.00'
    assert status['remaining_transactions'] == 15
    assert status['revenue_percentage'] == '50.00'
    assert status['transaction_percentage'] == '25.00'
