"""
Fixtures communes : utilisateurs par rôle, projet, conversation à chaque
étape de la négociation et contrat payé
"""
from decimal import Decimal

import pytest
from django.contrib.auth.models import User

from accounts.models import Profile
from contracts.services import ContractService, PaymentService
from negotiations.services import ConversationService
from projects.services import ProjectService

QUOTE = {'unit_price': '100.00', 'quantity': 1, 'delivery_days': 5, 'materials': ['PLA']}


def make_user(username, role=Profile.CLIENT, is_staff=False, **profile_fields):
    user = User.objects.create_user(
        username=username, email=f'{username}@example.com', password='secret', is_staff=is_staff)
    Profile.objects.filter(user=user).update(role=role, **profile_fields)
    user.profile.refresh_from_db()
    return user


def set_balance(user, available):
    available = Decimal(available)
    Profile.objects.filter(user=user).update(balance_available=available, balance_total=available)


@pytest.fixture
def client_user(db):
    return make_user('alice')


@pytest.fixture
def printer(db):
    user = make_user('bob', Profile.PRINTER)
    user.first_name = 'Bob'
    user.last_name = 'Martin'
    user.save()
    return user


@pytest.fixture
def other_printer(db):
    return make_user('carol', Profile.PRINTER)


@pytest.fixture
def staff_user(db):
    return make_user('mediator', Profile.ADMIN, is_staff=True)


@pytest.fixture
def outsider(db):
    return make_user('eve')


@pytest.fixture
def project(client_user):
    return ProjectService.create_project(client_user, 'Support de lampe', 'PLA noir', quantity=1)


@pytest.fixture
def conversation(project, printer):
    conversation, _ = ConversationService.start(project, printer, printer)
    return conversation


@pytest.fixture
def quoted_conversation(conversation, printer):
    return ConversationService.send_quote(conversation, printer, QUOTE)


@pytest.fixture
def accepted_conversation(quoted_conversation, client_user):
    return ConversationService.accept_quote(quoted_conversation, client_user)


@pytest.fixture
def signed_conversation(accepted_conversation, client_user, printer):
    conversation = ConversationService.sign(accepted_conversation, client_user)
    return ConversationService.sign(conversation, printer)


@pytest.fixture
def contract(signed_conversation):
    return signed_conversation.contract


@pytest.fixture
def paid_contract(contract, client_user):
    payment, _ = PaymentService.authorize_payment(contract, client_user)
    PaymentService.confirm_payment(payment)
    contract.refresh_from_db()
    return contract


@pytest.fixture
def delivered_contract(paid_contract, printer, client_user):
    ContractService.start_printing(paid_contract, printer)
    ContractService.complete_printing(paid_contract, printer)
    ContractService.send_photos(paid_contract, printer, ['https://cdn.example.com/print.jpg'])
    ContractService.mark_as_shipped(paid_contract, printer, 'TRK123', 'Colissimo')
    return ContractService.confirm_delivery(paid_contract, client_user)
