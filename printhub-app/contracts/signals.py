"""
Signaux pour le module Contrats
"""
import logging

from django.dispatch import receiver

from negotiations.signals import agreement_reached
from .services import ContractService

logger = logging.getLogger(__name__)


@receiver(agreement_reached)
def create_contract_on_agreement(sender, conversation, **kwargs):
    """
    Crée le contrat d'une conversation dès la double signature,
    dans la même transaction que la signature
    """
    contract = ContractService.create_from_conversation(conversation)
    logger.info(f"Contrat #{contract.id} prêt pour paiement (conversation #{conversation.id})")
