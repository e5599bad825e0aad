"""
Signaux pour le module Négociations
"""
from django.dispatch import Signal

# Émis une seule fois, quand client et imprimeur ont tous deux signé.
# Argument : conversation. Les récepteurs s'exécutent dans la transaction
# de la signature.
agreement_reached = Signal()
