from django.core.management.base import BaseCommand

from negotiations.services import ConversationService


class Command(BaseCommand):
    help = 'Annule les conversations dont la pause a expiré'

    def handle(self, *args, **options):
        count = ConversationService.expire_paused()
        self.stdout.write(self.style.SUCCESS(f'{count} conversation(s) en pause expirée(s) annulée(s)'))
