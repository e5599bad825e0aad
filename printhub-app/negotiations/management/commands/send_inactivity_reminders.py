from django.core.management.base import BaseCommand

from negotiations.services import ConversationService


class Command(BaseCommand):
    help = "Relance les parties qui n'ont pas répondu depuis le délai d'inactivité"

    def handle(self, *args, **options):
        count = ConversationService.send_inactivity_reminders()
        self.stdout.write(self.style.SUCCESS(f"{count} relance(s) d'inactivité envoyée(s)"))
