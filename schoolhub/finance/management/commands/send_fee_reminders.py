from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from core.exceptions import SchoolHubError
from notifications.models import OVER_DUE_FEES
from notifications.services import create_notification

User = get_user_model()

class Command(BaseCommand):
    help = "Broadcast an overdue-fees announcement to unpaid students and their guardians."

    def add_arguments(self, parser):
        parser.add_argument("--username", required=True, help="Admin account the announcement is sent as.")
        parser.add_argument("--title", default="School Fees Reminder")
        parser.add_argument(
            "--message",
            default="Our records show an outstanding school fee. Please settle it at your earliest convenience.",
        )

    def handle(self, *args, **options):
        try:
            actor = User.objects.get(username=options["username"])
        except User.DoesNotExist:
            raise CommandError(f"No user named {options['username']}.")

        data = {"title": options["title"], "message": options["message"], "type": OVER_DUE_FEES}
        try:
            result = create_notification(actor, data)
        except SchoolHubError as exc:
            raise CommandError(exc.message)

        if not result.recipient_ids:
            self.stdout.write("No reminders to send.")
        elif result.delivered:
            self.stdout.write(f"Reminder sent to {len(result.recipient_ids)} users.")
        else:
            self.stdout.write(self.style.WARNING(result.warning))
