"""
Management command to report or delete unused invitations past their expiry
Usage: python manage.py expire_invitations [--delete]
"""
from django.core.management.base import BaseCommand
from django.utils import timezone

from backend.core.models import Invitation


class Command(BaseCommand):
    help = 'List unused, expired invitations and optionally delete them'

    def add_arguments(self, parser):
        parser.add_argument(
            '--delete',
            action='store_true',
            help='Delete the expired invitations instead of only listing them',
        )

    def handle(self, *args, **options):
        expired = Invitation.objects.filter(used=False, expires_at__lt=timezone.now()).select_related('business')
        count = expired.count()

        if not count:
            self.stdout.write(self.style.SUCCESS('No expired invitations.'))
            return

        for invitation in expired:
            self.stdout.write(
                f'  - {invitation.invitation_code} {invitation.email} '
                f'({invitation.business.business_code}, expired {invitation.expires_at:%Y-%m-%d})'
            )

        if options['delete']:
            expired.delete()
            self.stdout.write(self.style.SUCCESS(f'✓ Deleted {count} expired invitations'))
        else:
            self.stdout.write(self.style.WARNING(f'{count} expired invitations (run with --delete to remove them)'))
