"""
Management command to back up the SQLite database.

Meant to be run by cron, e.g. daily at 03:00:
    0 3 * * * cd /srv/mastaba && python manage.py backup_database --cloud

Usage:
    # Local backup into BACKUP_DIR
    python manage.py backup_database

    # Upload to R2 under backups/ and remove the local copy
    python manage.py backup_database --cloud

    # Keep only the 7 newest local backups
    python manage.py backup_database --keep 7
"""
import logging
import sqlite3
import time
from pathlib import Path

from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import connection

from academy.utils.storage import R2Storage

logger = logging.getLogger(__name__)

BACKUP_CONTENT_TYPE = 'application/x-sqlite3'


class Command(BaseCommand):
    help = 'Create an online backup of the SQLite database'

    def add_arguments(self, parser):
        parser.add_argument(
            '--cloud',
            action='store_true',
            help='Upload the backup to R2 (backups/) and delete the local file'
        )
        parser.add_argument(
            '--keep',
            type=int,
            help='Number of local backups to keep; older ones are deleted'
        )

    def handle(self, *args, **options):
        to_cloud = options.get('cloud', False)
        keep = options.get('keep')

        if connection.vendor != 'sqlite':
            raise CommandError(f'backup_database only supports SQLite (database is {connection.vendor})')
        if keep is not None and keep < 1:
            raise CommandError('--keep must be at least 1')

        backup_dir = Path(settings.BACKUP_DIR)
        backup_dir.mkdir(parents=True, exist_ok=True)
        file_name = f"{'cloud-' if to_cloud else ''}backup-{int(time.time() * 1000)}.sqlite"
        backup_path = backup_dir / file_name

        self._backup(backup_path)
        size = backup_path.stat().st_size
        logger.info("SQLite backup created: %s (%s bytes)", file_name, size)
        self.stdout.write(self.style.SUCCESS(f'✅ Backup created: {backup_path} ({size} bytes)'))

        if to_cloud:
            try:
                public_url = R2Storage.from_settings().upload_bytes(
                    backup_path.read_bytes(), file_name, BACKUP_CONTENT_TYPE, prefix='backups/'
                )
            except (BotoCoreError, ClientError) as e:
                logger.exception("Cloud upload of %s failed", file_name)
                raise CommandError(f'Cloud upload failed, local backup kept at {backup_path}: {e}')
            backup_path.unlink()
            logger.info("Backup uploaded to %s", public_url)
            self.stdout.write(self.style.SUCCESS(f'✅ Uploaded to {public_url}'))

        if keep:
            self._prune(backup_dir, keep)

    def _backup(self, backup_path):
        """Copy the live database page by page with SQLite's backup API."""
        connection.ensure_connection()
        target = sqlite3.connect(str(backup_path))
        try:
            connection.connection.backup(target)
        finally:
            target.close()

    def _prune(self, backup_dir, keep):
        backups = sorted(backup_dir.glob('*backup-*.sqlite'), key=lambda path: path.stat().st_mtime, reverse=True)
        for old in backups[keep:]:
            old.unlink()
            self.stdout.write(f'  - Removed old backup {old.name}')
        if len(backups) > keep:
            logger.info("Pruned %s old backup(s), kept %s", len(backups) - keep, keep)
