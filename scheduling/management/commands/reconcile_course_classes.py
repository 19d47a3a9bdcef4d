"""
Management command to bring stored classes in line with course configuration.

Run it after bulk changes to schedules or holidays, or periodically
(e.g., nightly via cron).
"""

from django.core.management.base import BaseCommand, CommandError

from scheduling import services
from scheduling.exceptions import SchedulingError
from scheduling.models import Course


class Command(BaseCommand):
    help = 'Delete classes no longer implied by course schedules and add missing ones'

    def add_arguments(self, parser):
        parser.add_argument(
            '--course',
            type=int,
            help='Only reconcile the course with this id'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would change without writing'
        )

    def handle(self, *args, **options):
        courses = Course.objects.all()
        if options['course'] is not None:
            courses = courses.filter(pk=options['course'])
            if not courses.exists():
                raise CommandError(f"Course {options['course']} does not exist")

        dry_run = options['dry_run']
        total_deleted = 0
        total_added = 0

        for course in courses:
            try:
                if dry_run:
                    plan = services.preview_course_reconciliation(course)
                else:
                    plan = services.apply_course_reconciliation(course)
            except SchedulingError as exc:
                raise CommandError(f'Course {course.pk} ({course.name}): {exc}') from exc

            total_deleted += len(plan.to_delete)
            total_added += len(plan.to_add)
            self.stdout.write(
                f'{course.name}: {len(plan.to_delete)} to delete, {len(plan.to_add)} to add'
            )

        verb = 'Would delete' if dry_run else 'Deleted'
        self.stdout.write(
            self.style.SUCCESS(
                f'{verb} {total_deleted} and {"would add" if dry_run else "added"} '
                f'{total_added} class(es)'
            )
        )
