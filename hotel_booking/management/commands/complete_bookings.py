from django.core.management.base import BaseCommand

from hotel_booking.apps import booking_engine


class Command(BaseCommand):
    help = 'Mark confirmed bookings whose check-out has passed as completed'

    def handle(self, *args, **options):
        completed = booking_engine().complete_due_bookings()
        for booking in completed:
            self.stdout.write(f'Completed booking {booking.id}')
        self.stdout.write(self.style.SUCCESS(f'{len(completed)} booking(s) completed'))
