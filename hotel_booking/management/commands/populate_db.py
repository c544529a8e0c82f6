from decimal import Decimal

from django.core.management.base import BaseCommand
from hotel_booking.models import Hotel, Room


HOTELS = [
    {
        'name': 'Harbour View Hotel',
        'city': 'Lisbon',
        'country': 'Portugal',
        'address': 'Rua do Cais 12',
        'postal_code': '1100-001',
        'star_rating': 4,
        'amenities': ['Free WiFi', 'Breakfast', 'Concierge'],
        'description': 'Riverside hotel a short walk from the old town',
        'rooms': [
            ('101', Room.RoomType.STANDARD, '80.00', 2),
            ('102', Room.RoomType.STANDARD, '85.00', 2),
            ('201', Room.RoomType.DELUXE, '120.00', 3),
            ('301', Room.RoomType.SUITE, '180.00', 4),
        ],
    },
    {
        'name': 'Alpine Lodge',
        'city': 'Innsbruck',
        'country': 'Austria',
        'address': 'Bergstrasse 4',
        'postal_code': '6020',
        'star_rating': 3,
        'amenities': ['Parking', 'Spa', 'Ski Access'],
        'description': 'Family-run lodge at the foot of the slopes',
        'rooms': [
            ('1', Room.RoomType.STANDARD, '95.00', 2),
            ('2', Room.RoomType.DELUXE, '130.00', 3),
            ('3', Room.RoomType.EXECUTIVE, '210.00', 4),
        ],
    },
    {
        'name': 'Grand Central',
        'city': 'Milan',
        'country': 'Italy',
        'address': 'Piazza Duca d\'Aosta 1',
        'postal_code': '20124',
        'star_rating': 5,
        'amenities': ['Pool', 'Gym', 'Restaurant', 'Room Service'],
        'description': 'Landmark hotel opposite the central station',
        'rooms': [
            ('501', Room.RoomType.DELUXE, '240.00', 2),
            ('601', Room.RoomType.PRESIDENTIAL, '500.00', 6),
        ],
    },
]


class Command(BaseCommand):
    help = 'Populate database with sample hotels and rooms'

    def handle(self, *args, **options):
        for data in HOTELS:
            data = dict(data)
            rooms = data.pop('rooms')
            hotel, created = Hotel.objects.get_or_create(name=data['name'], defaults=data)
            if created:
                self.stdout.write(f'Created hotel: {hotel.name}')
            else:
                self.stdout.write(f'Hotel {hotel.name} already exists')

            for number, room_type, price, capacity in rooms:
                room, created = Room.objects.get_or_create(
                    hotel=hotel,
                    room_number=number,
                    defaults={'room_type': room_type, 'price': Decimal(price), 'capacity': capacity},
                )
                if created:
                    self.stdout.write(f'  Created room: {room.room_number} - {room.room_type}')

        self.stdout.write(
            self.style.SUCCESS('Successfully populated database with sample data')
        )
