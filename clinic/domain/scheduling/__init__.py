"""
Scheduling Domain

Slot availability and the booking workflow.

- time_calculator.py      # Time parsing, slot grids, interval overlap
- availability_service.py # Slot calendar from working hours and bookings
- booking_service.py      # Booking and lifecycle orchestration
"""
