"""Case booking application.

Models, services, serializers and views for surgical case bookings,
their status and amendment histories, and the per-country catalog the
booking screens draw from.
"""
