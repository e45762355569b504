"""Mechanic profiles and on-site service bookings."""
