"""Stored user notifications: the in-app inbox plus email/SMS hand-off."""
