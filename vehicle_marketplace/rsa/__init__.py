"""Roadside assistance subscriptions and emergency requests."""
