"""Peer-to-peer vehicle rentals."""
