"""Accounts, addresses and KYC verification."""
