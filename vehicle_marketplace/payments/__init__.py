"""Payment records and gateway signature verification."""
