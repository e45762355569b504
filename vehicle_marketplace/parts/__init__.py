"""Parts catalog and multi-merchant checkout."""
