"""Invoicing domain: ledger arithmetic, models, services, events."""
