"""Wallets app package.

Prepaid member wallets and their append-only activity ledger. Top-ups,
transfers and limit changes belong to the wallet console; the reservation
engine only issues one balance write and one ledger entry per batch.
"""
