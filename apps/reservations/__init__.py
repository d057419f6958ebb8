"""Reservations app package.

The reservation scheduling and billing engine: slot grids, contiguous
selection, rate-band pricing, recurring batch expansion, wallet
allocation with overdraft, and the single transaction that writes a
batch's reservations together with its wallet charge and ledger entry.
"""
