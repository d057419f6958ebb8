"""
Shared Kernel

Base classes and utilities shared by the court, wallet and reservation
contexts: entities, value objects, the unit of work and the message bus.
"""
