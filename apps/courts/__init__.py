"""Courts app package.

Courts, their operating hours, hourly rate bands and attached discounts.
They are maintained by club staff through the admin and are read-only
inputs for the reservation engine, which maps them into immutable
schedules before slot generation and pricing.
"""
