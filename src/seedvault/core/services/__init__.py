"""Use cases: avatar normalization, record building, enrollment, seeding."""
