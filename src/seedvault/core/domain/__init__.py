"""Domain models and entities.

- Pure, strict data structures (Pydantic v2).
- The domain knows nothing about Pillow, SQL, or the CLI: only seed records.
"""
