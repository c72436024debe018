"""Core interfaces/abstractions.

- Protocols implemented by concrete adapters (Pillow, cairosvg, Fernet).
- The core services depend on these contracts, never on the libraries.
"""
