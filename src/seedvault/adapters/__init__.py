"""Infrastructure adapters (Pillow, cairosvg, Fernet, SQLAlchemy, Jinja2 files)."""
