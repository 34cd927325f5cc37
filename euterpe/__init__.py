"""Media library for a personal music server: SQLite catalogue, scanning,
watching, clean-up, search, browsing and artwork thumbnails."""

__version__ = "0.1.0"