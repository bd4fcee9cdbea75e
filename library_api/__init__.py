"""Library API - Core Application Package

This package contains the core application modules including:
- API endpoints (api.py)
- Author and book repository (library.py)
- CLI interface (main.py)
- Domain entities (author.py, book.py) and transfer objects (models.py)
- Database layer (database.py)
"""
