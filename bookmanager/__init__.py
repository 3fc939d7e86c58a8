"""Book Manager - Core Application Package

This package contains the core application modules including:
- API endpoints (api.py)
- Collection orchestration (service.py)
- Book collection logic (library.py)
- User directory (users.py) and review ledger (reviews.py)
- Data models (book.py, user.py, review.py)
- Database layer (database.py)
- CLI interface (main.py)
"""

__version__ = "1.0.0"
