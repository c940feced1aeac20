"""customer-store: single-table entity stores over SQLite.

Package version lives here so the API, the CLI and tests share one literal.
"""

PACKAGE_VERSION = "0.1.0"  # Keep in sync with pyproject version.

__all__ = ["PACKAGE_VERSION"]
