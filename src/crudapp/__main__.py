"""Main entry point for the crudapp CLI.

Usage:
    python -m crudapp --help
    crudapp --help  # If installed via pip/uv
"""

from crudapp.cli import main

if __name__ == "__main__":
    main()
