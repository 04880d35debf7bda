"""Main entry point for the secretforge CLI.

Usage:
    python -m secretforge --help
    secretforge --help  # If installed via pip/uv
"""

from secretforge.cli import main

if __name__ == "__main__":
    main()
