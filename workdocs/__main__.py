"""Main entry point when executing workdocs as a package.

This allows running the package using python -m workdocs.
"""

from workdocs.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
