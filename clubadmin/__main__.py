"""Main entry point when executing clubadmin as a package.

This allows running the package using python -m clubadmin.
"""

from clubadmin.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
