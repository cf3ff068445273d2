"""Main entry point when executing auracli as a package.

This allows running the package using python -m auracli.
"""

from auracli.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
