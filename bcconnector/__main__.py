"""Main entry point when executing bcconnector as a package.

This allows running the package using python -m bcconnector.
"""

from bcconnector.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
