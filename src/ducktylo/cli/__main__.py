"""Main entry point for the ducktylo CLI when run as a module."""

from ducktylo.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
