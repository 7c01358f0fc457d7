"""Main entry point for the storyloom CLI when run as a module."""

from storyloom.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    main()
