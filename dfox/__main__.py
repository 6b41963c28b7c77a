"""Entry point for `python -m dfox`."""

from .cli import main


if __name__ == "__main__":
    main()
