"""Entry point for `python -m obs_source_tracker`."""

from .cli import main

if __name__ == "__main__":
    main()
