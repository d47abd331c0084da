"""Module entrypoint for ``python -m gitmonitor``.

This keeps module-mode execution behavior identical to the console script.
All argument parsing and runtime setup happen in ``gitmonitor.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
