"""Module entrypoint for ``python -m jjview``.

All argument parsing and runtime setup happen in ``jjview.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
