"""Module entrypoint for ``python -m lazyp4``.

Argument parsing and stack setup happen in ``lazyp4.cli``.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
