"""Run the API server with ``python -m cinescope``."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
