"""Allow running as ``python -m neomon``."""

from .cli import main

main()
