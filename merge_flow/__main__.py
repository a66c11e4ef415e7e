"""Allow running as ``python -m merge_flow``."""

from .cli import main

main()
