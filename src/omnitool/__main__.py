"""Allow ``python -m omnitool``."""

from omnitool.cli import main

main()
