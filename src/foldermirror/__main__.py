"""Allow running foldermirror with ``python -m foldermirror``."""

from foldermirror.cli import main

main()
