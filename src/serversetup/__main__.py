"""Allow running the CLI with ``python -m serversetup``."""
import sys

from serversetup.cli._dispatcher import main

if __name__ == "__main__":
    sys.exit(main())
