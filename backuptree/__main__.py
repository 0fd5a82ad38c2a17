"""Run backuptree as ``python -m backuptree``."""

import sys
import logging

from .cli import main


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logging.getLogger('backuptree').warning("Interrupted by user")
        print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(130)
