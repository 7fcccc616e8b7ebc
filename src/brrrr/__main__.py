"""Entry point for brrrr package"""

import sys

from brrrr.main import main

if __name__ == "__main__":
    sys.exit(main())
