"""Allow running the installer with ``python -m dokku_installer``."""

import sys

from dokku_installer.web.app import main

if __name__ == '__main__':
    sys.exit(main())
