import sys

from vendorsync.cli import main

sys.exit(main())
