import sys

from migration_guard.cli import main

sys.exit(main())
