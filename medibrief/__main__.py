import sys

from medibrief.cli import main

sys.exit(main())
