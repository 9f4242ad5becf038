import sys

from limit_engine.cli import main

sys.exit(main())
