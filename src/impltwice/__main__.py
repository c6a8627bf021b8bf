import sys

from impltwice.cli import main

sys.exit(main())
