import sys

from sporadic.cli import main

sys.exit(main())
