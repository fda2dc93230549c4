import sys

from parindent.cli import main

sys.exit(main())
