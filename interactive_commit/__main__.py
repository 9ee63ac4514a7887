"""python -m interactive_commit"""

import sys

from .cli import main

sys.exit(main())
