"""python -m apps.reconcile <likes|saves|country-categories> [options]"""

import sys

from .cli import main

sys.exit(main())
