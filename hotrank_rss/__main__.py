"""Allow ``python -m hotrank_rss``."""

import sys

from .main import main

sys.exit(main())
