"""Entry point for ``python -m exam_catalog``."""
import sys

from exam_catalog.cli import main

sys.exit(main())
