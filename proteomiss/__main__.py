import sys

from proteomiss.cli import main

sys.exit(main())
