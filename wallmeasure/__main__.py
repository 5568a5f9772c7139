import sys

from wallmeasure.cli import main

sys.exit(main())
