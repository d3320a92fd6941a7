import sys

from letopia.cli import main

sys.exit(main())
