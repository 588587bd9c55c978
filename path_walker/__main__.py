import sys

from path_walker.cli import main

sys.exit(main())
