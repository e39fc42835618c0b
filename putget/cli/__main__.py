import sys

from putget.cli import main

sys.exit(main())
