import sys

from vaxnet.cli import main

sys.exit(main())
