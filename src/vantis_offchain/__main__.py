import sys

from vantis_offchain.menu.cli import main


sys.exit(main())
