import sys

from pegvault.cli import main

sys.exit(main())
