import sys

from merkle_allowlist.generate import main

sys.exit(main())
