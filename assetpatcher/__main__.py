import sys

from assetpatcher.main import main

sys.exit(main())
