import sys

from cryptowatcher.main import main

sys.exit(main())
