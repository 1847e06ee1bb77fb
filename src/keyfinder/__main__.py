import sys

from keyfinder.main import main

sys.exit(main())
