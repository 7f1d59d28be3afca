import sys

from keepsake.main import main

sys.exit(main())
