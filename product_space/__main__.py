import sys

from product_space.cli import main

sys.exit(main())
