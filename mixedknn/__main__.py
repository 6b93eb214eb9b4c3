import sys

from mixedknn.pipeline import main

sys.exit(main())
