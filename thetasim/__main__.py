import sys

from thetasim.main import main

sys.exit(main())
