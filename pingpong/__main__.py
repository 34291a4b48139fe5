import sys

from pingpong.main import main

sys.exit(main())
