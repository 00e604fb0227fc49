import sys

from hookprobe.cli import main

sys.exit(main())
