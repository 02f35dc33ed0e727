import sys

from secure_stream.cli import main

sys.exit(main())
