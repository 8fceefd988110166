import sys

from eco_pipeline.cli import main

sys.exit(main())
