import sys

from extraction_service.cli import main

sys.exit(main())
