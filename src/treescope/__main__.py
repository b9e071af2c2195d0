"""Allow running as: python -m treescope"""

from treescope.cli import main

main()
