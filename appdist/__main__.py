import sys

from appdist.cli import main

raise SystemExit(main(sys.argv[1:]))
