import sys

from embedded_cassandra.cli import main

if __name__ == "__main__":
    sys.exit(main())
