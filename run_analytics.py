"""Run balance analytics from command line"""
import sys

from escape_velocity.cli import main

if __name__ == '__main__':
    sys.exit(main())
