"""Entry point for running the payroll CLI as a module."""

import sys

from hris_payroll.cli import main

if __name__ == "__main__":
    sys.exit(main())
