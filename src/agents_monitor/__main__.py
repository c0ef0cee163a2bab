"""Entry point for `python -m agents_monitor`."""

import sys


def main():
    from agents_monitor.app import run
    sys.exit(run())


if __name__ == "__main__":
    main()
