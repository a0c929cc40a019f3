"""Entry point for running batchplate as a module."""

from batchplate.cli import main

if __name__ == "__main__":
    main()
