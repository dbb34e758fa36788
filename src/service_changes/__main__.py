"""
Entry point for running Service Changes as a module.

This allows users to run the CLI using:
    python -m service_changes [command] [options]
"""

from service_changes.cli.app import main

if __name__ == "__main__":
    main()
