"""Allow ``python -m upgrade_console``; also the child process entry point."""

from upgrade_console.cli.app import main

if __name__ == "__main__":
    main()
