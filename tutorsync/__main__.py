"""Allow ``python -m tutorsync``."""

from tutorsync.cli.main import main

if __name__ == "__main__":
    main()
