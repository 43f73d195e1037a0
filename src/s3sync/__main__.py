"""
Entry point for ``python -m s3sync``.
"""

from s3sync.cli.main import main

if __name__ == "__main__":
    main()
