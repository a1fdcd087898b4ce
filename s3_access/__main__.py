"""Module entry point for the S3 access command line."""
from .cli import main


if __name__ == "__main__":
    main()
