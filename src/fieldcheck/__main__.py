"""Allow ``python -m fieldcheck``."""

from fieldcheck.cli.main import cli

if __name__ == "__main__":
    cli()
