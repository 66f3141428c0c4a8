"""Allow ``python -m questline``."""

from questline.cli.main import run

if __name__ == "__main__":
    run()
