"""python -m educk"""

from educk.app.server import cli

if __name__ == "__main__":
    cli()
