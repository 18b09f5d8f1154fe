"""
Entry point for running apienvelope as a module: python -m apienvelope
"""

from apienvelope.cli.commands import app

if __name__ == "__main__":
    app()
