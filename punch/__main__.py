"""
Main entry point for punch when run as a module.

Allows running with: python -m punch
"""

from punch.cli.main import app

if __name__ == "__main__":
    app(prog_name="punch")
