"""
Run the terminal trainer.

Usage:
    python -m shopfloor.interface
"""

from .cli import main

if __name__ == "__main__":
    main()
