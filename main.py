#!/usr/bin/env python3
"""
Main entry point for the Webtoon Reader backend.

This module sets up the module path and hands over to the command-line
interface.
"""

import sys
from pathlib import Path

# Add the project root to Python path to enable imports
project_root = Path(__file__).parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def main() -> int:
    """Main entry point."""
    from cli import main as cli_main
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
