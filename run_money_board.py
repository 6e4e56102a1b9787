#!/usr/bin/env python3
"""Direct launcher for the Money Control Board.

This script launches Streamlit with the money_board directory as the app root,
enabling automatic page discovery from the pages/ subdirectory.

Set MONEY_BOARD_LOG_LEVEL (e.g. DEBUG) to control the app's log output; the
Streamlit process inherits it and configures logging on the first page load.
"""

import os
import subprocess
import sys
from pathlib import Path

# Get the project root and money_board directory
project_root = Path(__file__).parent.resolve()
money_board_dir = project_root / "money_board"

if __name__ == "__main__":
    os.chdir(money_board_dir)
    sys.path.insert(0, str(project_root))
    subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        "Home.py"
    ])
