#!/usr/bin/env python3
"""
UE5 Plugin Packager (Wrapper)

Packages the plugin found at or above the current directory (or this
script's directory) for every registered engine version. Wraps
ue5_buildkit.cli for direct execution:

    python package-plugin.py
    python package-plugin.py --versions 5.4 5.5 --platforms Win64 Linux
"""

import sys
from pathlib import Path

# Add lib directory to Python path
lib_path = Path(__file__).parent.parent.parent / "lib"
sys.path.insert(0, str(lib_path))

from ue5_buildkit.cli import main

if __name__ == "__main__":
    sys.exit(main(["package"] + sys.argv[1:]))
