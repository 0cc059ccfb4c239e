#!/usr/bin/env python3
"""
UE5 Engine Manager (Wrapper)

Lists, registers and installs engines and Linux toolchains.
Wraps ue5_buildkit.cli for direct execution:

    python engines.py list
    python engines.py add 5.4.2 "D:/Epic Games/UE_5.4"
    python engines.py install 5.5
    python engines.py toolchain resolve 5.5
"""

import sys
from pathlib import Path

# Add lib directory to Python path
lib_path = Path(__file__).parent.parent.parent / "lib"
sys.path.insert(0, str(lib_path))

from ue5_buildkit.cli import main

if __name__ == "__main__":
    argv = sys.argv[1:]
    if argv[:1] != ["toolchain"]:
        argv = ["engines"] + argv
    sys.exit(main(argv))
